"""
Voice profile model.
"""
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Integer, Float

from speechdesk.config import DEFAULT_MODEL, DEFAULT_AUDIO_FORMAT
from speechdesk.models.base import Base


class VoiceProfile(Base):
    """
    Named bundle of synthesis parameters.

    volume and pitch are stored but not sent to the speech API.
    """
    __tablename__ = 'voice_profiles'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, index=True)
    model = Column(String(50), nullable=False, default=DEFAULT_MODEL)
    voice = Column(String(50), nullable=False)
    audio_format = Column(String(8), nullable=False, default=DEFAULT_AUDIO_FORMAT)
    description = Column(Text, nullable=True)
    style_prompt = Column(Text, nullable=True)
    volume = Column(Float, nullable=False, default=1.0)
    pitch = Column(Float, nullable=False, default=1.0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f'<VoiceProfile {self.id} {self.name!r}>'
