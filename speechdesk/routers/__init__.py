"""
FastAPI routers.
"""
from speechdesk.routers.health import router as health_router
from speechdesk.routers.batch import router as batch_router
from speechdesk.routers.realtime import router as realtime_router
from speechdesk.routers.speech import router as speech_router
from speechdesk.routers.profiles import router as profiles_router

__all__ = ['health_router', 'batch_router', 'realtime_router', 'speech_router', 'profiles_router']
