"""
Storage for audio produced row by row on the real-time path.
"""
import json
import logging
import re
from pathlib import Path
from typing import Optional

from speechdesk.config import AUDIO_FORMATS
from speechdesk.errors import ValidationError, StorageError
from speechdesk.services.intake import METADATA_FILENAME
from speechdesk.services.rendering import output_path, render_row, write_bytes_atomic
from speechdesk.services.speech_client import SpeechClient, SynthesisParams

logger = logging.getLogger(__name__)

WORKSPACE_ID_PATTERN = re.compile(r'^rt-[0-9a-f]{4,64}$')


class RealtimeUploader:
    """
    Stores per-row audio inside a workspace.

    Workspaces own disjoint directories, so uploads for different
    workspaces may run concurrently.
    """

    def __init__(self, realtime_dir: Path, data_dir: Path, exports_dir: Optional[Path] = None):
        self.realtime_dir = realtime_dir
        self.data_dir = data_dir
        self.exports_dir = exports_dir or realtime_dir / 'exports'

    def workspace_dir(self, workspace_id: str) -> Path:
        """Directory of an existing workspace."""
        if not workspace_id or not WORKSPACE_ID_PATTERN.match(workspace_id):
            raise ValidationError(f'Invalid workspace id: {workspace_id}')
        workspace = self.realtime_dir / workspace_id
        if not workspace.is_dir():
            raise ValidationError(f'Unknown workspace: {workspace_id}')
        return workspace

    def load_metadata(self, workspace_id: str) -> dict:
        path = self.workspace_dir(workspace_id) / METADATA_FILENAME
        try:
            return json.loads(path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            raise StorageError(f'Unreadable workspace metadata for {workspace_id}: {e}') from e

    def resolve_extension(self, workspace_id: str, source_extension: Optional[str]) -> str:
        """
        Pick the stored file extension.

        The workspace's configured format wins; the uploaded file's own
        extension is only used when the workspace has none.
        """
        configured = (self.load_metadata(workspace_id).get('audio_format') or '').lower()
        if configured in AUDIO_FORMATS:
            return configured

        extension = (source_extension or '').lower().lstrip('.')
        if extension not in AUDIO_FORMATS:
            raise ValidationError(f'Unsupported audio extension: {source_extension!r}')
        return extension

    def store(
        self,
        workspace_id: str,
        relative_name: str,
        audio_bytes: bytes,
        source_extension: Optional[str] = None,
    ) -> Path:
        """
        Save uploaded audio at <workspace>/<relative_name>.<ext>.

        Raises:
            ValidationError: unknown workspace, unsafe name or extension
            StorageError: the file could not be written
        """
        workspace = self.workspace_dir(workspace_id)
        extension = self.resolve_extension(workspace_id, source_extension)
        target = output_path(workspace, relative_name, extension)
        stored = write_bytes_atomic(target, audio_bytes)
        logger.debug('Stored %s (%d bytes) in workspace %s', relative_name, len(audio_bytes), workspace_id)
        return stored

    async def synthesize_row(
        self,
        workspace_id: str,
        index: int,
        client: SpeechClient,
        params: SynthesisParams,
    ) -> Path:
        """Render row `index` of the workspace request on the server."""
        workspace = self.workspace_dir(workspace_id)
        rows = self.load_metadata(workspace_id).get('rows') or []
        if index < 0 or index >= len(rows):
            raise ValidationError(f'Row {index} does not exist in workspace {workspace_id}')
        return await render_row(workspace, rows[index], params, client)

    def relative_to_data(self, path: Path) -> str:
        """Path string handed back to clients for archiving."""
        return path.relative_to(self.data_dir).as_posix()
