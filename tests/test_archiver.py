"""
Archive creation tests.
"""
import time
import zipfile

import pytest

from speechdesk.errors import ArchiveError
from speechdesk.services import archiver
from speechdesk.services.archiver import (
    archive_directory,
    archive_directory_async,
    archive_files,
    archive_files_async,
    unique_archive_name,
)


def zip_names(path):
    with zipfile.ZipFile(path) as archive:
        return sorted(archive.namelist())


class TestArchiveDirectory:
    """Tests for whole-tree archiving."""

    def test_names_relative_to_root(self, tmp_path):
        root = tmp_path / 'job'
        (root / 'digits').mkdir(parents=True)
        (root / 'digits' / '1.mp3').write_bytes(b'one')
        (root / 'welcome.mp3').write_bytes(b'welcome')

        archive_path = archive_directory(root, tmp_path / 'job.zip')

        assert zip_names(archive_path) == ['digits/1.mp3', 'welcome.mp3']
        with zipfile.ZipFile(archive_path) as archive:
            assert archive.read('digits/1.mp3') == b'one'
            assert archive.getinfo('welcome.mp3').compress_type == zipfile.ZIP_DEFLATED

    def test_partial_writes_excluded(self, tmp_path):
        root = tmp_path / 'job'
        root.mkdir()
        (root / 'done.mp3').write_bytes(b'x')
        (root / '.tmpabc.part').write_bytes(b'half')

        assert zip_names(archive_directory(root, tmp_path / 'job.zip')) == ['done.mp3']

    def test_empty_directory_gives_empty_archive(self, tmp_path):
        root = tmp_path / 'job'
        root.mkdir()

        assert zip_names(archive_directory(root, tmp_path / 'job.zip')) == []

    def test_no_temp_file_left_behind(self, tmp_path):
        root = tmp_path / 'job'
        root.mkdir()
        (root / 'a.mp3').write_bytes(b'a')
        out_dir = tmp_path / 'out'

        archive_directory(root, out_dir / 'job.zip')

        assert [p.name for p in out_dir.iterdir()] == ['job.zip']

    def test_unwritable_destination(self, tmp_path):
        """Test container failures raise ArchiveError."""
        root = tmp_path / 'job'
        root.mkdir()
        (tmp_path / 'blocker').write_bytes(b'')

        with pytest.raises(ArchiveError):
            archive_directory(root, tmp_path / 'blocker' / 'job.zip')


class TestArchiveFiles:
    """Tests for manifest archiving of real-time workspaces."""

    @pytest.fixture
    def workspace(self, storage):
        workspace = storage['realtime'] / 'rt-0123456789abcdef'
        (workspace / 'digits').mkdir(parents=True)
        (workspace / 'digits' / '1.mp3').write_bytes(b'one')
        (workspace / 'welcome.mp3').write_bytes(b'welcome')
        return workspace

    def test_workspace_prefix_stripped(self, storage, workspace):
        files = [
            'jobs/realtime/rt-0123456789abcdef/digits/1.mp3',
            'jobs/realtime/rt-0123456789abcdef/welcome.mp3',
        ]

        archive_path = archive_files(files, storage['data'], storage['realtime'], storage['exports'])

        assert archive_path.parent == storage['exports']
        assert archive_path.name.startswith('tts_batch_')
        assert zip_names(archive_path) == ['digits/1.mp3', 'welcome.mp3']

    def test_missing_files_skipped(self, storage, workspace):
        files = [
            'jobs/realtime/rt-0123456789abcdef/welcome.mp3',
            'jobs/realtime/rt-0123456789abcdef/never-uploaded.mp3',
        ]

        archive_path = archive_files(files, storage['data'], storage['realtime'], storage['exports'])

        assert zip_names(archive_path) == ['welcome.mp3']

    def test_paths_outside_workspaces_skipped(self, storage, workspace, tmp_path):
        """Test the manifest cannot pull in arbitrary files."""
        (tmp_path / 'secret.txt').write_text('secret')
        (storage['exports'] / 'old.zip').write_bytes(b'PK')
        files = [
            '../secret.txt',
            str(tmp_path / 'secret.txt'),
            'jobs/realtime/exports/old.zip',
            'jobs/realtime/rt-0123456789abcdef/welcome.mp3',
        ]

        archive_path = archive_files(files, storage['data'], storage['realtime'], storage['exports'])

        assert zip_names(archive_path) == ['welcome.mp3']

    def test_workspace_metadata_skipped(self, storage, workspace):
        """Test metadata.json at the workspace top level stays out of exports."""
        (workspace / 'metadata.json').write_text('{"profile": "3", "rows": []}')
        (workspace / 'digits' / 'metadata.json').write_bytes(b'row audio named like metadata')
        files = [
            'jobs/realtime/rt-0123456789abcdef/metadata.json',
            'jobs/realtime/rt-0123456789abcdef/digits/metadata.json',
            'jobs/realtime/rt-0123456789abcdef/welcome.mp3',
        ]

        archive_path = archive_files(files, storage['data'], storage['realtime'], storage['exports'])

        assert zip_names(archive_path) == ['digits/metadata.json', 'welcome.mp3']

    def test_all_missing_gives_empty_archive(self, storage):
        archive_path = archive_files(['jobs/realtime/rt-ffff/x.mp3'], storage['data'], storage['realtime'], storage['exports'])

        assert zip_names(archive_path) == []

    def test_archive_names_unique(self):
        assert unique_archive_name() != unique_archive_name()


class TestAsyncWrappers:

    @pytest.mark.asyncio
    async def test_archive_directory_async(self, tmp_path):
        root = tmp_path / 'job'
        root.mkdir()
        (root / 'a.mp3').write_bytes(b'a')

        archive_path = await archive_directory_async(root, tmp_path / 'job.zip')

        assert zip_names(archive_path) == ['a.mp3']

    @pytest.mark.asyncio
    async def test_archive_files_async(self, storage):
        workspace = storage['realtime'] / 'rt-abcd'
        workspace.mkdir()
        (workspace / 'a.mp3').write_bytes(b'a')

        archive_path = await archive_files_async(
            ['jobs/realtime/rt-abcd/a.mp3'], storage['data'], storage['realtime'], storage['exports']
        )

        assert zip_names(archive_path) == ['a.mp3']

    @pytest.mark.asyncio
    async def test_timeout_raises_archive_error(self, tmp_path, monkeypatch):
        def slow_archive(root, archive_path):
            time.sleep(0.5)
            return archive_path

        monkeypatch.setattr(archiver, 'archive_directory', slow_archive)

        with pytest.raises(ArchiveError, match='timed out'):
            await archive_directory_async(tmp_path, tmp_path / 'job.zip', timeout=0.05)
