"""
Retention sweep tests.
"""
import logging
import os
import time

from speechdesk.services.housekeeping import sweep_expired

DAY = 24 * 3600


def age(path, seconds):
    """Backdate a path's mtime."""
    stamp = time.time() - seconds
    os.utime(path, (stamp, stamp))


class TestSweepExpired:

    def test_deletes_only_expired_files(self, tmp_path):
        old = tmp_path / 'old.zip'
        fresh = tmp_path / 'fresh.zip'
        old.write_bytes(b'12345')
        fresh.write_bytes(b'x')
        age(old, 2 * DAY)

        report = sweep_expired([tmp_path], ttl_hours=24)

        assert not old.exists()
        assert fresh.exists()
        assert report.deleted_files == 1
        assert report.deleted_bytes == 5
        assert report.kept_files == 1

    def test_emptied_directories_removed(self, tmp_path):
        """Test directory chains emptied by the sweep are pruned."""
        job_dir = tmp_path / 'job-1' / 'digits'
        job_dir.mkdir(parents=True)
        audio = job_dir / '1.mp3'
        audio.write_bytes(b'x')
        age(audio, 2 * DAY)

        sweep_expired([tmp_path], ttl_hours=24)

        assert not (tmp_path / 'job-1').exists()
        assert tmp_path.exists()

    def test_directory_with_fresh_files_kept(self, tmp_path):
        job_dir = tmp_path / 'job-1'
        job_dir.mkdir()
        old = job_dir / 'old.mp3'
        old.write_bytes(b'x')
        age(old, 2 * DAY)
        (job_dir / 'new.mp3').write_bytes(b'y')

        sweep_expired([tmp_path], ttl_hours=24)

        assert job_dir.is_dir()
        assert [p.name for p in job_dir.iterdir()] == ['new.mp3']

    def test_fresh_empty_directory_kept(self, tmp_path):
        """Test a just-created workspace survives before any upload."""
        workspace = tmp_path / 'rt-abcd'
        workspace.mkdir()

        sweep_expired([tmp_path], ttl_hours=24)

        assert workspace.is_dir()

    def test_stale_empty_directory_removed(self, tmp_path):
        workspace = tmp_path / 'rt-abcd'
        workspace.mkdir()
        age(workspace, 2 * DAY)

        sweep_expired([tmp_path], ttl_hours=24)

        assert not workspace.exists()

    def test_protected_directory_untouched(self, tmp_path):
        active = tmp_path / 'job-active'
        active.mkdir()
        audio = active / '1.mp3'
        audio.write_bytes(b'x')
        age(audio, 2 * DAY)

        report = sweep_expired([tmp_path], ttl_hours=24, protected=[active])

        assert audio.exists()
        assert report.deleted_files == 0

    def test_missing_root_ignored(self, tmp_path):
        report = sweep_expired([tmp_path / 'absent'], ttl_hours=24)
        assert report.deleted_files == 0

    def test_explicit_now(self, tmp_path):
        target = tmp_path / 'a.mp3'
        target.write_bytes(b'x')

        sweep_expired([tmp_path], ttl_hours=1, now=time.time() + 2 * 3600)

        assert not target.exists()

    def test_summary_logged(self, tmp_path, caplog):
        old = tmp_path / 'old.zip'
        old.write_bytes(b'x')
        age(old, 2 * DAY)

        with caplog.at_level(logging.INFO, logger='speechdesk.services.housekeeping'):
            sweep_expired([tmp_path], ttl_hours=24)

        assert 'Retention sweep removed 1 files' in caplog.text
