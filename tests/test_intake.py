"""
Batch intake tests.
"""
import json

import pytest

from speechdesk.errors import ValidationError
from speechdesk.services.intake import METADATA_FILENAME, parse_csv, validate_submission

ROWS = [
    {'filename': 'digits/1', 'text': 'One'},
    {'filename': 'welcome', 'text': 'Welcome to support'},
]


class TestValidateSubmission:
    """Tests for validate_submission."""

    def test_accepts_valid_rows(self):
        profile, rows = validate_submission(3, ROWS)
        assert profile == '3'
        assert rows == ROWS

    def test_strips_whitespace(self):
        _, rows = validate_submission('3', [{'filename': ' a/b ', 'text': '  Hi  '}])
        assert rows == [{'filename': 'a/b', 'text': 'Hi'}]

    def test_drops_extra_row_keys(self):
        _, rows = validate_submission('3', [{'filename': 'a', 'text': 'Hi', 'voice': 'echo'}])
        assert rows == [{'filename': 'a', 'text': 'Hi'}]

    @pytest.mark.parametrize('profile', [None, '', '   '])
    def test_missing_profile(self, profile):
        with pytest.raises(ValidationError, match='missing profile'):
            validate_submission(profile, ROWS)

    @pytest.mark.parametrize('profile', [3.5, ['3'], {'id': 3}, True])
    def test_profile_wrong_type(self, profile):
        with pytest.raises(ValidationError, match='invalid profile'):
            validate_submission(profile, ROWS)

    def test_integer_profile_accepted(self):
        assert validate_submission(3, ROWS)[0] == '3'

    @pytest.mark.parametrize('rows', [None, [], 'rows', {'filename': 'a', 'text': 'b'}])
    def test_missing_rows(self, rows):
        with pytest.raises(ValidationError, match='no rows'):
            validate_submission('3', rows)

    def test_empty_text_rejects_whole_submission(self):
        """Test one bad row rejects the entire request."""
        rows = ROWS + [{'filename': 'blank', 'text': '  '}]
        with pytest.raises(ValidationError, match='row 3 has no text'):
            validate_submission('3', rows)

    @pytest.mark.parametrize('filename', ['', '../escape', '/etc/passwd', 'a\\b', 'a/../../b'])
    def test_unsafe_filename(self, filename):
        with pytest.raises(ValidationError, match='Invalid request'):
            validate_submission('3', [{'filename': filename, 'text': 'Hi'}])

    def test_non_object_row(self):
        with pytest.raises(ValidationError, match='not an object'):
            validate_submission('3', ['welcome,Hello'])


class TestParseCsv:
    """Tests for CSV parsing."""

    def test_two_columns(self):
        rows = parse_csv(b'welcome,Welcome to support\ndigits/1,One\n')
        assert rows == [
            {'filename': 'welcome', 'text': 'Welcome to support'},
            {'filename': 'digits/1', 'text': 'One'},
        ]

    def test_short_lines_skipped_and_extra_columns_dropped(self):
        rows = parse_csv(b'lonely\n a , b , c \n\n')
        assert rows == [{'filename': 'a', 'text': 'b'}]

    def test_quoted_text_and_bom(self):
        rows = parse_csv(b'\xef\xbb\xbfgreeting,"Hello, world"\n')
        assert rows == [{'filename': 'greeting', 'text': 'Hello, world'}]


class TestBatchIntake:
    """Tests for BatchIntake."""

    @pytest.mark.asyncio
    async def test_submit_enqueues(self, intake, job_store, speech_client):
        """Test submit stores a queued job without calling the speech API."""
        job_id = await intake.submit(3, ROWS, email='ops@example.com')

        job = await job_store.get(job_id)
        assert job.status == 'queued'
        assert job.profile == '3'
        assert job.rows == ROWS
        assert job.email == 'ops@example.com'
        assert speech_client.calls == []

    @pytest.mark.asyncio
    async def test_submit_invalid_stores_nothing(self, intake, job_store):
        with pytest.raises(ValidationError):
            await intake.submit('3', [{'filename': 'a', 'text': ''}])
        assert await job_store.count() == 0

    def test_begin_workspace(self, intake, storage):
        """Test a workspace directory with metadata is created."""
        workspace_id = intake.begin_workspace('3', ROWS, audio_format='wav')

        assert workspace_id.startswith('rt-')
        workspace = storage['realtime'] / workspace_id
        assert workspace.is_dir()
        metadata = json.loads((workspace / METADATA_FILENAME).read_text())
        assert metadata == {'profile': '3', 'audio_format': 'wav', 'rows': ROWS}

    def test_workspace_ids_are_unique(self, intake):
        assert intake.begin_workspace('3', ROWS) != intake.begin_workspace('3', ROWS)

    def test_begin_workspace_invalid(self, intake, storage):
        with pytest.raises(ValidationError):
            intake.begin_workspace('', ROWS)
        assert [p for p in storage['realtime'].iterdir() if p.name.startswith('rt-')] == []
