"""Unit tests for FileManager class."""

import pytest
import os
import json
from pathlib import Path
from datetime import datetime, timedelta
from unittest.mock import patch

from meetingmind.storage.file_manager import FileManager
from meetingmind.models.session import SessionInfo
from meetingmind.models.transcription import TranscriptEntry


def make_session_info(session_id, **overrides):
    values = dict(
        session_id=session_id,
        start_time=datetime.now(),
        duration_seconds=120.5,
        sample_rate=16000,
        utterances_dispatched={"near": 4, "far": 2},
        utterances_discarded={"near": 1, "far": 0},
        transcript_entries=3,
    )
    values.update(overrides)
    return SessionInfo(**values)


@pytest.mark.unit
class TestFileManager:
    """Test cases for FileManager class."""

    def test_initialization(self, temp_data_dir):
        """Test FileManager initialization."""
        fm = FileManager(temp_data_dir)

        assert fm.data_dir == Path(temp_data_dir)
        assert fm.sessions_dir == Path(temp_data_dir) / "sessions"
        assert fm.logs_dir == Path(temp_data_dir) / "logs"

        assert fm.sessions_dir.exists()
        assert fm.logs_dir.exists()

    def test_create_session_directory(self, temp_data_dir):
        """Test creating session directory with an utterance subdirectory."""
        fm = FileManager(temp_data_dir)

        session_id = fm.create_session_directory()

        # YYYYMMDD_HHMMSS_XXXX
        assert len(session_id) == 20
        assert session_id.count("_") == 2

        session_path = fm.sessions_dir / session_id
        assert session_path.is_dir()
        assert (session_path / "utterances").is_dir()
        assert fm.get_utterance_directory(session_id) == session_path / "utterances"

    def test_get_session_path(self, temp_data_dir):
        """Test getting session path."""
        fm = FileManager(temp_data_dir)

        expected_path = Path(temp_data_dir) / "sessions" / "test_session_123"
        assert fm.get_session_path("test_session_123") == expected_path

    def test_save_session_info(self, temp_data_dir):
        """Test saving session information."""
        fm = FileManager(temp_data_dir)
        session_id = fm.create_session_directory()

        info_path = fm.save_session_info(make_session_info(session_id))

        assert os.path.exists(info_path)
        with open(info_path, 'r') as f:
            data = json.load(f)

        assert data['session_id'] == session_id
        assert data['duration_seconds'] == 120.5
        assert data['sample_rate'] == 16000
        assert data['utterances_dispatched'] == {"near": 4, "far": 2}
        assert data['transcript_entries'] == 3
        assert 'start_time' in data

    def test_load_session_info(self, temp_data_dir):
        """Test loading session information."""
        fm = FileManager(temp_data_dir)
        session_id = fm.create_session_directory()
        original_info = make_session_info(session_id, sample_rate=44100)
        fm.save_session_info(original_info)

        loaded_info = fm.load_session_info(session_id)

        assert loaded_info is not None
        assert loaded_info.session_id == original_info.session_id
        assert loaded_info.sample_rate == 44100
        assert loaded_info.utterances_discarded == original_info.utterances_discarded
        assert loaded_info.start_time == original_info.start_time

    def test_load_session_info_not_found(self, temp_data_dir):
        """Test loading session info for non-existent session."""
        fm = FileManager(temp_data_dir)
        assert fm.load_session_info("nonexistent_session") is None

    def test_error_handling_load_session_info(self, temp_data_dir):
        """Test error handling when loading invalid session info."""
        fm = FileManager(temp_data_dir)
        session_id = fm.create_session_directory()

        info_path = fm.sessions_dir / session_id / "session_info.json"
        with open(info_path, 'w') as f:
            f.write("invalid json content")

        assert fm.load_session_info(session_id) is None

    def test_error_handling_save_session_info(self, temp_data_dir):
        """Test that write failures propagate."""
        fm = FileManager(temp_data_dir)
        session_id = fm.create_session_directory()

        with patch('builtins.open', side_effect=PermissionError("Access denied")):
            with pytest.raises(PermissionError):
                fm.save_session_info(make_session_info(session_id))

    def test_save_and_load_transcript(self, temp_data_dir):
        """Test transcript persistence keeps entry order and text."""
        fm = FileManager(temp_data_dir)
        session_id = fm.create_session_directory()
        entries = [
            TranscriptEntry(id=1, source="near", text="hello there", created_at=0.0, last_updated_at=2000.0),
            TranscriptEntry(id=2, source="far", text="héllo back", created_at=50.0, last_updated_at=50.0),
        ]

        path = fm.save_transcript(session_id, entries)

        assert Path(path).name == "transcript.json"
        assert fm.load_transcript(session_id) == entries

    def test_load_transcript_missing(self, temp_data_dir):
        fm = FileManager(temp_data_dir)
        assert fm.load_transcript("nothing_here") == []

    def test_list_sessions_empty(self, temp_data_dir):
        """Test listing sessions when no sessions exist."""
        fm = FileManager(temp_data_dir)
        assert fm.list_sessions() == []

    def test_list_sessions_with_data(self, temp_data_dir):
        """Test listing sessions with multiple sessions."""
        fm = FileManager(temp_data_dir)

        session_ids = []
        for _ in range(3):
            session_id = fm.create_session_directory()
            session_ids.append(session_id)
            fm.save_session_info(make_session_info(session_id))

        # A session without info is not listed
        fm.create_session_directory()

        assert fm.list_sessions() == sorted(session_ids)

    def test_cleanup_old_sessions(self, temp_data_dir):
        """Test cleaning up old sessions."""
        fm = FileManager(temp_data_dir)

        old_session_path = fm.sessions_dir / "old_session"
        old_session_path.mkdir()
        old_timestamp = (datetime.now() - timedelta(days=35)).timestamp()
        os.utime(old_session_path, (old_timestamp, old_timestamp))

        recent_session_id = fm.create_session_directory()

        cleaned_count = fm.cleanup_old_sessions(max_age_days=30)

        assert cleaned_count == 1
        assert not old_session_path.exists()
        assert fm.get_session_path(recent_session_id).exists()
