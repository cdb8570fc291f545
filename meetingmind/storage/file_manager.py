"""File management for session directories, utterance audio and transcripts."""

import json
import logging
import shutil
import random
import string
from pathlib import Path
from datetime import datetime
from typing import Optional, List
from dataclasses import asdict

from ..models.session import SessionInfo
from ..models.transcription import TranscriptEntry

logger = logging.getLogger(__name__)


class FileManager:
    """Manages file storage and organization for recording sessions."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.sessions_dir = self.data_dir / "sessions"
        self.logs_dir = self.data_dir / "logs"

        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.sessions_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def create_session_directory(self) -> str:
        """Create new session directory with timestamp and random suffix.

        Returns:
            Session ID (timestamp-based with random suffix)
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
        session_id = f"{timestamp}_{random_suffix}"
        session_path = self.sessions_dir / session_id
        (session_path / "utterances").mkdir(parents=True, exist_ok=True)

        logger.info(f"Created session directory: {session_path}")
        return session_id

    def get_session_path(self, session_id: str) -> Path:
        return self.sessions_dir / session_id

    def get_utterance_directory(self, session_id: str) -> Path:
        """Directory the VADs write utterance WAV files into."""
        utterance_dir = self.get_session_path(session_id) / "utterances"
        utterance_dir.mkdir(parents=True, exist_ok=True)
        return utterance_dir

    def save_session_info(self, session_info: SessionInfo) -> str:
        """Save session information to JSON file.

        Returns:
            Path to saved session info file
        """
        session_path = self.get_session_path(session_info.session_id)
        session_path.mkdir(parents=True, exist_ok=True)
        info_file = session_path / "session_info.json"

        info_dict = asdict(session_info)
        info_dict['start_time'] = session_info.start_time.isoformat()

        try:
            with open(info_file, 'w') as f:
                json.dump(info_dict, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving session info: {e}")
            raise

        logger.info(f"Session info saved: {info_file}")
        return str(info_file)

    def load_session_info(self, session_id: str) -> Optional[SessionInfo]:
        """Load session information from JSON file.

        Returns:
            SessionInfo object or None if not found
        """
        info_file = self.get_session_path(session_id) / "session_info.json"

        if not info_file.exists():
            logger.warning(f"Session info file not found: {info_file}")
            return None

        try:
            with open(info_file, 'r') as f:
                data = json.load(f)
            data['start_time'] = datetime.fromisoformat(data['start_time'])
            return SessionInfo(**data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading session info: {e}")
            return None

    def save_transcript(self, session_id: str, entries: List[TranscriptEntry]) -> str:
        """Write the reconciled transcript of a session to transcript.json.

        Returns:
            Path to the transcript file
        """
        session_path = self.get_session_path(session_id)
        session_path.mkdir(parents=True, exist_ok=True)
        transcript_file = session_path / "transcript.json"

        try:
            with open(transcript_file, 'w', encoding='utf-8') as f:
                json.dump([asdict(entry) for entry in entries], f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Error saving transcript: {e}")
            raise

        logger.info(f"Transcript saved: {transcript_file} ({len(entries)} entries)")
        return str(transcript_file)

    def load_transcript(self, session_id: str) -> List[TranscriptEntry]:
        transcript_file = self.get_session_path(session_id) / "transcript.json"
        if not transcript_file.exists():
            return []
        with open(transcript_file, 'r', encoding='utf-8') as f:
            return [TranscriptEntry(**item) for item in json.load(f)]

    def list_sessions(self) -> List[str]:
        """List all session IDs that have saved session info, oldest first."""
        sessions = [
            path.name for path in self.sessions_dir.iterdir()
            if path.is_dir() and (path / "session_info.json").exists()
        ]
        sessions.sort()
        logger.debug(f"Found {len(sessions)} sessions")
        return sessions

    def cleanup_old_sessions(self, max_age_days: int = 30) -> int:
        """Clean up old session files.

        Returns:
            Number of sessions cleaned up
        """
        cutoff_time = datetime.now().timestamp() - (max_age_days * 24 * 60 * 60)
        cleaned_count = 0

        for session_path in self.sessions_dir.iterdir():
            if session_path.is_dir() and session_path.stat().st_mtime < cutoff_time:
                try:
                    shutil.rmtree(session_path)
                except OSError as e:
                    logger.error(f"Could not remove session {session_path}: {e}")
                    continue
                cleaned_count += 1
                logger.info(f"Cleaned up old session: {session_path}")

        logger.info(f"Cleaned up {cleaned_count} old sessions")
        return cleaned_count
