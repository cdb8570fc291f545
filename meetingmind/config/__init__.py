"""Simple YAML configuration loader for MeetingMind."""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "meetingmind.yaml"


@dataclass
class VadSettings:
    """Voice activity detection parameters for one source."""
    speech_threshold: float = 1000.0
    silence_threshold: float = 500.0
    silence_duration_ms: float = 1200.0
    min_utterance_ms: float = 500.0
    max_utterance_ms: float = 15000.0
    max_buffered_frames: int = 2000
    sample_rate: int = 16000
    channels: int = 1

    def __post_init__(self):
        if self.speech_threshold <= self.silence_threshold:
            raise ValueError(
                f"speech_threshold ({self.speech_threshold}) must be greater than "
                f"silence_threshold ({self.silence_threshold})")
        if self.min_utterance_ms > self.max_utterance_ms:
            raise ValueError("min_utterance_ms cannot exceed max_utterance_ms")
        if self.max_buffered_frames < 1:
            raise ValueError("max_buffered_frames must be at least 1")
        if self.sample_rate <= 0 or self.channels <= 0:
            raise ValueError("sample_rate and channels must be positive")


@dataclass
class TranscriptSettings:
    """Transcript reconciliation parameters."""
    similarity_threshold: float = 0.7
    continuation_window_ms: float = 10000.0
    max_entries: int = 100

    def __post_init__(self):
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError("similarity_threshold must be between 0 and 1")
        if self.max_entries < 1:
            raise ValueError("max_entries must be at least 1")


class MeetingMindConfig:
    """MeetingMind configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for meetingmind.yaml
                        in current directory and parent directories, and falls back
                        to built-in defaults when there is none.
        """
        if config_path is None:
            found = self._find_config_file()
            if found is None:
                logger.warning(f"No {DEFAULT_CONFIG_NAME} found, using default configuration")
                self.config_file = Path.cwd() / DEFAULT_CONFIG_NAME
                self.config: Dict[str, Any] = {}
                return
            config_path = str(found)

        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    @staticmethod
    def _find_config_file() -> Optional[Path]:
        directory = Path.cwd()
        for candidate_dir in [directory, *directory.parents]:
            candidate = candidate_dir / DEFAULT_CONFIG_NAME
            if candidate.exists():
                return candidate
        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (('google_cloud', 'credentials_path'),
                             ('storage', 'data_directory'),
                             ('logging', 'file_path')):
            if section in config and key in (config[section] or {}):
                value = config[section][key]
                if value and not os.path.isabs(value):
                    config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'vad.speech_threshold').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'transcript.max_entries')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_vad_settings(self) -> VadSettings:
        """Build validated VAD settings from the 'vad' and 'audio' sections."""
        defaults = VadSettings()
        return VadSettings(
            speech_threshold=float(self.get('vad.speech_threshold', defaults.speech_threshold)),
            silence_threshold=float(self.get('vad.silence_threshold', defaults.silence_threshold)),
            silence_duration_ms=float(self.get('vad.silence_duration_ms', defaults.silence_duration_ms)),
            min_utterance_ms=float(self.get('vad.min_utterance_ms', defaults.min_utterance_ms)),
            max_utterance_ms=float(self.get('vad.max_utterance_ms', defaults.max_utterance_ms)),
            max_buffered_frames=int(self.get('vad.max_buffered_frames', defaults.max_buffered_frames)),
            sample_rate=int(self.get('audio.sample_rate', defaults.sample_rate)),
            channels=int(self.get('audio.channels', defaults.channels)),
        )

    def get_transcript_settings(self) -> TranscriptSettings:
        """Build validated reconciler settings from the 'transcript' section."""
        defaults = TranscriptSettings()
        return TranscriptSettings(
            similarity_threshold=float(self.get('transcript.similarity_threshold',
                                                defaults.similarity_threshold)),
            continuation_window_ms=float(self.get('transcript.continuation_window_ms',
                                                  defaults.continuation_window_ms)),
            max_entries=int(self.get('transcript.max_entries', defaults.max_entries)),
        )

    def get_google_credentials_path(self) -> str:
        """Absolute path of the Google service account file.

        Raises:
            ValueError: If no credentials path is configured
            FileNotFoundError: If the configured file does not exist
        """
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            raise ValueError("Google credentials path not configured in meetingmind.yaml")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_openai_api_key(self) -> str:
        """Get the OpenAI API key from config or the OPENAI_API_KEY environment variable."""
        api_key = self.get('openai.api_key') or os.environ.get('OPENAI_API_KEY')
        if not api_key:
            raise ValueError("OpenAI API key not configured (openai.api_key or OPENAI_API_KEY)")
        return api_key

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
