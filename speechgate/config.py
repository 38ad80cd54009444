"""Configuration management for SpeechGate."""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class AudioConfig:
    """Audio capture configuration."""
    device: Optional[int] = None
    sample_rate: Optional[int] = None  # None = device default
    channels: int = 1
    frame_size: int = 512 * 9


@dataclass
class SegmenterConfig:
    """Energy gate and segment buffer configuration."""
    min_volume: float = 450.0
    quiet_delay_ms: int = 1000
    max_segment_ms: int = 25000


@dataclass
class VADConfig:
    """Silero voice confirmation configuration."""
    sample_rate: int = 16000
    threshold: float = 0.5
    min_silence_duration_ms: int = 0
    speech_pad_ms: int = 0
    onnx: bool = False


@dataclass
class TranscriptionConfig:
    """Remote whisper server configuration."""
    url: str = "http://127.0.0.1:6001/inference"
    temperature: float = 0.0
    temperature_inc: float = 0.2
    timeout: float = 6.0  # seconds


@dataclass
class PipelineConfig:
    """Queue and shutdown configuration."""
    queue_size: int = 10
    enqueue_timeout: float = 2.0  # seconds
    shutdown_timeout: float = 5.0  # seconds


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# env var -> (section, key, caster)
ENV_OVERRIDES = {
    "SPEECHGATE_MIN_VOLUME": ("segmenter", "min_volume", float),
    "SPEECHGATE_QUIET_DELAY_MS": ("segmenter", "quiet_delay_ms", int),
    "SPEECHGATE_MAX_SEGMENT_MS": ("segmenter", "max_segment_ms", int),
    "SPEECHGATE_WHISPER_URL": ("transcription", "url", str),
    "SPEECHGATE_WHISPER_TIMEOUT": ("transcription", "timeout", float),
    "SPEECHGATE_LOG_LEVEL": ("logging", "level", str),
}


@dataclass
class Config:
    """Main configuration container."""
    audio: AudioConfig = field(default_factory=AudioConfig)
    segmenter: SegmenterConfig = field(default_factory=SegmenterConfig)
    vad: VADConfig = field(default_factory=VADConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Build a configuration from a nested dictionary."""
        return cls(
            audio=AudioConfig(**data.get("audio", {})),
            segmenter=SegmenterConfig(**data.get("segmenter", {})),
            vad=VADConfig(**data.get("vad", {})),
            transcription=TranscriptionConfig(**data.get("transcription", {})),
            pipeline=PipelineConfig(**data.get("pipeline", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}, using defaults")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)

    def apply_env_overrides(self, environ: Optional[dict] = None) -> None:
        """Override tunables from environment variables."""
        environ = os.environ if environ is None else environ

        for env_key, (section, key, caster) in ENV_OVERRIDES.items():
            if env_key not in environ:
                continue
            try:
                value = caster(environ[env_key])
            except ValueError:
                logger.warning(f"Ignoring invalid {env_key}={environ[env_key]!r}")
                continue
            setattr(getattr(self, section), key, value)

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        log_level = getattr(logging, self.logging.level.upper(), logging.INFO)

        handlers = [logging.StreamHandler()]

        if self.logging.file:
            log_path = Path(self.logging.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path))

        logging.basicConfig(
            level=log_level,
            format=self.logging.format,
            handlers=handlers,
        )


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from file and environment."""
    if path is None:
        path = os.environ.get("SPEECHGATE_CONFIG", "config/settings.yaml")
    config = Config.from_yaml(path)
    config.apply_env_overrides()
    return config
