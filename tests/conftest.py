"""Pytest configuration and shared fixtures."""

import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest


# ==================== Path Fixtures ====================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir):
    """Create a temporary config file."""
    config_path = temp_dir / "settings.yaml"
    config_content = """
audio:
  device: 2
  frame_size: 1024

segmenter:
  min_volume: 300.0
  quiet_delay_ms: 800
  max_segment_ms: 20000

vad:
  threshold: 0.6

transcription:
  url: "http://whisper.local:9000/inference"
  timeout: 3.0

pipeline:
  queue_size: 4

logging:
  level: "DEBUG"
  file: null
"""
    config_path.write_text(config_content)
    return config_path


# ==================== Audio Fixtures ====================

FRAME_SIZE = 4608


def make_tone(frequency=440.0, sample_rate=48000, duration=1.0, amplitude=10000):
    """Generate an int16 sine tone."""
    t = np.arange(int(round(sample_rate * duration))) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.int16)


@pytest.fixture
def tone():
    """Factory for int16 sine tones."""
    return make_tone


@pytest.fixture
def loud_frame():
    """A frame well above the default minimum volume."""
    return make_tone(duration=FRAME_SIZE / 48000)


@pytest.fixture
def silent_frame():
    """An all-zero frame."""
    return np.zeros(FRAME_SIZE, dtype=np.int16)


@pytest.fixture
def quiet_frame():
    """Low-level noise below the default minimum volume."""
    rng = np.random.default_rng(0)
    return (rng.standard_normal(FRAME_SIZE) * 50).astype(np.int16)


@pytest.fixture
def speech_segment():
    """A normalized 16kHz segment."""
    from speechgate.audio.vad import SpeechSegment
    return SpeechSegment(
        audio=make_tone(sample_rate=16000, duration=0.5),
        sample_rate=16000,
        start_time=datetime.now(),
        end_time=datetime.now(),
    )


@pytest.fixture
def candidate_segment():
    """A 48kHz candidate segment."""
    from speechgate.audio.segmenter import CandidateSegment
    return CandidateSegment(
        samples=make_tone(sample_rate=48000, duration=0.5),
        sample_rate=48000,
        start_time=datetime.now(),
        end_time=datetime.now(),
    )


# ==================== Mock Fixtures ====================

@pytest.fixture
def mock_get_speech_timestamps():
    """Mock Silero get_speech_timestamps that always finds one span."""
    return MagicMock(return_value=[{"start": 0, "end": 4000}])


@pytest.fixture
def mock_vad_hub(mock_get_speech_timestamps):
    """Return value for a patched torch.hub.load."""
    mock_model = MagicMock()
    utils = (mock_get_speech_timestamps, MagicMock(), MagicMock(), MagicMock(), MagicMock())
    return mock_model, utils


@pytest.fixture
def mock_devices():
    """Device list as returned by sounddevice.query_devices."""
    return [
        {"name": "Built-in Output", "max_input_channels": 0, "default_samplerate": 48000.0},
        {"name": "USB Microphone", "max_input_channels": 1, "default_samplerate": 48000.0},
        {"name": "Stereo Interface", "max_input_channels": 2, "default_samplerate": 44100.0},
    ]
