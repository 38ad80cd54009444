"""Voice confirmation using Silero VAD."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime

import numpy as np
import torch

from ..config import VADConfig
from ..errors import InferenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpeechSegment:
    """A segment normalized to the VAD sample rate."""
    audio: np.ndarray
    sample_rate: int
    start_time: datetime
    end_time: datetime

    @property
    def duration_ms(self) -> int:
        return int(len(self.audio) * 1000 / self.sample_rate)


class VoiceActivityDetector:
    """Second-stage speech check using the Silero VAD model."""

    def __init__(self, config: VADConfig):
        self.config = config
        self.sample_rate = config.sample_rate
        self.threshold = config.threshold

        self._model = None
        self._get_speech_timestamps = None
        self._load_model()

    def _load_model(self) -> None:
        """Load the Silero VAD model."""
        logger.info("Loading Silero VAD model...")
        try:
            self._model, utils = torch.hub.load(
                repo_or_dir="snakers4/silero-vad",
                model="silero_vad",
                force_reload=False,
                onnx=self.config.onnx,
            )
            self._get_speech_timestamps = utils[0]
            logger.info("Silero VAD model loaded")
        except Exception as e:
            logger.error(f"Failed to load Silero VAD: {e}")
            raise

    def detect_speech(self, audio: np.ndarray) -> list[dict]:
        """
        Find speech spans in int16 audio at the VAD sample rate.

        Returns:
            List of ``{"start": ..., "end": ...}`` sample offsets

        Raises:
            InferenceError: if the model fails
        """
        samples = torch.from_numpy(np.asarray(audio, dtype=np.float32) / 32768.0)

        try:
            with torch.no_grad():
                return self._get_speech_timestamps(
                    samples,
                    self._model,
                    threshold=self.threshold,
                    sampling_rate=self.sample_rate,
                    min_silence_duration_ms=self.config.min_silence_duration_ms,
                    speech_pad_ms=self.config.speech_pad_ms,
                )
        except Exception as e:
            raise InferenceError(f"detect voice: {e}") from e

    def confirm(self, segment: SpeechSegment) -> bool:
        """Return True if the segment contains at least one speech span."""
        start = time.monotonic()
        spans = self.detect_speech(segment.audio)
        detected = len(spans) > 0
        logger.debug(
            f"Voice detecting result: {detected} "
            f"({len(spans)} spans, {(time.monotonic() - start) * 1000:.0f}ms)"
        )
        return detected
