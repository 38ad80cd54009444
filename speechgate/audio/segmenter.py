"""Segment buffer: groups gated frames into candidate speech segments."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import numpy as np

from ..config import SegmenterConfig
from .gate import EnergyGate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateSegment:
    """Audio suspected to contain speech, at the device sample rate."""
    samples: np.ndarray
    sample_rate: int
    start_time: datetime
    end_time: datetime

    @property
    def duration_ms(self) -> int:
        return int(len(self.samples) * 1000 / self.sample_rate)


class SegmentBuffer:
    """
    Accumulates frames while the energy gate stays hot.

    The buffer keeps recording for ``quiet_delay_ms`` after the last loud
    frame so trailing words are not clipped, and never lets a segment grow
    past ``max_segment_ms`` measured from its first frame.

    Idle -> Accumulating on the first frame inside the quiet window;
    Accumulating -> Idle when the window lapses or the cap is hit.
    """

    def __init__(
        self,
        config: SegmenterConfig,
        sample_rate: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gate = EnergyGate(config)
        self.sample_rate = sample_rate
        self.quiet_delay = config.quiet_delay_ms / 1000
        self.max_duration = config.max_segment_ms / 1000
        self._clock = clock

        self._last_active_at: Optional[float] = None
        self._segment_started_at: Optional[float] = None
        self._segment_start_time: Optional[datetime] = None
        self._frames: list[np.ndarray] = []

    def process(self, frame: np.ndarray, now: Optional[float] = None) -> Optional[CandidateSegment]:
        """
        Feed one frame through the gate and the buffer.

        Args:
            frame: Mono int16 samples from one capture read
            now: Monotonic timestamp in seconds, defaults to the clock

        Returns:
            The flushed segment, or None while idle or accumulating
        """
        if now is None:
            now = self._clock()

        result = self.gate.classify(frame)
        if result.active:
            self._last_active_at = now

        in_window = (
            self._last_active_at is not None
            and now - self._last_active_at < self.quiet_delay
        )

        if in_window and not self._cap_reached(now):
            self._append(frame, now)
            logger.debug(f"listening... {result.metric:.1f}")
            return None

        if not self._frames:
            return None

        segment = self.flush()

        # Hard cap hit mid-speech: this frame opens the next segment
        if in_window:
            self._append(frame, now)

        return segment

    def flush(self) -> Optional[CandidateSegment]:
        """Emit the open segment, if any, and return to idle."""
        if not self._frames:
            return None

        segment = CandidateSegment(
            samples=np.concatenate(self._frames),
            sample_rate=self.sample_rate,
            start_time=self._segment_start_time or datetime.now(),
            end_time=datetime.now(),
        )
        self._frames = []
        self._segment_started_at = None
        self._segment_start_time = None

        logger.debug(f"Candidate segment: {segment.duration_ms}ms")
        return segment

    def reset(self) -> None:
        """Drop buffered audio and forget the last activity."""
        self._frames = []
        self._last_active_at = None
        self._segment_started_at = None
        self._segment_start_time = None

    @property
    def is_accumulating(self) -> bool:
        return bool(self._frames)

    def _cap_reached(self, now: float) -> bool:
        return (
            self._segment_started_at is not None
            and now - self._segment_started_at >= self.max_duration
        )

    def _append(self, frame: np.ndarray, now: float) -> None:
        if not self._frames:
            self._segment_started_at = now
            self._segment_start_time = datetime.now()
        self._frames.append(np.array(frame, dtype=np.int16, copy=True))
