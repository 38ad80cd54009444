"""Staged pipeline from microphone frames to transcribed text."""

import logging
import queue
import threading
import time
from typing import Callable, Optional

import numpy as np

from .audio.capture import AudioCapture
from .audio.resample import resample
from .audio.segmenter import CandidateSegment, SegmentBuffer
from .audio.transcriber import TranscriptionClient, TranscriptSegment
from .audio.vad import SpeechSegment, VoiceActivityDetector
from .audio.wav import encode_wav
from .config import Config
from .errors import EncodingError, InferenceError, InvalidRate, TranscriptionError

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.5  # seconds


class Dispatcher:
    """Encodes confirmed segments as WAV and submits them for transcription."""

    def __init__(self, client: TranscriptionClient):
        self.client = client

    def dispatch(self, segment: SpeechSegment) -> tuple[Optional[str], Optional[Exception]]:
        """
        Transcribe one segment.

        Returns:
            ``(text, None)`` on success, ``(None, error)`` if encoding or the
            request failed. Failures are logged here and never raised.
        """
        start = time.monotonic()
        try:
            wav_data = encode_wav(segment.audio, segment.sample_rate)
            text = self.client.transcribe(wav_data)
        except (EncodingError, TranscriptionError) as e:
            elapsed = time.monotonic() - start
            logger.error(
                f"Dispatch failed for {segment.duration_ms}ms segment "
                f"after {elapsed:.2f}s: {type(e).__name__}: {e}"
            )
            return None, e

        logger.info(f"done in: {time.monotonic() - start:.2f}s, result: {text}")
        return text, None


class SpeechPipeline:
    """
    Runs capture, voice confirmation and dispatch on separate threads.

    Stages hand segments over through bounded queues. A producer waits up
    to ``enqueue_timeout`` for room and then drops the segment, so a slow
    transcription server can delay segments but never stall capture.
    """

    def __init__(
        self,
        config: Config,
        capture: Optional[AudioCapture] = None,
        vad: Optional[VoiceActivityDetector] = None,
        client: Optional[TranscriptionClient] = None,
    ):
        self.config = config
        self.target_rate = config.vad.sample_rate
        self.enqueue_timeout = config.pipeline.enqueue_timeout
        self.shutdown_timeout = config.pipeline.shutdown_timeout

        self.capture = capture or AudioCapture(config.audio)
        self.vad = vad or VoiceActivityDetector(config.vad)
        self.client = client or TranscriptionClient(config.transcription)
        self.dispatcher = Dispatcher(self.client)
        self.segmenter: Optional[SegmentBuffer] = None

        self._candidates: queue.Queue[CandidateSegment] = queue.Queue(maxsize=config.pipeline.queue_size)
        self._confirmed: queue.Queue[SpeechSegment] = queue.Queue(maxsize=config.pipeline.queue_size)
        self._stop_event = threading.Event()
        self._workers: list[threading.Thread] = []
        self._running = False
        self.fatal_error: Optional[Exception] = None

        self._on_transcription: list[Callable[[TranscriptSegment], None]] = []
        self._on_error: list[Callable[[SpeechSegment, Exception], None]] = []

        self._stats_lock = threading.Lock()
        self.stats = {
            "candidates": 0,
            "confirmed": 0,
            "rejected": 0,
            "transcribed": 0,
            "failed": 0,
            "dropped": 0,
        }

    # ---- callbacks ----

    def on_transcription(self, callback: Callable[[TranscriptSegment], None]) -> None:
        """Register callback for transcription results."""
        self._on_transcription.append(callback)

    def on_error(self, callback: Callable[[SpeechSegment, Exception], None]) -> None:
        """Register callback for segments that failed dispatch."""
        self._on_error.append(callback)

    def _count(self, key: str) -> None:
        # stages update counters from different threads
        with self._stats_lock:
            self.stats[key] += 1

    # ---- capture stage ----

    def _capture_frame(self, frame: np.ndarray) -> None:
        """Capture-thread callback; any failure stops the whole pipeline."""
        try:
            self.handle_frame(frame)
        except Exception as e:
            logger.critical(f"Error in capture stage: {e}", exc_info=True)
            self.fatal_error = e
            self._stop_event.set()

    def handle_frame(self, frame: np.ndarray) -> None:
        """Gate one captured frame and queue any flushed candidate."""
        segment = self.segmenter.process(frame)
        if segment is not None:
            self._count("candidates")
            logger.info(f"Candidate segment: {segment.duration_ms}ms")
            self._enqueue(self._candidates, segment, "candidate")

    def _enqueue(self, target: queue.Queue, segment, stage: str) -> None:
        try:
            target.put(segment, timeout=self.enqueue_timeout)
        except queue.Full:
            self._count("dropped")
            logger.warning(
                f"{stage} queue full for {self.enqueue_timeout}s, "
                f"dropping {segment.duration_ms}ms segment"
            )

    # ---- confirmation stage ----

    def normalize(self, candidate: CandidateSegment) -> SpeechSegment:
        """Resample a candidate to the VAD sample rate."""
        return SpeechSegment(
            audio=resample(candidate.samples, candidate.sample_rate, self.target_rate),
            sample_rate=self.target_rate,
            start_time=candidate.start_time,
            end_time=candidate.end_time,
        )

    def confirm_candidate(self, candidate: CandidateSegment) -> Optional[SpeechSegment]:
        """Normalize and voice-check a candidate; None if it is dropped."""
        segment = self.normalize(candidate)

        try:
            detected = self.vad.confirm(segment)
        except InferenceError as e:
            self._count("failed")
            logger.error(f"Voice confirmation failed for {segment.duration_ms}ms segment: {e}")
            return None

        if not detected:
            self._count("rejected")
            logger.debug(f"No voice in {segment.duration_ms}ms segment, dropped")
            return None

        self._count("confirmed")
        logger.info("Sending to whisper...")
        return segment

    def _confirmation_loop(self) -> None:
        """Process candidates from queue."""
        while not self._stop_event.is_set():
            try:
                candidate = self._candidates.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue

            try:
                segment = self.confirm_candidate(candidate)
            except InvalidRate as e:
                logger.critical(f"Cannot resample candidate segments: {e}")
                self.fatal_error = e
                self._stop_event.set()
                return
            except Exception as e:
                logger.error(f"Error in confirmation stage: {e}", exc_info=True)
                continue

            if segment is not None:
                self._enqueue(self._confirmed, segment, "confirmed")

    # ---- dispatch stage ----

    def dispatch_segment(self, segment: SpeechSegment) -> tuple[Optional[str], Optional[Exception]]:
        """Dispatch one confirmed segment and notify callbacks."""
        start = time.monotonic()
        text, error = self.dispatcher.dispatch(segment)

        if error is not None:
            self._count("failed")
            for callback in self._on_error:
                try:
                    callback(segment, error)
                except Exception as e:
                    logger.error(f"Error callback error: {e}")
            return text, error

        self._count("transcribed")
        transcript = TranscriptSegment(
            text=text,
            timestamp=segment.start_time,
            end_timestamp=segment.end_time,
            duration_ms=segment.duration_ms,
            latency_ms=int((time.monotonic() - start) * 1000),
        )
        for callback in self._on_transcription:
            try:
                callback(transcript)
            except Exception as e:
                logger.error(f"Transcription callback error: {e}")
        return text, error

    def _dispatch_loop(self) -> None:
        """Process confirmed segments from queue, in arrival order."""
        while not self._stop_event.is_set():
            try:
                segment = self._confirmed.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue

            try:
                self.dispatch_segment(segment)
            except Exception as e:
                logger.error(f"Error in dispatch stage: {e}", exc_info=True)

    # ---- lifecycle ----

    def start(self) -> None:
        """
        Open the capture device and start all stages.

        Raises:
            DeviceUnavailable: if the capture device cannot be opened
            InvalidRate: if the device reports a non-positive sample rate
        """
        if self._running:
            logger.warning("Pipeline already running")
            return

        logger.info("Starting pipeline...")
        self._stop_event.clear()

        self.capture.open()
        if not self.capture.sample_rate or self.capture.sample_rate <= 0:
            self.capture.close()
            raise InvalidRate(f"Device sample rate is not positive: {self.capture.sample_rate}")

        self.segmenter = SegmentBuffer(self.config.segmenter, self.capture.sample_rate)

        self._workers = [
            threading.Thread(target=self._confirmation_loop, name="confirmation", daemon=True),
            threading.Thread(target=self._dispatch_loop, name="dispatch", daemon=True),
        ]
        for worker in self._workers:
            worker.start()

        self.capture.start(self._capture_frame, self._stop_event)
        self._running = True
        logger.info("Pipeline started")

    def request_stop(self) -> None:
        """Signal every stage to stop; safe to call from a signal handler."""
        self._stop_event.set()

    def wait(self) -> None:
        """Block until a stop has been requested."""
        while not self._stop_event.wait(1.0):
            pass

    def stop(self) -> None:
        """Stop all stages gracefully and abandon pending segments."""
        if not self._running:
            return

        logger.info("Stopping pipeline...")
        self._running = False
        self._stop_event.set()

        self.capture.join(timeout=self.shutdown_timeout)
        if self.fatal_error is None and self.capture.error is not None:
            self.fatal_error = self.capture.error

        pending = None
        if self.segmenter is not None and not self.capture.is_running():
            pending = self.segmenter.flush()
        if pending is not None:
            logger.info(f"Abandoning open {pending.duration_ms}ms segment")

        for worker in self._workers:
            worker.join(timeout=self.shutdown_timeout)
            if worker.is_alive():
                logger.warning(f"{worker.name} thread did not finish within {self.shutdown_timeout}s")
        self._workers = []

        abandoned = _drain(self._candidates) + _drain(self._confirmed)
        if abandoned:
            logger.info(f"Abandoned {abandoned} pending segments")

        self.client.close()
        logger.info("Pipeline stopped")

    def is_running(self) -> bool:
        """Check if the pipeline is running."""
        return self._running

    def get_status(self) -> dict:
        """Get current status of the pipeline."""
        with self._stats_lock:
            stats = dict(self.stats)
        return {
            "running": self._running,
            "capture_running": self.capture.is_running(),
            "accumulating": self.segmenter.is_accumulating if self.segmenter else False,
            "pending_candidates": self._candidates.qsize(),
            "pending_confirmed": self._confirmed.qsize(),
            **stats,
        }


def _drain(target: queue.Queue) -> int:
    count = 0
    while True:
        try:
            target.get_nowait()
        except queue.Empty:
            return count
        count += 1
