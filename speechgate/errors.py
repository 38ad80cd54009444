"""Exceptions raised by the SpeechGate pipeline.

Only ``DeviceUnavailable`` and ``InvalidRate`` are fatal. The rest are
per-segment failures: the segment is dropped, the error is logged and the
pipeline carries on with the next one.
"""


class SpeechGateError(Exception):
    """Base class for all SpeechGate errors."""


class DeviceUnavailable(SpeechGateError):
    """The requested capture device does not exist or cannot be opened."""


class InvalidRate(SpeechGateError, ValueError):
    """A sample rate is not a positive number."""


class InferenceError(SpeechGateError):
    """The voice activity model failed on a segment."""


class EncodingError(SpeechGateError):
    """A segment could not be encoded as WAV."""


class TranscriptionError(SpeechGateError):
    """The transcription server did not return usable text."""


class TranscriptionTransportError(TranscriptionError):
    """The request failed at the transport level or got a non-200 reply."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TranscriptionTimeout(TranscriptionError):
    """The transcription server did not answer in time."""
