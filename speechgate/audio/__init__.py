"""Audio pipeline components for gated speech capture and transcription."""

from .gate import EnergyGate, GateResult
from .resample import resample
from .segmenter import CandidateSegment, SegmentBuffer
from .transcriber import TranscriptionClient, TranscriptSegment
from .vad import SpeechSegment, VoiceActivityDetector
from .wav import encode_wav

__all__ = [
    "CandidateSegment",
    "EnergyGate",
    "GateResult",
    "SegmentBuffer",
    "SpeechSegment",
    "TranscriptSegment",
    "TranscriptionClient",
    "VoiceActivityDetector",
    "encode_wav",
    "resample",
]
