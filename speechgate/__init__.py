"""SpeechGate - gated microphone capture for remote whisper transcription."""

__version__ = "0.1.0"
