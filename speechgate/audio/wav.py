"""In-memory WAV encoding."""

import io
import wave

import numpy as np

from ..errors import EncodingError


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Encode mono int16 samples as a RIFF/WAVE payload."""
    try:
        pcm = np.asarray(samples, dtype="<i2").tobytes()
        wav_io = io.BytesIO()
        with wave.open(wav_io, "wb") as wf:
            wf.setnchannels(1)
            wf.setsampwidth(2)
            wf.setframerate(int(sample_rate))
            wf.writeframes(pcm)
        return wav_io.getvalue()
    except (wave.Error, ValueError, TypeError) as e:
        raise EncodingError(f"encode wav: {e}") from e
