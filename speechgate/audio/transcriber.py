"""Speech-to-text through a remote whisper inference server."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from ..config import TranscriptionConfig
from ..errors import TranscriptionError, TranscriptionTimeout, TranscriptionTransportError

logger = logging.getLogger(__name__)


@dataclass
class TranscriptSegment:
    """A transcribed speech segment."""
    text: str
    timestamp: datetime
    end_timestamp: datetime
    duration_ms: int
    latency_ms: int


class TranscriptionClient:
    """Posts WAV payloads to a whisper server as multipart forms."""

    def __init__(self, config: TranscriptionConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self.url = config.url
        self._client = client or httpx.Client(timeout=config.timeout)

    def _form_fields(self) -> dict[str, str]:
        return {
            "response_format": "json",
            "temperature": f"{self.config.temperature:.2f}",
            "temperature_inc": f"{self.config.temperature_inc:.2f}",
        }

    def transcribe(self, wav_data: bytes) -> str:
        """
        Send a WAV payload and return the transcribed text.

        Raises:
            TranscriptionTimeout: if the server does not answer in time
            TranscriptionTransportError: on a malformed URL, connection errors
                or non-200 replies
            TranscriptionError: if the reply is not ``{"text": ...}`` JSON
        """
        try:
            response = self._client.post(
                self.url,
                files={"file": ("segment.wav", wav_data, "audio/wav")},
                data=self._form_fields(),
                timeout=self.config.timeout,
            )
        except httpx.TimeoutException as e:
            raise TranscriptionTimeout(
                f"no response from {self.url} within {self.config.timeout}s"
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TranscriptionTransportError(f"sending multipart form: {e}") from e

        if response.status_code != httpx.codes.OK:
            raise TranscriptionTransportError(
                f"server responded with status code: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionError(f"body unmarshal: {e}") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
            raise TranscriptionError(f"unexpected response body: {response.text[:200]!r}")

        return payload["text"]

    def close(self) -> None:
        """Release pooled connections."""
        self._client.close()
