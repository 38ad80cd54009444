"""Audio capture module for continuous microphone input."""

import logging
import threading
from typing import Callable, Optional

import numpy as np
import sounddevice as sd

from ..config import AudioConfig
from ..errors import DeviceUnavailable

logger = logging.getLogger(__name__)


class AudioCapture:
    """Blocking-read microphone capture owned by a single thread."""

    def __init__(self, config: AudioConfig):
        self.config = config
        self.frame_size = config.frame_size
        self.channels = config.channels
        self.sample_rate: Optional[int] = config.sample_rate
        self.device_name: Optional[str] = None

        self._stream: Optional[sd.InputStream] = None
        self._thread: Optional[threading.Thread] = None
        self.error: Optional[Exception] = None

    def open(self) -> None:
        """
        Resolve the configured device and open an input stream on it.

        Raises:
            DeviceUnavailable: if the index is invalid or PortAudio refuses it
        """
        index = self.config.device
        try:
            devices = sd.query_devices()
        except sd.PortAudioError as e:
            raise DeviceUnavailable(f"query devices: {e}") from e

        if index is None or not 0 <= index < len(devices):
            raise DeviceUnavailable(f"No audio device with index {index}")

        device = devices[index]
        if device["max_input_channels"] < 1:
            raise DeviceUnavailable(f"Device {index} ({device['name']}) has no input channels")

        self.device_name = device["name"]
        self.channels = min(self.channels, device["max_input_channels"])
        if self.sample_rate is None:
            self.sample_rate = int(device["default_samplerate"])

        logger.info(f"Selected device: {self.device_name} ({self.sample_rate}Hz, {self.channels}ch)")

        try:
            self._stream = sd.InputStream(
                device=index,
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=self.frame_size,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            self._stream = None
            raise DeviceUnavailable(f"opening stream: {e}") from e

    def read_frame(self) -> np.ndarray:
        """Block until one frame is available and return it as mono int16."""
        data, overflowed = self._stream.read(self.frame_size)
        if overflowed:
            logger.warning("Audio input overflow, samples were dropped")

        data = np.asarray(data, dtype=np.int16).reshape(len(data), -1)
        if data.shape[1] == 1:
            return data[:, 0].copy()
        return data.mean(axis=1).astype(np.int16)

    def run(self, on_frame: Callable[[np.ndarray], None], stop_event: threading.Event) -> None:
        """
        Read frames until the stop event is set, then close the device.

        An unexpected failure is kept in ``error`` and sets the stop event so
        the rest of the pipeline shuts down too.
        """
        try:
            while not stop_event.is_set():
                try:
                    frame = self.read_frame()
                except sd.PortAudioError as e:
                    logger.error(f"Reading from stream: {e}")
                    stop_event.wait(0.1)
                    continue
                on_frame(frame)
        except Exception as e:
            logger.critical(f"Audio capture failed: {e}", exc_info=True)
            self.error = e
            stop_event.set()
        finally:
            self.close()
            logger.info("Audio capture stopped")

    def start(self, on_frame: Callable[[np.ndarray], None], stop_event: threading.Event) -> None:
        """Open the device and run the capture loop in a background thread."""
        if self._thread is not None:
            logger.warning("Audio capture already running")
            return

        if self._stream is None:
            self.open()
        self._thread = threading.Thread(
            target=self.run, args=(on_frame, stop_event), name="capture", daemon=True
        )
        self._thread.start()
        logger.info("Audio capture started")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the capture thread to exit."""
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Capture thread did not exit in time")
            else:
                self._thread = None

    def close(self) -> None:
        """Stop and close the input stream."""
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        except sd.PortAudioError as e:
            logger.error(f"Closing stream: {e}")
        finally:
            self._stream = None

    def is_running(self) -> bool:
        """Check if the capture thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    @staticmethod
    def list_devices() -> list[dict]:
        """List available audio input devices."""
        devices = []
        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append({
                    "id": i,
                    "name": device["name"],
                    "channels": device["max_input_channels"],
                    "sample_rate": device["default_samplerate"],
                })
        return devices
