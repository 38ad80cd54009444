"""Command line entry point for SpeechGate."""

import argparse
import logging
import signal
import sys
import threading
from typing import Optional

from .audio.capture import AudioCapture
from .config import load_config
from .errors import DeviceUnavailable, InvalidRate
from .pipeline import SpeechPipeline

logger = logging.getLogger(__name__)


def print_devices() -> None:
    """Print the available input devices."""
    for dev in AudioCapture.list_devices():
        print(
            f"ID: {dev['id']}, Name: {dev['name']}, "
            f"MaxInputChannels: {dev['channels']}, Sample rate: {dev['sample_rate']}"
        )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="SpeechGate - send spoken segments from a microphone to a whisper server",
    )
    parser.add_argument(
        "device",
        nargs="?",
        type=int,
        help="Input device index; omit to list devices",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (default: $SPEECHGATE_CONFIG or config/settings.yaml)",
    )
    args = parser.parse_args(argv)

    # If there is no selected device, print all of them and exit
    if args.device is None:
        print_devices()
        return 0

    config = load_config(args.config)
    config.audio.device = args.device
    config.setup_logging()

    # Installed before the VAD model loads
    stop_requested = threading.Event()
    pipeline = None

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}")
        stop_requested.set()
        if pipeline is not None:
            pipeline.request_stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        pipeline = SpeechPipeline(config)
        pipeline.on_transcription(lambda transcript: print(transcript.text, flush=True))
        pipeline.start()
    except (DeviceUnavailable, InvalidRate) as e:
        logger.error(f"Cannot start pipeline: {e}")
        return 1
    except Exception as e:
        logger.error(f"Failed to initialize pipeline: {e}", exc_info=True)
        return 1

    # start() clears the stop event, so re-apply a signal that arrived during it
    if stop_requested.is_set():
        pipeline.request_stop()

    try:
        pipeline.wait()
    finally:
        pipeline.stop()

    if pipeline.fatal_error is not None:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
