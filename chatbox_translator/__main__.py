"""
Entry point for the chatbox translator.
"""
import argparse
import logging
import signal
import sys

from chatbox_translator.core.app import ChatboxTranslatorApp
from chatbox_translator.utils.audio_utils import get_audio_input_devices
from chatbox_translator.utils.config_manager import ConfigManager, DEFAULT_CONFIG_FILE
from chatbox_translator.utils.error_handling import ConfigError
from chatbox_translator.utils.logging_setup import setup_logging


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="chatbox-translator",
        description="Transcribe (and translate) your microphone into the VRChat chatbox.",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE,
                        help=f"path to the TOML config file (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument("--list-devices", action="store_true",
                        help="print the available input devices and their indices, then exit")
    return parser.parse_args(argv)


def list_devices():
    for name, index in get_audio_input_devices().items():
        label = "default" if index is None else index
        print(f"{label:>8}  {name}")


def main(argv=None):
    """Main entry point for the application."""
    args = parse_args(argv)
    if args.list_devices:
        list_devices()
        return 0

    logger = setup_logging()

    # Configuration errors must stop us before any audio capture begins
    try:
        settings = ConfigManager(args.config).load_settings()
    except ConfigError as e:
        logger.error(str(e))
        return 1

    if settings.debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled, segments will be saved to disk")

    app = ChatboxTranslatorApp(settings)
    # Treat SIGTERM like Ctrl+C
    signal.signal(signal.SIGTERM, lambda signum, frame: app.termination_event.set())
    return app.run()


if __name__ == "__main__":
    sys.exit(main())
