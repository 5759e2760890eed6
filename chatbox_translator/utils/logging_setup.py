"""
Logging setup for the chatbox translator.
"""

import logging
import os
import sys
from datetime import datetime

APP_DIR_NAME = ".chatbox_translator"


def setup_logging(level=logging.INFO, logs_dir=None):
    """
    Set up logging for the application.

    Args:
        level: Logging level (default: INFO)
        logs_dir: Directory for log files (default: ~/.chatbox_translator/logs)

    Returns:
        Logger instance
    """
    if logs_dir is None:
        logs_dir = os.path.join(os.path.expanduser("~"), APP_DIR_NAME, "logs")

    # One log file per day
    timestamp = datetime.now().strftime("%Y-%m-%d")
    log_file = os.path.join(logs_dir, f"chatbox_translator_{timestamp}.log")

    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    root_logger = logging.getLogger()
    # Drop handlers left over from a previous setup to avoid duplicate lines
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)
    formatter = logging.Formatter(log_format)

    try:
        os.makedirs(logs_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except OSError as e:
        # Console logging still works without the file
        print(f"Error setting up file logging: {e}", file=sys.stderr)
        log_file = None

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    # Third-party HTTP clients are chatty at DEBUG
    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))

    logger = logging.getLogger()
    logger.info("Logging initialized (using UTF-8 for file)")
    if log_file:
        logger.info(f"Log file: {log_file}")

    return logger
