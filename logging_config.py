"""
Logging configuration for ytbeats.
"""
import logging
import sys
from pathlib import Path
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'        # Reset
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{reset}"
        return super().format(record)


def setup_logging(level: str = "WARNING", log_file: Optional[Path] = None) -> None:
    """Setup logging configuration for ytbeats.

    The console level defaults to WARNING so that log lines do not
    interleave with the progress bar while a track is playing.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger('ytbeats')
    logger.setLevel(logging.DEBUG if log_file else numeric_level)

    # Clear existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_formatter = ColoredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module.

    Args:
        name: Module name

    Returns:
        Logger instance
    """
    return logging.getLogger(f'ytbeats.{name}')


# Custom exceptions for better error handling
class YtBeatsError(Exception):
    """Base exception for ytbeats."""
    pass


class SearchError(YtBeatsError):
    """Search provider errors. Never escapes the search adapter."""
    pass


class PlaybackError(YtBeatsError):
    """A single playback attempt failed."""
    pass


class ResolverError(PlaybackError):
    """The resolver produced no stream URL or could not be started."""
    pass


class DecoderError(PlaybackError):
    """The decoder process could not be started."""
    pass


class DecoderExitError(DecoderError):
    """The decoder exited with a failure status."""

    def __init__(self, message: str, code: int):
        super().__init__(message)
        self.code = code


class ConfigurationError(YtBeatsError):
    """Configuration related errors."""
    pass
