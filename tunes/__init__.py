"""
ytbeats - search YouTube and stream the audio from the terminal.
"""

__version__ = "1.0.0"
__author__ = "ytbeats Team"
__description__ = "Search YouTube for music and stream its audio in the terminal."

from . import progress
from . import search
from . import audio
from . import config
from . import state

from .audio import (
    PlaybackOutcome,
    PlaybackSession,
    Settlement,
    StreamResolver,
    Decoder,
    FFPlayDecoder,
    MPVDecoder,
    get_decoder,
    detect_available_decoder,
    play,
)
from .config import AppConfig, ConfigManager, load_config
from .progress import parse_duration, render_progress, format_timestamp
from .search import Track, search_tracks
from .state import SessionState

__all__ = [
    # Audio
    'PlaybackOutcome',
    'PlaybackSession',
    'Settlement',
    'StreamResolver',
    'Decoder',
    'FFPlayDecoder',
    'MPVDecoder',
    'get_decoder',
    'detect_available_decoder',
    'play',

    # Search
    'Track',
    'search_tracks',

    # Progress
    'parse_duration',
    'render_progress',
    'format_timestamp',

    # State
    'SessionState',

    # Config
    'AppConfig',
    'ConfigManager',
    'load_config',
]
