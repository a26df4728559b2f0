#!/usr/bin/env python3
"""
ytbeats - search YouTube for music and stream it from the terminal.

This module provides the interactive loop:
- Free-text search prompt
- Result selection prompt
- Audio streaming via yt-dlp and ffplay/mpv with a live progress bar
- Escape stops the track and shows the same results again
"""

__version__ = "1.0.0"
__author__ = "ytbeats Team"
__description__ = "Search YouTube for music and stream its audio in the terminal."

# =============================================================================
# Imports
# =============================================================================
import sys
from pathlib import Path
from typing import Callable, List, Optional

import questionary

from logging_config import setup_logging, get_logger
from tunes.audio import PlaybackOutcome, StreamResolver, get_decoder, play
from tunes.config import AppConfig, load_config
from tunes.search import Track, search_tracks
from tunes.state import (
    AWAITING_QUERY,
    AWAITING_SELECTION,
    FINISHED,
    SessionState,
)

logger = get_logger('main')


# =============================================================================
# Prompts
# =============================================================================
def ask_query() -> Optional[str]:
    """Ask for a search query. Returns None when the prompt is cancelled."""
    return questionary.text("Search for music:").ask()


def ask_track(tracks: List[Track]) -> Optional[Track]:
    """Let the user pick one of ``tracks``. Returns None when cancelled."""
    choices = [questionary.Choice(track.label, value=track) for track in tracks]
    return questionary.select("Select a track:", choices=choices).ask()


# =============================================================================
# Session Loop
# =============================================================================
def make_player(config: AppConfig) -> Callable[[Track], PlaybackOutcome]:
    """Build the play function for the loop from the configured commands."""
    resolver = StreamResolver(config.resolver, config.audio_format)

    def play_track(track: Track) -> PlaybackOutcome:
        return play(track.url, track.duration_text, resolver=resolver, decoder=get_decoder(config.decoder))

    return play_track


def run_session_loop(
    ask_query: Callable[[], Optional[str]] = ask_query,
    ask_track: Callable[[List[Track]], Optional[Track]] = ask_track,
    search: Callable[[str], List[Track]] = search_tracks,
    play_track: Optional[Callable[[Track], PlaybackOutcome]] = None,
) -> SessionState:
    """Run search -> select -> play until a prompt is cancelled.

    A track stopped with Escape brings back the same result list; a track
    that finished goes back to the query prompt. Cancelling either prompt
    ends the loop. Errors in one cycle are logged and the loop starts over.

    Returns:
        The final session state
    """
    if play_track is None:
        play_track = make_player(AppConfig())

    session = SessionState()

    while True:
        session.to(AWAITING_QUERY)
        try:
            query = ask_query()
            if query is None:
                session.to(FINISHED)
                print("\n👋 Goodbye!\n")
                return session

            if not query.strip():
                print("Please enter a search query\n")
                continue

            session.new_search()
            print("\n🔍 Searching...\n")
            session.results = search(query.strip())

            if not session.results:
                print("No results found\n")
                continue

            while session.results:
                session.to(AWAITING_SELECTION)
                track = ask_track(session.results)
                if track is None:
                    session.to(FINISHED)
                    print("\n👋 Goodbye!\n")
                    return session

                session.select(track)
                print(f"\n▶️  Now playing: {track.title}\n")
                print("Press Esc to stop\n")
                outcome = play_track(track)

                if not outcome.stopped_by_user:
                    break
        except Exception as e:
            logger.error(f"Error: {e}")
            logger.debug("Cycle failed", exc_info=True)
            print("\n")


# =============================================================================
# Main Function
# =============================================================================
def _option_value(argv: List[str], option: str) -> Optional[str]:
    if option in argv:
        index = argv.index(option)
        if index + 1 < len(argv):
            return argv[index + 1]
    return None


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for ytbeats."""
    argv = sys.argv[1:] if argv is None else argv

    if "--version" in argv or "-v" in argv:
        print(f"ytbeats {__version__}")
        print(f"{__description__}")
        print(f"Author: {__author__}")
        return
    if "--help" in argv or "-h" in argv:
        print(f"ytbeats {__version__}")
        print("")
        print("Usage:")
        print("  ytbeats                  # Run in interactive mode")
        print("  ytbeats --config <file>  # Use another config file")
        print("  ytbeats --debug          # Verbose logging")
        print("  ytbeats --version        # Show version info")
        print("  ytbeats --help           # Show this help")
        print("")
        print("Press Esc while a track plays to stop it, Ctrl+C to quit.")
        return

    config_path = _option_value(argv, "--config")
    manager = load_config(Path(config_path).expanduser() if config_path else None)
    config = manager.config

    log_level = "DEBUG" if "--debug" in argv else config.log_level
    log_file = Path(config.log_file).expanduser() if config.log_file else None
    setup_logging(log_level, log_file)

    if not sys.stdin.isatty():
        print("Error: Must run in interactive terminal")
        print("Usage: ytbeats")
        sys.exit(1)

    print("🎵 YouTube Music Player\n")

    try:
        run_session_loop(
            search=lambda query: search_tracks(query, config.search_limit),
            play_track=make_player(config),
        )
    except KeyboardInterrupt:
        print("\n\n👋 Goodbye!\n")
    sys.exit(0)


if __name__ == "__main__":
    main()
