"""
Session state for the interactive loop.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from logging_config import get_logger
from tunes.search import Track

logger = get_logger('state')

AWAITING_QUERY = "awaiting_query"
SEARCHING = "searching"
AWAITING_SELECTION = "awaiting_selection"
PLAYING = "playing"
FINISHED = "finished"


@dataclass
class SessionState:
    """State owned by the session loop: current phase, results and selection."""
    phase: str = AWAITING_QUERY
    results: List[Track] = field(default_factory=list)
    selection: Optional[Track] = None

    def to(self, phase: str) -> None:
        logger.debug(f"Session phase: {self.phase} -> {phase}")
        self.phase = phase

    def new_search(self) -> None:
        """Drop the previous result list before a new query."""
        self.results = []
        self.selection = None
        self.to(SEARCHING)

    def select(self, track: Track) -> None:
        self.selection = track
        self.to(PLAYING)
