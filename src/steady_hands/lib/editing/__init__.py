"""Text editing: read tracking, matching, disambiguation sessions, batches.

- ``tracker`` records which files were read in this server session.
- ``matcher`` locates search strings and applies the three replace tiers.
- ``sessions`` holds pending multi-match replaces keyed by token.
- ``engine`` ties them to the path guard and file IO.
"""

from steady_hands.lib.editing.engine import (
    BatchResult,
    EditEngine,
    EditOutcome,
    ReadResult,
    ReplaceOutcome,
)
from steady_hands.lib.editing.matcher import MatchRecord, find_matches, replace_once
from steady_hands.lib.editing.sessions import EditSession, SessionStore, apply_selection
from steady_hands.lib.editing.tracker import ReadTracker

__all__ = [
    "BatchResult",
    "EditEngine",
    "EditOutcome",
    "EditSession",
    "MatchRecord",
    "ReadResult",
    "ReadTracker",
    "ReplaceOutcome",
    "SessionStore",
    "apply_selection",
    "find_matches",
    "replace_once",
]
