"""Pending multi-match replacements bridged across two calls by a token."""

from __future__ import annotations

__all__ = [
    "EditSession",
    "SessionStore",
    "apply_selection",
]

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from steady_hands.lib.config import DEFAULT_SESSION_TIMEOUT_S
from steady_hands.lib.editing.matcher import MatchRecord
from steady_hands.lib.errors import (
    InvalidSelectionError,
    InvalidTokenError,
    StaleSessionError,
)

logger = logging.getLogger(__name__)


@dataclass
class EditSession:
    """A replace request that matched more than once and awaits a choice."""

    token: str
    path: Path
    old_string: str
    new_string: str
    matches: list[MatchRecord] = field(default_factory=list)
    created_at: float = 0.0

    def is_expired(self, now: float, timeout_s: float) -> bool:
        return now - self.created_at > timeout_s


class SessionStore:
    """Token-keyed sessions with lazy expiry.

    Expired sessions are dropped the next time they are looked up, so an
    expired token behaves exactly like one that never existed. ``sweep()``
    can be called opportunistically to free memory; nothing runs in the
    background.
    """

    def __init__(
        self,
        timeout_s: float = DEFAULT_SESSION_TIMEOUT_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout_s = timeout_s
        self._clock = clock
        self._sessions: dict[str, EditSession] = {}

    def create(
        self,
        path: Path,
        old_string: str,
        new_string: str,
        matches: Iterable[MatchRecord],
    ) -> str:
        """Store a new session and return its token."""
        self.sweep()
        token = uuid.uuid4().hex
        while token in self._sessions:
            token = uuid.uuid4().hex
        self._sessions[token] = EditSession(
            token=token,
            path=path,
            old_string=old_string,
            new_string=new_string,
            matches=list(matches),
            created_at=self._clock(),
        )
        return token

    def get(self, token: str) -> EditSession:
        """Return the live session for ``token``.

        Raises:
            InvalidTokenError: Unknown, consumed, or expired token.
        """
        session = self._sessions.get(token)
        if session is None:
            raise InvalidTokenError(token)
        if session.is_expired(self._clock(), self.timeout_s):
            logger.debug("Session %s expired", token)
            del self._sessions[token]
            raise InvalidTokenError(token)
        return session

    def discard(self, token: str) -> None:
        self._sessions.pop(token, None)

    def sweep(self) -> int:
        """Drop every expired session and return how many were removed."""
        now = self._clock()
        expired = [
            token
            for token, session in self._sessions.items()
            if session.is_expired(now, self.timeout_s)
        ]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def __contains__(self, token: object) -> bool:
        return token in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def _validate_indices(indices: Iterable[int], match_count: int) -> list[int]:
    chosen = sorted(set(indices))
    if not chosen:
        raise InvalidSelectionError(
            "Either replace_all=true or a non-empty match_index list must be "
            "specified for session replacement"
        )
    for index in chosen:
        if index < 0 or index >= match_count:
            raise InvalidSelectionError(
                f"Invalid match index: {index}. Valid range: 0-{match_count - 1}"
            )
    return chosen


def apply_selection(
    content: str,
    session: EditSession,
    indices: Iterable[int] | None = None,
    *,
    replace_all: bool = False,
) -> tuple[str, int]:
    """Substitute the selected matches of ``session`` into ``content``.

    Every ordinal is validated before anything changes, so a bad one fails
    the whole resolution. Matches are applied from the highest start offset
    down; after each substitution the offsets of the other matches that
    start after the edited region move by the length delta.

    Returns:
        ``(new_content, replaced_count)``.

    Raises:
        InvalidSelectionError: No selection, or an ordinal out of range.
        StaleSessionError: ``content`` no longer holds the search string at a
            recorded offset.
    """
    if replace_all:
        chosen = list(range(len(session.matches)))
    else:
        chosen = _validate_indices(indices or (), len(session.matches))

    working = list(session.matches)
    delta = len(session.new_string) - len(session.old_string)
    for index in sorted(chosen, key=lambda i: working[i].start, reverse=True):
        match = working[index]
        if content[match.start : match.end] != session.old_string:
            raise StaleSessionError(
                f"File changed since session {session.token} was created "
                f"(line {match.line_number} no longer matches). Re-run the replace."
            )
        content = content[: match.start] + session.new_string + content[match.end :]
        for other, record in enumerate(working):
            if other != index and record.start > match.start:
                working[other] = record.shifted(delta)
    return content, len(chosen)
