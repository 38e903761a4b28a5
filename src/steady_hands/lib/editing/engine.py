"""Edit engine: gated reads, writes, single replaces and atomic batches.

Every mutating entry point runs the path guard first. Edits and overwrites
of existing files additionally require the file to have been read in this
session (see ``ReadTracker``). A batch reads the file once, applies each
operation to an in-memory buffer in caller order, and writes once if
anything changed; one operation failing never stops the next from being
tried.
"""

from __future__ import annotations

__all__ = [
    "BatchResult",
    "EditEngine",
    "EditOutcome",
    "ReadResult",
    "ReplaceOutcome",
]

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from steady_hands.lib.config import DEFAULT_MAX_FILE_SIZE, DEFAULT_OUTPUT_LIMIT
from steady_hands.lib.editing.display import (
    render_edit_context,
    render_file_preview,
    render_session_matches,
)
from steady_hands.lib.editing.matcher import (
    ReplaceResult,
    find_matches,
    find_similar_strings,
    normalize_line_endings,
    replace_block,
    replace_once,
)
from steady_hands.lib.editing.sessions import SessionStore, apply_selection
from steady_hands.lib.editing.tracker import ReadTracker
from steady_hands.lib.errors import (
    AmbiguousOperationError,
    ContentTooLargeError,
    FileMismatchError,
    InvalidLineNumberError,
    NoMatchFoundError,
    RequiresPriorReadError,
)
from steady_hands.lib.meta.tools import filesystem as fs_tools
from steady_hands.lib.schemas import EditOperation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EditOutcome:
    """Result of one batch operation; failures are values, not exceptions."""

    number: int
    ok: bool
    message: str
    changes: int = 0
    line_number: int | None = None


@dataclass(frozen=True)
class BatchResult:
    """Aggregate of a batch: change count, per-operation outcomes, write flag."""

    path: str
    total_changes: int
    outcomes: list[EditOutcome] = field(default_factory=list)
    written: bool = False

    def render(self) -> str:
        details = "\n".join(outcome.message for outcome in self.outcomes)
        if len(self.outcomes) == 1:
            return (
                f"Edit completed: {self.total_changes} change applied to "
                f"{self.path}\n\n{details}"
            )
        return (
            f"Batch edit completed: {self.total_changes} changes applied across "
            f"{len(self.outcomes)} operations to {self.path}\n\nDetails:\n{details}"
        )


@dataclass(frozen=True)
class ReplaceOutcome:
    """Result of a single replace, insert, or session resolution.

    ``session_token`` is set (and nothing was written) when the replace was
    ambiguous and needs a follow-up call.
    """

    path: str
    changes: int
    message: str
    line_number: int | None = None
    session_token: str | None = None

    @property
    def written(self) -> bool:
        return self.changes > 0


@dataclass(frozen=True)
class ReadResult:
    """A window of a file plus navigation hints."""

    path: str
    content: str
    total_lines: int
    start_line: int
    end_line: int

    def render(self) -> str:
        hints: list[str] = []
        if self.start_line > 1:
            hints.append(f"... above ({self.start_line - 1} lines)")
        if self.end_line < self.total_lines:
            hints.append(f"below ({self.total_lines - self.end_line} lines) ...")
            hints.append(f"To read more: startLine={self.end_line + 1} or maxLines=<more>")
        if not hints:
            return self.content
        return f"{self.content}\n\n[{' | '.join(hints)}]"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class EditEngine:
    """File operations that read, gate, and rewrite text files."""

    def __init__(
        self,
        guard: fs_tools.PathGuard,
        tracker: ReadTracker,
        sessions: SessionStore,
        *,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        output_limit: int = DEFAULT_OUTPUT_LIMIT,
    ) -> None:
        self.guard = guard
        self.tracker = tracker
        self.sessions = sessions
        self.max_file_size = max_file_size
        self.output_limit = output_limit

    # -- io -----------------------------------------------------------------

    def _load(self, target: Path) -> str:
        content = normalize_line_endings(
            fs_tools.read_text(target, max_size=self.max_file_size)
        )
        self._check_size(content, "edit operation")
        return content

    def _check_size(self, content: str, operation: str) -> None:
        if len(content) > self.max_file_size:
            msg = (
                f"Content too large ({len(content):,} characters). Maximum: "
                f"{self.max_file_size:,} characters for {operation}"
            )
            raise ContentTooLargeError(msg)

    def _commit(self, target: Path, content: str) -> None:
        fs_tools.write_text(target, content)
        self.tracker.mark_read(target)
        logger.info("Wrote %s (%d characters)", self.guard.relative(target), len(content))

    # -- read / write ---------------------------------------------------------

    def read(
        self,
        path: str,
        *,
        start_line: int = 1,
        end_line: int | None = None,
        max_lines: int = 20,
        range_requested: bool = False,
    ) -> ReadResult:
        """Read a line window of ``path`` and mark the file read.

        Args:
            path: File to read.
            start_line: First line, 1-based.
            end_line: Last line, 1-based and inclusive; overrides ``max_lines``.
            max_lines: Window size when ``end_line`` is not given.
            range_requested: The caller asked for an explicit window, so the
                output budget applies even if the file fits in it.

        Raises:
            ContentTooLargeError: A ranged window exceeds the output budget.
        """
        target = self.guard.validate(path)
        content = normalize_line_endings(
            fs_tools.read_text(target, max_size=self.max_file_size)
        )
        lines = content.split("\n")
        total = len(lines)
        first = max(1, start_line)
        if end_line is not None:
            last = min(end_line, total)
        else:
            last = min(first + max_lines - 1, total)
        selected = "\n".join(lines[first - 1 : last])

        if (range_requested or last < total) and len(selected) > self.output_limit:
            msg = (
                f"Selected range is too large ({len(selected):,} characters). "
                f"Maximum allowed: {self.output_limit:,} characters. Please reduce range"
            )
            raise ContentTooLargeError(msg)

        self.tracker.mark_read(target)
        return ReadResult(
            path=self.guard.relative(target),
            content=selected,
            total_lines=total,
            start_line=first,
            end_line=last,
        )

    def write(self, path: str, content: str, *, create_parent_dir: bool = False) -> str:
        """Create or overwrite ``path``; existing files must have been read.

        Raises:
            RequiresPriorReadError: ``path`` exists and was never read.
            ContentTooLargeError: ``content`` exceeds ``max_file_size``.
            FileNotFoundError: Parent directory is missing and
                ``create_parent_dir`` is false.
        """
        target = self.guard.validate(path)
        if target.is_dir():
            raise IsADirectoryError(f"Path is a directory: {path}")
        if target.exists() and not self.tracker.is_read(target):
            raise RequiresPriorReadError(path)
        self._check_size(content, "write operation")

        parent = target.parent
        if not parent.exists():
            if not create_parent_dir:
                msg = (
                    f"Parent directory does not exist: {self.guard.relative(parent)}\n"
                    "To create parent directories automatically, re-run with: "
                    "create_parent_dir=true"
                )
                raise FileNotFoundError(msg)
            parent.mkdir(parents=True, exist_ok=True)

        self._commit(target, content)
        return render_file_preview(
            content,
            f"Successfully wrote {len(content)} characters to {path}",
            content_length=len(content),
        )

    # -- single-shot edits ------------------------------------------------------

    def replace(self, path: str, old_string: str, new_string: str) -> ReplaceOutcome:
        """Replace one occurrence of ``old_string``, or open a session.

        Exact occurrences are enumerated first. Exactly one is replaced
        directly (a whole-line match with an empty replacement deletes the
        line); several open a disambiguation session and nothing is written;
        none falls through to the whitespace-tolerant block match.

        Raises:
            ValueError: ``old_string`` equals ``new_string``.
            NoMatchFoundError: No strategy matched.
        """
        if old_string == new_string:
            raise ValueError(
                "No changes to make: old_string and new_string are exactly the same"
            )
        target = self.guard.validate(path, require_read=True, tracker=self.tracker)
        display = self.guard.relative(target)
        content = self._load(target)
        old = normalize_line_endings(old_string)
        new = normalize_line_endings(new_string)

        matches = find_matches(content, old)
        if len(matches) > 1:
            token = self.sessions.create(target, old, new, matches)
            logger.debug("Opened session %s for %d matches in %s", token, len(matches), display)
            return ReplaceOutcome(
                path=display,
                changes=0,
                message=render_session_matches(display, old_string, new_string, token, matches),
                session_token=token,
            )

        result: ReplaceResult | None
        if matches:
            result = replace_once(content, old, new, path=display)
        else:
            result = replace_block(content, old, new)
        if result is None:
            raise NoMatchFoundError(old_string, display, find_similar_strings(content, old))

        self._commit(target, result.content)
        label = {
            "line_delete": "Successfully deleted 1 line (complete line match)",
            "exact": "Successfully replaced 1 occurrence (exact match)",
            "flexible": "Successfully replaced 1 occurrence (flexible match)",
        }[result.strategy]
        preview_line = None if result.strategy == "line_delete" else result.line_number
        return ReplaceOutcome(
            path=display,
            changes=result.count,
            message=render_file_preview(result.content, label, preview_line),
            line_number=result.line_number,
        )

    def resolve(
        self,
        token: str,
        path: str,
        indices: Iterable[int] | None = None,
        *,
        replace_all: bool = False,
    ) -> ReplaceOutcome:
        """Apply the chosen matches of a pending session and consume it.

        Raises:
            InvalidTokenError: Unknown, consumed, or expired token.
            FileMismatchError: The session belongs to another file.
            InvalidSelectionError: Bad ordinals; the session stays open.
            StaleSessionError: The file changed since the session opened.
        """
        target = self.guard.validate(path, require_read=True, tracker=self.tracker)
        session = self.sessions.get(token)
        if session.path != target:
            raise FileMismatchError(self.guard.relative(session.path), path)

        content = self._load(target)
        updated, count = apply_selection(
            content, session, indices, replace_all=replace_all
        )
        self._commit(target, updated)
        self.sessions.discard(token)
        return ReplaceOutcome(
            path=self.guard.relative(target),
            changes=count,
            message=render_file_preview(
                updated, f"Successfully replaced {count} occurrence(s)"
            ),
        )

    def insert(self, path: str, line_number: int, content: str) -> ReplaceOutcome:
        """Insert ``content`` as line ``line_number``.

        Raises:
            InvalidLineNumberError: Outside ``1..line_count + 1``.
        """
        target = self.guard.validate(path, require_read=True, tracker=self.tracker)
        lines = self._load(target).split("\n")
        if not 1 <= line_number <= len(lines) + 1:
            raise InvalidLineNumberError(line_number, len(lines))
        lines.insert(line_number - 1, normalize_line_endings(content))
        updated = "\n".join(lines)
        self._commit(target, updated)
        return ReplaceOutcome(
            path=self.guard.relative(target),
            changes=1,
            message=render_file_preview(updated, "Successfully inserted content", line_number),
            line_number=line_number,
        )

    # -- batch ------------------------------------------------------------------

    def apply_batch(self, path: str, operations: Sequence[EditOperation]) -> BatchResult:
        """Apply ``operations`` in order to one file with one read and ≤1 write.

        Only the path/read gate and IO errors on the single read or write
        abort the batch; every other problem is reported in that operation's
        ``EditOutcome`` and the next operation runs against the current
        buffer.
        """
        target = self.guard.validate(path, require_read=True, tracker=self.tracker)
        display = self.guard.relative(target)
        content = self._load(target)
        multiple = len(operations) > 1

        outcomes: list[EditOutcome] = []
        total = 0
        for number, operation in enumerate(operations, start=1):
            outcome, content = self._apply_operation(content, operation, number)
            if multiple:
                outcome = EditOutcome(
                    number=outcome.number,
                    ok=outcome.ok,
                    message=f"Edit {number}: {outcome.message}",
                    changes=outcome.changes,
                    line_number=outcome.line_number,
                )
            outcomes.append(outcome)
            total += outcome.changes

        if total > 0:
            self._commit(target, content)
        else:
            logger.debug("Batch on %s changed nothing; skipping write", display)
        return BatchResult(path=display, total_changes=total, outcomes=outcomes, written=total > 0)

    def _apply_operation(
        self, content: str, operation: EditOperation, number: int
    ) -> tuple[EditOutcome, str]:
        kind = operation.kind
        if kind == "both":
            error = AmbiguousOperationError("cannot specify both replace and insert operations")
            return EditOutcome(number, False, f"Invalid - {error}"), content
        if kind == "neither":
            error = AmbiguousOperationError(
                "must specify either (old_string+new_string) or (line_number+content)"
            )
            return EditOutcome(number, False, f"Invalid - {error}"), content
        if kind == "insert":
            return self._apply_insert(content, operation, number)
        return self._apply_replace(content, operation, number)

    def _apply_insert(
        self, content: str, operation: EditOperation, number: int
    ) -> tuple[EditOutcome, str]:
        assert operation.line_number is not None and operation.content is not None
        lines = content.split("\n")
        line_number = operation.line_number
        if not 1 <= line_number <= len(lines) + 1:
            error = InvalidLineNumberError(line_number, len(lines))
            return EditOutcome(number, False, f"Invalid line number - {error}"), content

        lines.insert(line_number - 1, normalize_line_endings(operation.content))
        context = render_edit_context(lines, line_number)
        message = f"Inserted at line {line_number}\n\n{context}\n"
        return EditOutcome(number, True, message, 1, line_number), "\n".join(lines)

    def _apply_replace(
        self, content: str, operation: EditOperation, number: int
    ) -> tuple[EditOutcome, str]:
        assert operation.old_string is not None and operation.new_string is not None
        old = normalize_line_endings(operation.old_string)
        new = normalize_line_endings(operation.new_string)
        if not old:
            return EditOutcome(number, False, "Invalid - old_string must not be empty"), content
        if old == new:
            return (
                EditOutcome(
                    number,
                    False,
                    "Invalid - no changes to make: old_string and new_string are identical",
                ),
                content,
            )

        try:
            result = replace_once(content, old, new, replace_all=operation.replace_all)
        except NoMatchFoundError as exc:
            return EditOutcome(number, False, f"No matches found - {exc}"), content

        updated_lines = result.content.split("\n")
        start = result.line_number
        if result.strategy == "line_delete":
            noun = "line" if result.count == 1 else "lines"
            context = render_edit_context(updated_lines, start, old, "")
            message = f"Deleted {result.count} {noun} at line {start}\n\n{context}\n"
        elif result.strategy == "exact" and operation.replace_all:
            message = f'Replaced {result.count} occurrences of "{operation.old_string}"\n'
        elif result.strategy == "exact":
            context = render_edit_context(updated_lines, start, old, new)
            message = f"Replaced at line {start}\n\n{context}\n"
        else:
            original_block = "\n".join(
                content.split("\n")[start - 1 : start - 1 + len(old.split("\n"))]
            )
            new_size = len(new.split("\n")) if new else 0
            new_block = "\n".join(updated_lines[start - 1 : start - 1 + new_size])
            context = render_edit_context(updated_lines, start, original_block, new_block)
            message = f"Replaced at line {start} (whitespace-tolerant match)\n\n{context}\n"
        return EditOutcome(number, True, message, result.count, start), result.content
