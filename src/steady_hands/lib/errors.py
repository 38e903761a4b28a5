"""Error kinds raised by the file tools.

Each kind derives from ``FileToolError`` and from the closest builtin
exception so callers that already catch ``PermissionError`` or
``ValueError`` keep working. The protocol front turns every one of them into
caller-readable text; nothing here is meant to escape as a traceback.
"""

from __future__ import annotations

__all__ = [
    "AmbiguousOperationError",
    "BinaryFileError",
    "ContentTooLargeError",
    "DangerousFileError",
    "DestinationExistsError",
    "FileMismatchError",
    "FileToolError",
    "IgnoredPathError",
    "InvalidLineNumberError",
    "InvalidSelectionError",
    "InvalidTokenError",
    "MalformedPatternError",
    "NoMatchFoundError",
    "OutOfBoundsError",
    "RequiresPriorReadError",
    "StaleSessionError",
    "Suggestion",
]

from dataclasses import dataclass


class FileToolError(Exception):
    """Base class for every error kind surfaced by the file tools."""


# --- path and safety gates -------------------------------------------------


class OutOfBoundsError(FileToolError, PermissionError):
    """Resolved path is not inside the allowed root."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Access outside current directory not allowed: {path}")


class DangerousFileError(FileToolError, PermissionError):
    """Path matches the sensitive-file denylist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File type not allowed for security reasons: {path}")


class IgnoredPathError(FileToolError, PermissionError):
    """Path is excluded by the workspace ``.gitignore``."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"gitignore protection: cannot operate on ignored path: {path}")


class RequiresPriorReadError(FileToolError, PermissionError):
    """An existing file must be read before it is overwritten or edited."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f'File must be read first. Use read(path="{path}") before editing '
            "to ensure safety."
        )


# --- matching ----------------------------------------------------------------


@dataclass(frozen=True)
class Suggestion:
    """A similar token found in the file, offered when nothing matched."""

    text: str
    line: int


class NoMatchFoundError(FileToolError, ValueError):
    """Search string was not found by any matching strategy."""

    def __init__(
        self,
        search: str,
        path: str | None = None,
        suggestions: list[Suggestion] | None = None,
    ) -> None:
        self.search = search
        self.path = path
        self.suggestions = list(suggestions or [])
        location = f" in {path}" if path else ""
        message = f'No matches found for "{search}"{location}'
        if self.suggestions:
            hints = "\n".join(f'- "{s.text}" (Line {s.line})' for s in self.suggestions)
            message = f"{message}\nSimilar strings found:\n{hints}"
        super().__init__(message)


class AmbiguousOperationError(FileToolError, ValueError):
    """An edit operation carried both or neither of the replace/insert shapes."""


class InvalidLineNumberError(FileToolError, ValueError):
    """Insert position is outside ``1..line_count + 1``."""

    def __init__(self, line_number: int, line_count: int) -> None:
        self.line_number = line_number
        self.line_count = line_count
        super().__init__(
            f"Invalid line number {line_number}: file has {line_count} lines "
            f"(can insert at line {line_count + 1} to append)"
        )


# --- disambiguation sessions ---------------------------------------------------


class InvalidTokenError(FileToolError, LookupError):
    """Session token is unknown, already consumed, or expired."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"Invalid or expired session: {token}")


class FileMismatchError(FileToolError, ValueError):
    """Session was created for a different file than the one being resolved."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Session file path mismatch. Expected: {expected}, got: {actual}")


class InvalidSelectionError(FileToolError, ValueError):
    """Match ordinals are out of range or no selection was given."""


class StaleSessionError(FileToolError, ValueError):
    """The file changed underneath a pending session."""


# --- content and IO --------------------------------------------------------------


class ContentTooLargeError(FileToolError, ValueError):
    """Content or output exceeds a configured size budget."""


class BinaryFileError(FileToolError, ValueError):
    """File looks binary and cannot be treated as text."""


class MalformedPatternError(FileToolError, ValueError):
    """Regular expression failed to compile; message carries a diagnosis."""


class DestinationExistsError(FileToolError, ValueError):
    """Move/copy destination exists and ``overwrite`` was not requested."""
