"""Path-confined filesystem helpers shared by every file tool.

``PathGuard`` is consulted before any mutation and before any read that feeds
an edit decision: it resolves a path against the workspace root, rejects
anything that escapes it, and rejects sensitive files (credentials, keys,
cloud/ssh config). The module-level read/write helpers keep text IO in one
place so the edit engine performs exactly one read and at most one write.
"""

from __future__ import annotations

__all__ = [
    "PathGuard",
    "is_binary_file",
    "is_dangerous_path",
    "normalize_relative_path",
    "read_text",
    "write_text",
]

import re
from pathlib import Path
from typing import TYPE_CHECKING

from steady_hands.lib.errors import (
    BinaryFileError,
    ContentTooLargeError,
    DangerousFileError,
    OutOfBoundsError,
    RequiresPriorReadError,
)

if TYPE_CHECKING:
    from steady_hands.lib.editing.tracker import ReadTracker

_DANGEROUS_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"\.env$",
        r"\.env\.",
        r"\.envrc$",
        r"\.key$",
        r"\.pem$",
        r"\.p12$",
        r"\.jks$",
        r"\.keystore$",
        r"\.crt$",
        r"\.csr$",
        r"\.pfx$",
        r"id_rsa$",
        r"id_dsa$",
        r"id_ecdsa$",
        r"id_ed25519$",
        r"(^|/)\.ssh/",
        r"(^|/)\.aws/",
        r"(^|/)\.kube/",
    )
) + tuple(
    re.compile(word, re.IGNORECASE) for word in ("password", "secret", "private")
)

_BINARY_SAMPLE_SIZE = 1024
_BINARY_CONTROL_RATIO = 0.3


def normalize_relative_path(rel_path: str) -> str:
    """Normalize a path argument to a forward-slash form."""
    normalized = rel_path.strip().replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def is_dangerous_path(rel_path: str) -> bool:
    """Return whether a root-relative POSIX path matches the denylist."""
    return any(pattern.search(rel_path) for pattern in _DANGEROUS_PATTERNS)


class PathGuard:
    """Confine path arguments to ``root`` and reject sensitive files."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()

    def resolve(self, path: str | Path) -> Path:
        """Resolve ``path`` against the root or raise ``OutOfBoundsError``.

        Relative paths are taken relative to the root; absolute paths are
        accepted when they land inside it. Symlinks are followed, so a link
        pointing outside the root is rejected like a ``..`` escape.
        """
        raw = normalize_relative_path(str(path)) or "."
        candidate = Path(raw).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        target = candidate.resolve()
        try:
            target.relative_to(self.root)
        except ValueError as exc:
            raise OutOfBoundsError(str(path)) from exc
        return target

    def relative(self, target: Path) -> str:
        """Return the POSIX path of an already-resolved target under root."""
        rel = target.relative_to(self.root).as_posix()
        return "" if rel == "." else rel

    def is_dangerous(self, path: str | Path) -> bool:
        """Return whether ``path`` names a sensitive file.

        Matching runs on the root-relative path so the location of the
        workspace itself never trips the denylist.
        """
        target = self.resolve(path)
        return is_dangerous_path(self.relative(target))

    def validate(
        self,
        path: str | Path,
        *,
        require_read: bool = False,
        tracker: ReadTracker | None = None,
    ) -> Path:
        """Run the full gate for ``path`` and return the resolved target.

        Raises:
            OutOfBoundsError: The path escapes the root.
            DangerousFileError: The path matches the denylist.
            RequiresPriorReadError: ``require_read`` is set and the tracker
                has no record of the file being read.
        """
        target = self.resolve(path)
        if is_dangerous_path(self.relative(target)):
            raise DangerousFileError(str(path))
        if require_read and (tracker is None or not tracker.is_read(target)):
            raise RequiresPriorReadError(str(path))
        return target


def is_binary_file(target: Path) -> bool:
    """Sniff the first KiB of ``target`` for binary content."""
    try:
        with target.open("rb") as handle:
            sample = handle.read(_BINARY_SAMPLE_SIZE)
    except OSError:
        return False
    return _looks_binary(sample)


def _looks_binary(sample: bytes) -> bool:
    if not sample:
        return False
    if b"\x00" in sample:
        return True
    control = sum(1 for byte in sample if byte < 32 and byte not in (9, 10, 13))
    return control / len(sample) > _BINARY_CONTROL_RATIO


def read_text(target: Path, *, max_size: int | None = None) -> str:
    """Read ``target`` as UTF-8 text without newline translation.

    Raises:
        FileNotFoundError: ``target`` does not exist.
        IsADirectoryError: ``target`` is a directory.
        ContentTooLargeError: The file is larger than ``max_size`` bytes.
        BinaryFileError: The file looks binary or is not valid UTF-8.
    """
    if not target.exists():
        raise FileNotFoundError(f"File not found: {target}")
    if target.is_dir():
        raise IsADirectoryError(f"Path is a directory: {target}")

    size = target.stat().st_size
    if max_size is not None and size > max_size:
        msg = f"File too large ({size:,} bytes). Maximum allowed: {max_size:,} bytes"
        raise ContentTooLargeError(msg)

    data = target.read_bytes()
    if _looks_binary(data[:_BINARY_SAMPLE_SIZE]):
        raise BinaryFileError(f"Binary files are not supported: {target}")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BinaryFileError(f"File is not UTF-8 text: {target}") from exc


def write_text(target: Path, text: str) -> None:
    """Write ``text`` to ``target`` as UTF-8 in a single call."""
    with target.open("w", encoding="utf-8", newline="") as handle:
        handle.write(text)
