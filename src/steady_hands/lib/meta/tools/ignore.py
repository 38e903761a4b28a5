"""Version-control ignore rules for traversal and move/copy gates."""

from __future__ import annotations

__all__ = ["IgnoreFilter"]

import logging
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)


class IgnoreFilter:
    """Answer whether a path under ``root`` is excluded by ``root/.gitignore``.

    A missing or unreadable file means nothing is ignored. The file's
    mtime and size are checked on every query, so edits made through any
    channel are picked up without an explicit ``reload()``.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()
        self._spec: pathspec.GitIgnoreSpec | None = None
        self._signature: tuple[int, int] | None = None
        self.reload()

    @property
    def _gitignore(self) -> Path:
        return self.root / ".gitignore"

    def _current_signature(self) -> tuple[int, int] | None:
        try:
            stats = self._gitignore.stat()
        except OSError:
            return None
        return stats.st_mtime_ns, stats.st_size

    def reload(self) -> None:
        gitignore = self._gitignore
        self._signature = self._current_signature()
        try:
            lines = gitignore.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            self._spec = None
            return
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", gitignore, exc)
            self._spec = None
            return
        self._spec = pathspec.GitIgnoreSpec.from_lines(lines)

    def is_ignored(self, path: str | Path) -> bool:
        """Return whether ``path`` (absolute or root-relative) is ignored."""
        if self._current_signature() != self._signature:
            logger.debug("Reloading %s", self._gitignore)
            self.reload()
        if self._spec is None:
            return False
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.root)
            except ValueError:
                return False
        rel = candidate.as_posix()
        if rel in ("", "."):
            return False
        if self._spec.match_file(rel):
            return True
        # directory-only rules ("build/") need the trailing slash form
        if (self.root / rel).is_dir():
            return self._spec.match_file(f"{rel}/")
        return False
