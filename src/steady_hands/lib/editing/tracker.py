"""Read-before-write registry."""

from __future__ import annotations

__all__ = ["ReadTracker"]

from pathlib import Path


class ReadTracker:
    """Set of canonical paths that were read (or written) this session.

    Keys are absolute, symlink-resolved paths, so ``src/a.py``,
    ``./src/a.py`` and ``/work/src/a.py`` all name the same entry. Entries
    never expire; ``clear()`` resets everything.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root).resolve() if root is not None else None
        self._read: set[Path] = set()

    def _canonical(self, path: str | Path) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            base = self.root if self.root is not None else Path.cwd()
            candidate = base / candidate
        return candidate.resolve()

    def mark_read(self, path: str | Path) -> None:
        self._read.add(self._canonical(path))

    def is_read(self, path: str | Path) -> bool:
        return self._canonical(path) in self._read

    def clear(self) -> None:
        self._read.clear()

    def tracked_files(self) -> list[str]:
        """Return tracked paths, sorted, for debugging."""
        return sorted(str(path) for path in self._read)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return self.is_read(path)

    def __len__(self) -> int:
        return len(self._read)
