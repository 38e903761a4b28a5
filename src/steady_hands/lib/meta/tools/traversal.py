"""Directory traversal with glob filtering and ignore rules."""

from __future__ import annotations

__all__ = ["TraversalEntry", "find_files", "parse_filter_patterns"]

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pathspec

from steady_hands.lib.meta.tools.filesystem import PathGuard
from steady_hands.lib.meta.tools.ignore import IgnoreFilter

logger = logging.getLogger(__name__)

_ALWAYS_SKIPPED = frozenset({".git"})


@dataclass(frozen=True)
class TraversalEntry:
    """One file or directory yielded by a walk."""

    path: Path
    relative_path: str
    is_file: bool
    is_directory: bool
    size: int | None = None
    mtime: datetime | None = None

    @property
    def display(self) -> str:
        """Relative path, with a trailing slash for directories."""
        return f"{self.relative_path}/" if self.is_directory else self.relative_path


def parse_filter_patterns(filter_expression: str | None) -> tuple[list[str], list[str]]:
    """Split ``"*.py,!tests/**"`` into ``(include, exclude)`` glob lists."""
    if not filter_expression or not filter_expression.strip():
        return [], []
    include: list[str] = []
    exclude: list[str] = []
    for raw in filter_expression.split(","):
        pattern = raw.strip()
        if not pattern:
            continue
        if pattern.startswith("!"):
            if pattern[1:]:
                exclude.append(pattern[1:])
        else:
            include.append(pattern)
    return include, exclude


def _compile(patterns: list[str]) -> pathspec.PathSpec | None:
    if not patterns:
        return None
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


def _matches(spec: pathspec.PathSpec, relative_path: str, name: str) -> bool:
    return spec.match_file(relative_path) or spec.match_file(name)


def _walk(
    base: Path,
    current: Path,
    depth: int,
    *,
    root: Path,
    visited: set[Path],
    max_depth: int | None,
    ignore: IgnoreFilter | None,
    include: pathspec.PathSpec | None,
    exclude: pathspec.PathSpec | None,
    include_files: bool,
    include_directories: bool,
) -> Iterator[TraversalEntry]:
    if max_depth is not None and depth > max_depth:
        return
    try:
        children = sorted(current.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        logger.debug("Skipping unreadable directory %s: %s", current, exc)
        return

    for child in children:
        if child.name in _ALWAYS_SKIPPED:
            continue
        try:
            real = child.resolve(strict=True)
            real.relative_to(root)
        except (OSError, RuntimeError, ValueError):
            logger.debug("Skipping %s: dangling link or outside root", child)
            continue
        relative_path = child.relative_to(base).as_posix()
        try:
            stats = child.stat()
        except OSError as exc:
            logger.debug("Skipping %s: %s", child, exc)
            continue
        is_directory = child.is_dir()
        is_file = child.is_file()

        if ignore is not None and ignore.is_ignored(child):
            continue
        if exclude is not None and _matches(exclude, relative_path, child.name):
            continue

        wanted = (is_file and include_files) or (is_directory and include_directories)
        if wanted and (include is None or _matches(include, relative_path, child.name)):
            yield TraversalEntry(
                path=child,
                relative_path=relative_path,
                is_file=is_file,
                is_directory=is_directory,
                size=stats.st_size if is_file else None,
                mtime=datetime.fromtimestamp(stats.st_mtime),
            )

        # a directory already on the current path is a link cycle
        if is_directory and real not in visited and (max_depth is None or depth < max_depth):
            yield from _walk(
                base,
                child,
                depth + 1,
                root=root,
                visited=visited | {real},
                max_depth=max_depth,
                ignore=ignore,
                include=include,
                exclude=exclude,
                include_files=include_files,
                include_directories=include_directories,
            )


def find_files(
    guard: PathGuard,
    base_path: str,
    filter_expression: str | None = None,
    *,
    max_depth: int | None = None,
    include_ignored: bool = False,
    include_files: bool = True,
    include_directories: bool = True,
    ignore: IgnoreFilter | None = None,
) -> list[TraversalEntry]:
    """List entries under ``base_path`` that pass the filters.

    Args:
        guard: Confines ``base_path`` to the workspace root.
        base_path: Directory to walk.
        filter_expression: Comma-separated globs; ``!`` prefixes exclude.
            Each glob is tested against the path relative to ``base_path``
            and against the bare entry name.
        max_depth: ``None`` for unlimited; ``0`` lists only direct children.
        include_ignored: Keep entries matched by ``.gitignore``.
        include_files: Yield files.
        include_directories: Yield directories (they are walked either way).
        ignore: Ignore filter to apply; built from the guard root if omitted.

    Returns:
        Entries in depth-first, name-sorted order.

    Raises:
        OutOfBoundsError: ``base_path`` escapes the root.
        NotADirectoryError: ``base_path`` is not a directory.
    """
    base = guard.resolve(base_path)
    if not base.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {base_path}")

    if include_ignored:
        ignore = None
    elif ignore is None:
        ignore = IgnoreFilter(guard.root)

    include, exclude = parse_filter_patterns(filter_expression)
    return list(
        _walk(
            base,
            base,
            0,
            root=guard.root,
            visited={base},
            max_depth=max_depth,
            ignore=ignore,
            include=_compile(include),
            exclude=_compile(exclude),
            include_files=include_files,
            include_directories=include_directories,
        )
    )
