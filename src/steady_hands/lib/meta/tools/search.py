"""Regex line search with ripgrep-style output and an output budget."""

from __future__ import annotations

__all__ = [
    "GrepLine",
    "compile_pattern",
    "describe_pattern_error",
    "grep",
    "search_lines",
]

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from steady_hands.lib.errors import ContentTooLargeError, MalformedPatternError
from steady_hands.lib.meta.tools.filesystem import (
    PathGuard,
    is_dangerous_path,
    read_text,
)
from steady_hands.lib.meta.tools.ignore import IgnoreFilter
from steady_hands.lib.meta.tools.traversal import find_files

logger = logging.getLogger(__name__)

MAX_FILES = 20
MAX_DEPTH = 3

_GENERIC_ADVICE = (
    "Common fixes:\n"
    "- Escape special characters: \\+ \\* \\? \\( \\) \\[ \\] \\{ \\}\n"
    "- Use literal search: Consider if you need regex at all\n"
    "- Check parentheses and brackets are properly closed"
)


@dataclass(frozen=True)
class GrepLine:
    """A matching line or a context line around one."""

    line_number: int
    content: str
    is_match: bool

    def render(self) -> str:
        separator = ":" if self.is_match else "-"
        return f"{self.line_number}{separator}{self.content}"


def _has_unmatched_parens(pattern: str) -> bool:
    depth = 0
    escaped = False
    for char in pattern:
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return True
    return depth != 0


def describe_pattern_error(pattern: str, exc: re.error) -> str:
    """Turn a ``re.error`` into a diagnosis the caller can act on."""
    message = exc.msg
    position = exc.pos if exc.pos is not None else 0

    issue: str | None = None
    suggestion = ""
    if message.startswith(("nothing to repeat", "multiple repeat")):
        char = pattern[position] if position < len(pattern) else "?"
        issue = f"Repetition operator '{char}' has nothing to repeat"
        suggestion = (
            f'Use "\\{char}" to match the literal character, or add something '
            f"before {char} to repeat"
        )
    elif (
        "unterminated subpattern" in message or "unbalanced parenthesis" in message
    ) and _has_unmatched_parens(pattern):
        issue = "Unbalanced parentheses group"
        suggestion = 'Close the group with ")" or use "\\(" to match a literal parenthesis'
    elif "unterminated character set" in message:
        issue = "Unclosed character class"
        suggestion = 'Add closing "]" or use "\\[" to match a literal bracket'

    if issue is None:
        return f'Regex pattern error in "{pattern}": {message}\n\n{_GENERIC_ADVICE}'

    pointer = " " * position + "^"
    return (
        "Regex pattern error:\n"
        f'Pattern: "{pattern}"\n'
        f"          {pointer}\n"
        f"Error: {issue}\n"
        f"Suggestion: {suggestion}"
    )


def compile_pattern(pattern: str, *, multiline: bool = False) -> re.Pattern[str]:
    """Compile ``pattern`` or raise ``MalformedPatternError`` with a diagnosis."""
    flags = re.MULTILINE if multiline else 0
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise MalformedPatternError(describe_pattern_error(pattern, exc)) from exc


def search_lines(
    lines: list[str],
    regex: re.Pattern[str],
    *,
    before: int = 0,
    after: int = 0,
    max_count: int | None = None,
) -> list[GrepLine]:
    """Return matching lines plus context, each line emitted once.

    At most ``max_count`` matching lines are collected; context lines do not
    count toward the cap.
    """
    matched: list[int] = []
    for index, line in enumerate(lines):
        if max_count is not None and len(matched) >= max_count:
            break
        if regex.search(line):
            matched.append(index)

    matched_set = set(matched)
    emitted: set[int] = set()
    rows: list[GrepLine] = []
    for index in matched:
        start = max(0, index - before)
        stop = min(len(lines) - 1, index + after)
        for i in range(start, stop + 1):
            if i in emitted:
                continue
            emitted.add(i)
            rows.append(GrepLine(i + 1, lines[i], i in matched_set))
    return rows


class _OutputBudget:
    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.used = 0
        self.parts: list[str] = []

    def add(self, text: str) -> None:
        self.used += len(text)
        if self.used > self.limit:
            msg = (
                f"Output limit exceeded ({self.limit:,} characters)\n"
                "Use more specific pattern or include filter to narrow search"
            )
            raise ContentTooLargeError(msg)
        self.parts.append(text)

    def text(self) -> str:
        return "".join(self.parts)


def _files_to_search(
    guard: PathGuard,
    path: str,
    include: str | None,
    ignore: IgnoreFilter | None,
) -> tuple[list[Path], int]:
    target = guard.resolve(path)
    if target.is_file():
        return [target], 1
    entries = find_files(
        guard,
        path,
        include,
        max_depth=MAX_DEPTH,
        include_ignored=False,
        include_files=True,
        include_directories=False,
        ignore=ignore,
    )
    return [entry.path for entry in entries[:MAX_FILES]], len(entries)


def grep(
    guard: PathGuard,
    pattern: str,
    path: str = ".",
    *,
    include: str | None = None,
    before_context: int = 0,
    after_context: int = 0,
    context: int | None = None,
    multiline: bool = False,
    max_count: int = 5,
    output_limit: int = 20_000,
    ignore: IgnoreFilter | None = None,
) -> str:
    """Search files under ``path`` for ``pattern`` and format the hits.

    A file path searches just that file; a directory searches up to
    ``MAX_FILES`` files found within ``MAX_DEPTH`` levels. Binary, oversized,
    undecodable and sensitive files are skipped.

    Raises:
        MalformedPatternError: ``pattern`` does not compile.
        ContentTooLargeError: Formatted output exceeds ``output_limit``.
        OutOfBoundsError: ``path`` escapes the root.
    """
    regex = compile_pattern(pattern, multiline=multiline)
    before = context if context is not None else before_context
    after = context if context is not None else after_context

    files, total_candidates = _files_to_search(guard, path, include, ignore)
    budget = _OutputBudget(output_limit)
    total_matches = 0
    files_with_matches = 0

    for file_path in files:
        rel = guard.relative(file_path)
        if is_dangerous_path(rel):
            continue
        try:
            content = read_text(file_path, max_size=output_limit)
        except (OSError, ValueError) as exc:
            logger.debug("grep: skipping %s: %s", rel, exc)
            continue

        lines = content.split("\n")
        rows = search_lines(lines, regex, before=before, after=after, max_count=max_count)
        if not rows:
            continue

        files_with_matches += 1
        budget.add(f"{rel}\n")
        for row in rows:
            budget.add(row.render() + "\n")
        shown = sum(1 for row in rows if row.is_match)
        total_matches += shown

        file_total = sum(1 for line in lines if regex.search(line))
        if file_total > max_count:
            remaining = file_total - max_count
            budget.add(
                f"\n... and {remaining} more matches (showing first {max_count})\n"
                f"Use maxCount={min(file_total, max_count * 2)} to see more matches\n"
            )
        budget.add("\n")

    if total_matches == 0:
        summary = "No matches found"
    else:
        plural_m = "" if total_matches == 1 else "es"
        plural_f = "" if files_with_matches == 1 else "s"
        summary = (
            f"{total_matches} match{plural_m} found in "
            f"{files_with_matches} file{plural_f}"
        )
        if total_candidates > MAX_FILES:
            summary += f" (limited to first {MAX_FILES} files)"
    budget.add(summary + "\n")
    return budget.text()
