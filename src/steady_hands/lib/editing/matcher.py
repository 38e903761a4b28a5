"""Locate and replace search strings inside file content.

Two entry points share this module:

``find_matches``
    Enumerate every occurrence of a literal string with its line number,
    offsets into the given content, and two lines of context either side.
    Used to decide whether a single replace is ambiguous and to back
    disambiguation sessions.

``replace_once``
    Apply the three matching tiers in order and return the new content:

    1. full-line match with an empty replacement deletes the line;
    2. exact substring, first occurrence (or every one with ``replace_all``);
    3. whitespace-tolerant block: lines compared after ``strip()``, the
       replacement re-indented to sit where the original block did.

All functions are pure. Callers normalize line endings first.
"""

from __future__ import annotations

__all__ = [
    "MatchRecord",
    "MergedRow",
    "ReplaceResult",
    "find_matches",
    "find_similar_strings",
    "leading_whitespace",
    "levenshtein_distance",
    "merge_context",
    "normalize_line_endings",
    "reindent_block",
    "replace_block",
    "replace_once",
    "similarity",
]

import re
from dataclasses import dataclass, replace
from typing import Literal

from steady_hands.lib.errors import NoMatchFoundError, Suggestion

CONTEXT_LINES = 2
SIMILARITY_THRESHOLD = 0.6
MAX_SUGGESTIONS = 3

_WORD = re.compile(r"\w+")
_LEADING_WS = re.compile(r"^\s*")

Strategy = Literal["line_delete", "exact", "flexible"]


def normalize_line_endings(text: str) -> str:
    """Collapse ``\\r\\n`` and bare ``\\r`` to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def leading_whitespace(line: str) -> str:
    match = _LEADING_WS.match(line)
    return match.group(0) if match else ""


# ---------------------------------------------------------------------------
# Match enumeration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MatchRecord:
    """One located occurrence of a search string.

    ``start``/``end`` index into the exact content snapshot that produced
    the record; any edit before ``start`` invalidates them unless the
    record is ``shifted`` by the length delta.
    """

    index: int
    line_number: int
    start: int
    end: int
    context_before: tuple[str, ...]
    context_after: tuple[str, ...]
    line_text: str
    matched_text: str
    end_line_number: int = 0

    def __post_init__(self) -> None:
        if self.end_line_number < self.line_number:
            object.__setattr__(self, "end_line_number", self.line_number)

    def shifted(self, delta: int) -> MatchRecord:
        return replace(self, start=self.start + delta, end=self.end + delta)


def _context(lines: list[str], first: int, last: int) -> tuple[tuple[str, ...], tuple[str, ...]]:
    before = tuple(lines[max(0, first - CONTEXT_LINES) : first])
    after = tuple(lines[last + 1 : min(len(lines), last + 1 + CONTEXT_LINES)])
    return before, after


def _find_multiline(
    content: str, lines: list[str], search: str, max_count: int | None
) -> list[MatchRecord]:
    matches: list[MatchRecord] = []
    span = search.count("\n")
    pos = content.find(search)
    while pos != -1:
        if max_count is not None and len(matches) >= max_count:
            break
        first = content.count("\n", 0, pos)
        last = first + span
        before, after = _context(lines, first, last)
        matches.append(
            MatchRecord(
                index=len(matches),
                line_number=first + 1,
                end_line_number=last + 1,
                start=pos,
                end=pos + len(search),
                context_before=before,
                context_after=after,
                line_text="\n".join(lines[first : last + 1]),
                matched_text=search,
            )
        )
        pos = content.find(search, pos + len(search))
    return matches


def find_matches(
    content: str, search: str, max_count: int | None = None
) -> list[MatchRecord]:
    """Return every non-overlapping occurrence of ``search`` in ``content``.

    Args:
        content: Text to scan, already line-ending normalized.
        search: Literal string to find. An empty string matches nothing.
        max_count: Stop after this many matching *lines*; every occurrence
            on the last counted line is still returned.

    Returns:
        Records ordered by position, ``index`` numbered from 0.
    """
    if not search:
        return []
    lines = content.split("\n")
    if "\n" in search:
        return _find_multiline(content, lines, search, max_count)

    matches: list[MatchRecord] = []
    matching_lines = 0
    line_start = 0
    for line_index, line in enumerate(lines):
        if max_count is not None and matching_lines >= max_count:
            break
        column = line.find(search)
        if column != -1:
            matching_lines += 1
            before, after = _context(lines, line_index, line_index)
        while column != -1:
            matches.append(
                MatchRecord(
                    index=len(matches),
                    line_number=line_index + 1,
                    start=line_start + column,
                    end=line_start + column + len(search),
                    context_before=before,
                    context_after=after,
                    line_text=line,
                    matched_text=search,
                )
            )
            column = line.find(search, column + len(search))
        line_start += len(line) + 1
    return matches


@dataclass(frozen=True)
class MergedRow:
    """A display line in the merged context of several matches."""

    line_number: int
    text: str
    match_indices: tuple[int, ...] = ()

    @property
    def is_match(self) -> bool:
        return bool(self.match_indices)


def merge_context(matches: list[MatchRecord]) -> list[MergedRow]:
    """Merge per-match context so every line appears once, in file order.

    Lines that hold a match carry the ordinals of all matches on them.
    """
    texts: dict[int, str] = {}
    owners: dict[int, list[int]] = {}
    for match in matches:
        first_context = match.line_number - len(match.context_before)
        for offset, text in enumerate(match.context_before):
            texts.setdefault(first_context + offset, text)
        for offset, text in enumerate(match.line_text.split("\n")):
            number = match.line_number + offset
            texts[number] = text
            owners.setdefault(number, []).append(match.index)
        for offset, text in enumerate(match.context_after):
            texts.setdefault(match.end_line_number + 1 + offset, text)
    return [
        MergedRow(number, texts[number], tuple(owners.get(number, ())))
        for number in sorted(texts)
    ]


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


def levenshtein_distance(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(current[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Levenshtein similarity in ``[0, 1]`` relative to the longer string."""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - levenshtein_distance(a, b)) / longer


def find_similar_strings(
    content: str, target: str, limit: int = MAX_SUGGESTIONS
) -> list[Suggestion]:
    """Word tokens close to ``target`` in length and spelling, first seen first."""
    suggestions: list[Suggestion] = []
    seen: set[str] = set()
    for line_index, line in enumerate(content.split("\n")):
        for word in _WORD.findall(line):
            if word in seen or abs(len(word) - len(target)) > 2:
                continue
            if similarity(word, target) > SIMILARITY_THRESHOLD:
                seen.add(word)
                suggestions.append(Suggestion(text=word, line=line_index + 1))
                if len(suggestions) >= limit:
                    return suggestions
    return suggestions


# ---------------------------------------------------------------------------
# Three-tier replace
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReplaceResult:
    """New content plus where and how the change was made."""

    content: str
    strategy: Strategy
    count: int
    line_number: int


def reindent_block(
    original_block: list[str],
    search_lines: list[str],
    replacement_lines: list[str],
) -> list[str]:
    """Re-indent ``replacement_lines`` to sit where ``original_block`` was.

    The first line takes the original block's indentation. Each later line
    keeps its indentation delta relative to the matching search line when
    both carry leading whitespace; otherwise it takes the indentation of
    the original line at the same position (the last one past the end).
    """
    base_indent = leading_whitespace(original_block[0])
    reindented: list[str] = []
    for j, line in enumerate(replacement_lines):
        stripped = line.lstrip()
        if not stripped:
            reindented.append("")
            continue
        if j == 0:
            reindented.append(base_indent + stripped)
            continue

        k = min(j, len(search_lines) - 1, len(original_block) - 1)
        file_indent = leading_whitespace(original_block[k])
        old_indent = leading_whitespace(search_lines[k])
        new_indent = leading_whitespace(line)

        if old_indent and new_indent:
            if new_indent.startswith(old_indent):
                indent = file_indent + new_indent[len(old_indent) :]
            elif old_indent.startswith(new_indent):
                dedent = len(old_indent) - len(new_indent)
                indent = file_indent[: max(0, len(file_indent) - dedent)]
            else:
                indent = file_indent
        else:
            indent = file_indent
        reindented.append(indent + stripped)
    return reindented


def replace_block(content: str, old: str, new: str) -> ReplaceResult | None:
    """Whitespace-tolerant block replace, first matching run only."""
    search_lines = old.split("\n")
    trimmed = [line.strip() for line in search_lines]
    if not any(trimmed):
        return None

    lines = content.split("\n")
    size = len(search_lines)
    for i in range(len(lines) - size + 1):
        if all(lines[i + j].strip() == trimmed[j] for j in range(size)):
            block = lines[i : i + size]
            new_block = [] if new == "" else reindent_block(block, search_lines, new.split("\n"))
            updated = lines[:i] + new_block + lines[i + size :]
            return ReplaceResult("\n".join(updated), "flexible", 1, i + 1)
    return None


def replace_once(
    content: str,
    old: str,
    new: str,
    *,
    replace_all: bool = False,
    path: str | None = None,
) -> ReplaceResult:
    """Replace ``old`` with ``new`` using the first tier that matches.

    Raises:
        NoMatchFoundError: No tier matched; carries similar-token suggestions.
    """
    if not old:
        raise NoMatchFoundError(old, path)

    lines = content.split("\n")
    if new == "" and old in lines:
        if replace_all:
            doomed = {i for i, line in enumerate(lines) if line == old}
        else:
            doomed = {lines.index(old)}
        kept = [line for i, line in enumerate(lines) if i not in doomed]
        return ReplaceResult("\n".join(kept), "line_delete", len(doomed), min(doomed) + 1)

    position = content.find(old)
    if position != -1:
        line_number = content.count("\n", 0, position) + 1
        if replace_all:
            count = content.count(old)
            updated = content.replace(old, new)
        else:
            count = 1
            updated = content[:position] + new + content[position + len(old) :]
        return ReplaceResult(updated, "exact", count, line_number)

    flexible = replace_block(content, old, new)
    if flexible is not None:
        return flexible

    raise NoMatchFoundError(old, path, find_similar_strings(content, old))
