"""Human-readable renderings of edits, previews and pending matches."""

from __future__ import annotations

__all__ = [
    "PREVIEW_LINES",
    "render_edit_context",
    "render_file_preview",
    "render_session_matches",
]

from steady_hands.lib.editing.matcher import MatchRecord, merge_context

PREVIEW_LINES = 3
_EDIT_CONTEXT = 3


def render_file_preview(
    content: str,
    operation: str,
    line_number: int | None = None,
    content_length: int | None = None,
) -> str:
    """Summarize a file after an operation.

    With ``line_number``, show the two lines around it with an arrow on the
    target; otherwise show the first few lines and the line count.
    """
    lines = content.split("\n")
    total = len(lines)
    if line_number is not None and 0 < line_number <= total:
        start = max(0, line_number - 3)
        end = min(total, line_number + 2)
        shown = [
            f"  {'→' if number == line_number else ' '}{number}: {lines[number - 1]}"
            for number in range(start + 1, end + 1)
        ]
        return f"{operation}. Updated content:\n" + "\n".join(shown)

    size_info = f" ({content_length} characters)" if content_length is not None else ""
    preview = "\n".join(
        f"  {i + 1}: {line}" for i, line in enumerate(lines[:PREVIEW_LINES])
    )
    suffix = "\n  ..." if total > PREVIEW_LINES else ""
    return f"{operation}. File now has {total} lines{size_info}:\n{preview}{suffix}"


def render_edit_context(
    lines: list[str],
    line_number: int,
    old_text: str | None = None,
    new_text: str | None = None,
) -> str:
    """Numbered context around ``line_number`` of the edited buffer.

    ``lines`` is the buffer *after* the edit. A replace shows the old lines
    with ``-`` and the new with ``+``; a deletion (``new_text == ""``) shows
    only ``-``; an insert (no ``old_text``) marks the new line with ``+``.
    """
    if not 0 < line_number <= len(lines) + 1:
        return f"    Line {line_number}: (context unavailable)"

    rendered: list[tuple[int, str, str]] = []
    start = max(1, line_number - _EDIT_CONTEXT)
    rendered.extend((n, " ", lines[n - 1]) for n in range(start, line_number))

    if old_text is None:
        rendered.append((line_number, "+", lines[line_number - 1]))
        resume = line_number + 1
    else:
        old_lines = old_text.split("\n")
        new_lines = new_text.split("\n") if new_text else []
        rendered.extend((line_number + i, "-", text) for i, text in enumerate(old_lines))
        rendered.extend((line_number + i, "+", text) for i, text in enumerate(new_lines))
        resume = line_number + len(new_lines)

    stop = min(len(lines), resume + _EDIT_CONTEXT - 1)
    rendered.extend((n, " ", lines[n - 1]) for n in range(resume, stop + 1))

    width = len(str(max(number for number, _, _ in rendered)))
    return "\n".join(f"{number:>{width}}:{marker} {text}" for number, marker, text in rendered)


def render_session_matches(
    path: str,
    old_string: str,
    new_string: str,
    token: str,
    matches: list[MatchRecord],
) -> str:
    """Explain an ambiguous replace and how to resolve it."""
    rows = merge_context(matches)
    width = len(str(rows[-1].line_number)) if rows else 1
    body: list[str] = []
    previous: int | None = None
    for row in rows:
        if previous is not None and row.line_number > previous + 1:
            body.append("    ...")
        if row.is_match:
            label = ",".join(str(i) for i in row.match_indices)
            body.append(f"[{label}]→ {row.line_number:>{width}}: {row.text}")
        else:
            body.append(f"     {row.line_number:>{width}}: {row.text}")
        previous = row.line_number

    return (
        f'Multiple matches found for "{old_string}" in {path} '
        f"(Session: {token}):\n\n"
        + "\n".join(body)
        + "\n\nAvailable options:\n"
        "- Single/Multiple: match_index=[0] or match_index=[0,2]\n"
        "- All: replace_all=true\n"
        f'- Re-run with: replace(path="{path}", old_string="{old_string}", '
        f'new_string="{new_string}", match_index=[0], session_id="{token}")'
    )
