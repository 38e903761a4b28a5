"""MCP server for steady_hands.

Exposes path-confined file operations over the Model Context Protocol so AI
clients (Claude Desktop, Cursor, etc.) can read, search and edit files in
one workspace directory.

Tools:
  - read: Read a file window; required before editing a file.
  - find: List files and directories with glob filters.
  - grep: Regex search with context lines.
  - write: Create a file or overwrite one that was read.
  - edit: Apply a batch of replace/insert edits with one write.
  - replace: Replace one occurrence or resolve a multi-match session.
  - insert: Insert a line at a line number.
  - move / copy: Relocate or duplicate a file inside the workspace.

Run with:
  uv run steady-hands-mcp          (stdio, for Claude Desktop / Cursor)
  uv run steady-hands-mcp --http   (streamable-http, for networked clients)

The workspace root is ``STEADY_HANDS_ROOT`` or the current directory.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from mcp.server.fastmcp import FastMCP

from steady_hands.lib.config import Config
from steady_hands.server.front import FileToolServer

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "steady_hands",
    instructions=(
        "steady_hands MCP server. Read a file before editing it; use edit for "
        "several changes to one file, replace for a single change."
    ),
)

_server: FileToolServer | None = None


def _get_server() -> FileToolServer:
    """Return the process-wide tool server, building it on first use."""
    global _server
    if _server is None:
        _server = FileToolServer(Config.from_env())
        logger.info("Serving files under %s", _server.config.root)
    return _server


def _call(name: str, arguments: dict[str, Any]) -> str:
    result = _get_server().dispatch(name, arguments)
    return "\n".join(part["text"] for part in result["content"])


@mcp.tool()
def read(
    path: str,
    start_line: int | None = None,
    end_line: int | None = None,
    max_lines: int | None = None,
) -> str:
    """Read a text file. Returns 20 lines unless a range is given.

    Args:
        path: File path relative to the workspace root.
        start_line: First line to return, 1-based.
        end_line: Last line to return, inclusive.
        max_lines: Number of lines to return when end_line is omitted.
    """
    arguments: dict[str, Any] = {"path": path}
    for key, value in (
        ("start_line", start_line),
        ("end_line", end_line),
        ("max_lines", max_lines),
    ):
        if value is not None:
            arguments[key] = value
    return _call("read", arguments)


@mcp.tool()
def find(
    path: str = ".",
    pattern: str | None = None,
    depth: int = 0,
    include_ignored: bool = False,
) -> str:
    """List files and directories under a path.

    Args:
        path: Directory to list, relative to the workspace root.
        pattern: Comma-separated globs; prefix with ! to exclude.
        depth: Maximum depth, 0 for unlimited.
        include_ignored: Also list .gitignore'd entries.
    """
    return _call(
        "find",
        {
            "path": path,
            "pattern": pattern,
            "depth": depth,
            "include_ignored": include_ignored,
        },
    )


@mcp.tool()
def grep(
    pattern: str,
    path: str = ".",
    include: str | None = None,
    before_context: int = 0,
    after_context: int = 0,
    context: int | None = None,
    multiline: bool = False,
    max_count: int = 5,
) -> str:
    """Search file contents with a regular expression.

    Args:
        pattern: Python regular expression.
        path: File or directory to search.
        include: Comma-separated globs restricting which files are searched.
        before_context: Lines to show before each match.
        after_context: Lines to show after each match.
        context: Lines to show on both sides; overrides the two above.
        multiline: Anchors ``^``/``$`` match at each line (re.MULTILINE);
            lines are still searched one at a time.
        max_count: Matches to show per file.
    """
    return _call(
        "grep",
        {
            "pattern": pattern,
            "path": path,
            "include": include,
            "before_context": before_context,
            "after_context": after_context,
            "context": context,
            "multiline": multiline,
            "max_count": max_count,
        },
    )


@mcp.tool()
def write(path: str, content: str, create_parent_dir: bool = False) -> str:
    """Create a file, or overwrite one that has been read."""
    return _call(
        "write",
        {"path": path, "content": content, "create_parent_dir": create_parent_dir},
    )


@mcp.tool()
def edit(path: str, edits: list[dict[str, Any]]) -> str:
    """Apply several edits to one file with a single write.

    Args:
        path: File to edit; it must have been read first.
        edits: Ordered operations, each either
            ``{"old_string", "new_string", "replace_all"?}`` or
            ``{"line_number", "content"}``.
    """
    return _call("edit", {"path": path, "edits": edits})


@mcp.tool()
def replace(
    path: str,
    old_string: str = "",
    new_string: str = "",
    session_id: str | None = None,
    match_index: list[int] | None = None,
    replace_all: bool = False,
) -> str:
    """Replace one occurrence of a string.

    When ``old_string`` occurs more than once nothing is changed; the result
    lists the matches and a ``session_id``. Call again with that
    ``session_id`` and ``match_index`` (or ``replace_all=true``) to apply.
    """
    return _call(
        "replace",
        {
            "path": path,
            "old_string": old_string,
            "new_string": new_string,
            "session_id": session_id,
            "match_index": match_index,
            "replace_all": replace_all,
        },
    )


@mcp.tool()
def insert(path: str, line_number: int, content: str) -> str:
    """Insert content as the given 1-based line (line count + 1 appends)."""
    return _call("insert", {"path": path, "line_number": line_number, "content": content})


@mcp.tool()
def move(source: str, destination: str, overwrite: bool = False) -> str:
    """Move a file within the workspace."""
    return _call(
        "move", {"source": source, "destination": destination, "overwrite": overwrite}
    )


@mcp.tool()
def copy(source: str, destination: str, overwrite: bool = False) -> str:
    """Copy a file within the workspace, preserving metadata."""
    return _call(
        "copy", {"source": source, "destination": destination, "overwrite": overwrite}
    )


def main() -> None:
    """Entry point for the MCP server."""
    config = Config.from_env()
    # stdout carries the stdio transport
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    global _server
    _server = FileToolServer(config)
    transport = "streamable-http" if "--http" in sys.argv else "stdio"
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
