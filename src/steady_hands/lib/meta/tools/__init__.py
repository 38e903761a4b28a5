"""System tools package shared by the edit engine and the MCP front.

This package contains reusable filesystem-facing helpers:
- ``filesystem`` for the path guard and text IO.
- ``ignore`` for ``.gitignore`` rules.
- ``traversal`` for filtered directory walks.
- ``search`` for regex line search.
- ``transfer`` for move/copy.
"""

from steady_hands.lib.meta.tools.filesystem import (
    PathGuard,
    is_binary_file,
    is_dangerous_path,
    normalize_relative_path,
    read_text,
    write_text,
)
from steady_hands.lib.meta.tools.ignore import IgnoreFilter
from steady_hands.lib.meta.tools.search import (
    GrepLine,
    compile_pattern,
    describe_pattern_error,
    grep,
    search_lines,
)
from steady_hands.lib.meta.tools.transfer import TransferResult, copy_path, move_path
from steady_hands.lib.meta.tools.traversal import (
    TraversalEntry,
    find_files,
    parse_filter_patterns,
)

__all__ = [
    "GrepLine",
    "IgnoreFilter",
    "PathGuard",
    "TransferResult",
    "TraversalEntry",
    "compile_pattern",
    "copy_path",
    "describe_pattern_error",
    "find_files",
    "grep",
    "is_binary_file",
    "is_dangerous_path",
    "move_path",
    "normalize_relative_path",
    "parse_filter_patterns",
    "read_text",
    "search_lines",
    "write_text",
]
