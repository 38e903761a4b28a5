"""Protocol front: named operations, input validation, uniform text results.

``FileToolServer`` owns every piece of per-process state (read tracker,
session store, ignore rules) so tests and embedders can run several
isolated instances side by side. ``dispatch`` is the single entry point a
transport calls; it never raises.
"""

from __future__ import annotations

__all__ = ["FileToolServer", "Operation"]

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from steady_hands.lib.config import Config
from steady_hands.lib.editing import EditEngine, ReadTracker, SessionStore
from steady_hands.lib.errors import ContentTooLargeError
from steady_hands.lib.meta.tools import (
    IgnoreFilter,
    PathGuard,
    copy_path,
    find_files,
    grep,
    move_path,
)
from steady_hands.lib.schemas import (
    CopyInput,
    EditInput,
    FindInput,
    GrepInput,
    InsertInput,
    MoveInput,
    ReadInput,
    ReplaceInput,
    WriteInput,
)

logger = logging.getLogger(__name__)

ToolResult = dict[str, list[dict[str, str]]]


@dataclass(frozen=True)
class Operation:
    """A registered operation: display label, description, input model, handler."""

    name: str
    label: str
    description: str
    model: type[BaseModel]
    handler: Callable[[Any], str]


def _text(text: str) -> ToolResult:
    return {"content": [{"type": "text", "text": text}]}


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "input"
        parts.append(f"{location}: {error['msg']}")
    return "Invalid arguments - " + "; ".join(parts)


class FileToolServer:
    """File operations confined to ``config.root``."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()
        self.guard = PathGuard(self.config.root)
        self.ignore = IgnoreFilter(self.config.root)
        self.tracker = ReadTracker(self.config.root)
        self.sessions = SessionStore(timeout_s=self.config.session_timeout_s)
        self.engine = EditEngine(
            self.guard,
            self.tracker,
            self.sessions,
            max_file_size=self.config.max_file_size,
            output_limit=self.config.output_limit,
        )
        self._operations = {
            op.name: op
            for op in (
                Operation(
                    "read",
                    "Read",
                    "Read a text file, by default the first 20 lines. Reading "
                    "a file is required before editing or overwriting it.",
                    ReadInput,
                    self._read,
                ),
                Operation(
                    "find",
                    "Find",
                    "List files and directories. Supports comma-separated glob "
                    "filters and !exclusions; honors .gitignore.",
                    FindInput,
                    self._find,
                ),
                Operation(
                    "grep",
                    "Grep",
                    "Search file contents with a regular expression.",
                    GrepInput,
                    self._grep,
                ),
                Operation(
                    "write",
                    "Write",
                    "Create a file, or overwrite one that has been read.",
                    WriteInput,
                    self._write,
                ),
                Operation(
                    "edit",
                    "Edit",
                    "Apply an ordered batch of replace/insert edits to one file "
                    "with a single write.",
                    EditInput,
                    self._edit,
                ),
                Operation(
                    "replace",
                    "Replace",
                    "Replace one occurrence of a string. When it occurs more than "
                    "once, returns a session to resolve with match_index or "
                    "replace_all.",
                    ReplaceInput,
                    self._replace,
                ),
                Operation(
                    "insert",
                    "Insert",
                    "Insert a line at a 1-based line number.",
                    InsertInput,
                    self._insert,
                ),
                Operation(
                    "move",
                    "Move",
                    "Move a file within the workspace.",
                    MoveInput,
                    self._move,
                ),
                Operation(
                    "copy",
                    "Copy",
                    "Copy a file within the workspace, preserving metadata.",
                    CopyInput,
                    self._copy,
                ),
            )
        }

    # -- registry -------------------------------------------------------------

    def list_operations(self) -> list[dict[str, Any]]:
        """Name, description and JSON input schema of every operation."""
        return [
            {
                "name": op.name,
                "description": op.description,
                "inputSchema": op.model.model_json_schema(by_alias=True),
            }
            for op in self._operations.values()
        ]

    def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Validate ``arguments`` and run operation ``name``.

        Every failure, including an unknown name, comes back as
        ``"<Operation> failed: <message>"`` text.
        """
        op = self._operations.get(name)
        if op is None:
            return _text(f"{name.capitalize() or 'Operation'} failed: Unknown tool: {name}")
        try:
            params = op.model.model_validate(arguments or {})
            return _text(op.handler(params))
        except ValidationError as exc:
            return _text(f"{op.label} failed: {_format_validation_error(exc)}")
        except Exception as exc:
            logger.debug("%s failed", op.label, exc_info=True)
            return _text(f"{op.label} failed: {exc}")

    # -- handlers -------------------------------------------------------------

    def _read(self, params: ReadInput) -> str:
        ranged = bool({"start_line", "end_line", "max_lines"} & params.model_fields_set)
        result = self.engine.read(
            params.path,
            start_line=params.start_line,
            end_line=params.end_line,
            max_lines=params.max_lines,
            range_requested=ranged,
        )
        return result.render()

    def _find(self, params: FindInput) -> str:
        entries = find_files(
            self.guard,
            params.path,
            params.pattern,
            max_depth=params.depth or None,
            include_ignored=params.include_ignored,
            ignore=self.ignore,
        )
        if not entries:
            return "No files found"
        listing = "\n".join(entry.display for entry in entries)
        if len(listing) > self.config.output_limit:
            msg = (
                f"Found {len(entries)} entries; listing exceeds "
                f"{self.config.output_limit:,} characters. Narrow the pattern "
                "or lower depth."
            )
            raise ContentTooLargeError(msg)
        return listing

    def _grep(self, params: GrepInput) -> str:
        return grep(
            self.guard,
            params.pattern,
            params.path,
            include=params.include,
            before_context=params.before_context,
            after_context=params.after_context,
            context=params.context,
            multiline=params.multiline,
            max_count=params.max_count,
            output_limit=self.config.output_limit,
            ignore=self.ignore,
        )

    def _write(self, params: WriteInput) -> str:
        return self.engine.write(
            params.path, params.content, create_parent_dir=params.create_parent_dir
        )

    def _edit(self, params: EditInput) -> str:
        return self.engine.apply_batch(params.path, params.edits).render()

    def _replace(self, params: ReplaceInput) -> str:
        if params.session_id is not None:
            outcome = self.engine.resolve(
                params.session_id,
                params.path,
                params.match_index,
                replace_all=params.replace_all,
            )
        else:
            outcome = self.engine.replace(params.path, params.old_string, params.new_string)
        return outcome.message

    def _insert(self, params: InsertInput) -> str:
        return self.engine.insert(params.path, params.line_number, params.content).message

    def _move(self, params: MoveInput) -> str:
        result = move_path(
            self.guard,
            self.ignore,
            params.source,
            params.destination,
            overwrite=params.overwrite,
        )
        verb = "Moved (overwrote existing)" if result.overwrote else "Moved"
        return f"{verb}: {result.source} -> {result.destination}"

    def _copy(self, params: CopyInput) -> str:
        result = copy_path(
            self.guard,
            self.ignore,
            params.source,
            params.destination,
            overwrite=params.overwrite,
        )
        verb = "Copied (overwrote existing)" if result.overwrote else "Copied"
        return f"{verb}: {result.source} -> {result.destination}"
