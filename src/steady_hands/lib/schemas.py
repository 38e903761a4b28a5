"""Input models for every file operation.

Field types and ranges are checked here, at the boundary, before any core
logic runs. Whether an edit operation is a replace or an insert is *not*
decided here: a batch reports a malformed operation as that operation's
failure instead of rejecting the whole call.
"""

from __future__ import annotations

__all__ = [
    "CopyInput",
    "EditInput",
    "EditOperation",
    "FindInput",
    "GrepInput",
    "InsertInput",
    "MoveInput",
    "OperationKind",
    "ReadInput",
    "ReplaceInput",
    "WriteInput",
]

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

FilePath = Annotated[
    str, Field(min_length=1, description="File path, relative to the workspace root")
]

OperationKind = Literal["replace", "insert", "both", "neither"]


class _Input(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class ReadInput(_Input):
    """Read a file, optionally a line window of it."""

    path: FilePath
    start_line: int = Field(default=1, ge=1, alias="startLine")
    end_line: int | None = Field(default=None, ge=1, alias="endLine")
    max_lines: int = Field(default=20, ge=1, alias="maxLines")

    @model_validator(mode="after")
    def _check_range(self) -> ReadInput:
        if self.end_line is not None and self.start_line > self.end_line:
            msg = (
                f"start_line ({self.start_line}) cannot be greater than "
                f"end_line ({self.end_line})"
            )
            raise ValueError(msg)
        return self


class WriteInput(_Input):
    """Create or overwrite a file with complete contents."""

    path: FilePath
    content: str
    create_parent_dir: bool = Field(default=False, alias="createParentDir")


class EditOperation(_Input):
    """One batch step: ``old_string``+``new_string`` or ``line_number``+``content``."""

    old_string: str | None = Field(default=None, alias="oldString")
    new_string: str | None = Field(default=None, alias="newString")
    line_number: int | None = Field(default=None, alias="lineNumber")
    content: str | None = None
    replace_all: bool = Field(default=False, alias="replaceAll")

    @property
    def kind(self) -> OperationKind:
        is_replace = self.old_string is not None and self.new_string is not None
        is_insert = self.line_number is not None and self.content is not None
        if is_replace and is_insert:
            return "both"
        if is_replace:
            return "replace"
        if is_insert:
            return "insert"
        return "neither"


class EditInput(_Input):
    """Apply an ordered batch of edits to one file."""

    path: FilePath
    edits: list[EditOperation] = Field(min_length=1)


class ReplaceInput(_Input):
    """Replace one occurrence, or resolve a pending multi-match session."""

    path: FilePath
    old_string: str = Field(default="", alias="oldString")
    new_string: str = Field(default="", alias="newString")
    session_id: str | None = Field(default=None, alias="sessionId")
    match_index: list[int] | None = Field(default=None, alias="matchIndex")
    replace_all: bool = Field(default=False, alias="replaceAll")

    @model_validator(mode="after")
    def _check_shape(self) -> ReplaceInput:
        if self.session_id is None:
            if not self.old_string:
                raise ValueError("old_string is required unless session_id is given")
            if self.match_index is not None or self.replace_all:
                raise ValueError("match_index and replace_all require session_id")
        return self


class InsertInput(_Input):
    """Insert one line before ``line_number`` (``line_count + 1`` appends)."""

    path: FilePath
    line_number: int = Field(alias="lineNumber")
    content: str


class FindInput(_Input):
    """List files and directories under a path."""

    path: FilePath
    pattern: str | None = None
    depth: int = Field(default=0, ge=0)
    include_ignored: bool = Field(default=False, alias="includeIgnored")


class GrepInput(_Input):
    """Regex search across files."""

    pattern: str = Field(min_length=1)
    path: str = Field(default=".", min_length=1)
    include: str | None = None
    before_context: int = Field(default=0, ge=0, alias="beforeContext")
    after_context: int = Field(default=0, ge=0, alias="afterContext")
    context: int | None = Field(default=None, ge=0)
    multiline: bool = False
    max_count: int = Field(default=5, ge=1, alias="maxCount")


class MoveInput(_Input):
    """Move a file inside the workspace."""

    source: str = Field(min_length=1, alias="from")
    destination: str = Field(min_length=1, alias="to")
    overwrite: bool = False


class CopyInput(MoveInput):
    """Copy a file inside the workspace."""
