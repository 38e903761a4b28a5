"""Tests for steady_hands.lib.schemas input models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from steady_hands.lib.schemas import (
    CopyInput,
    EditInput,
    EditOperation,
    FindInput,
    ReadInput,
    ReplaceInput,
)


class TestEditOperationKind:
    @pytest.mark.parametrize(
        ("fields", "kind"),
        [
            ({"old_string": "a", "new_string": "b"}, "replace"),
            ({"oldString": "a", "newString": ""}, "replace"),
            ({"line_number": 1, "content": "x"}, "insert"),
            ({"old_string": "a", "new_string": "b", "line_number": 1, "content": "x"}, "both"),
            ({"old_string": "a"}, "neither"),
            ({}, "neither"),
        ],
    )
    def test_kind(self, fields: dict, kind: str) -> None:
        assert EditOperation.model_validate(fields).kind == kind

    def test_batch_needs_one_edit(self) -> None:
        with pytest.raises(ValidationError):
            EditInput(path="a.txt", edits=[])


class TestInputs:
    def test_read_defaults(self) -> None:
        params = ReadInput(path="a.txt")
        assert (params.start_line, params.end_line, params.max_lines) == (1, None, 20)

    def test_read_rejects_zero_line(self) -> None:
        with pytest.raises(ValidationError):
            ReadInput(path="a.txt", start_line=0)

    def test_empty_path_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ReadInput(path="")

    def test_replace_needs_old_string_without_session(self) -> None:
        with pytest.raises(ValidationError, match="old_string is required"):
            ReplaceInput(path="a.txt", new_string="x")
        assert ReplaceInput(path="a.txt", session_id="t", match_index=[0]).match_index == [0]

    @pytest.mark.parametrize("extra", [{"match_index": [0]}, {"replace_all": True}])
    def test_replace_selection_needs_session(self, extra: dict) -> None:
        with pytest.raises(ValidationError, match="require session_id"):
            ReplaceInput(path="a.txt", old_string="x", new_string="y", **extra)

    def test_copy_aliases(self) -> None:
        params = CopyInput.model_validate({"from": "a", "to": "b"})
        assert (params.source, params.destination, params.overwrite) == ("a", "b", False)

    def test_find_depth_non_negative(self) -> None:
        with pytest.raises(ValidationError):
            FindInput(path=".", depth=-1)
