"""Tests for steady_hands.server.front."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from steady_hands.lib.config import Config
from steady_hands.server.front import FileToolServer

_OPERATIONS = ["read", "find", "grep", "write", "edit", "replace", "insert", "move", "copy"]


@pytest.fixture()
def server(tmp_path: Path) -> FileToolServer:
    return FileToolServer(Config(root=tmp_path))


def _text(result: dict) -> str:
    (part,) = result["content"]
    assert part["type"] == "text"
    return part["text"]


# ---------------------------------------------------------------------------
# registry
# ---------------------------------------------------------------------------


class TestListOperations:
    def test_all_operations_registered(self, server: FileToolServer) -> None:
        assert [op["name"] for op in server.list_operations()] == _OPERATIONS

    def test_schemas_use_wire_names(self, server: FileToolServer) -> None:
        schemas = {op["name"]: op["inputSchema"] for op in server.list_operations()}
        assert "startLine" in schemas["read"]["properties"]
        assert schemas["read"]["required"] == ["path"]
        assert {"from", "to"} <= set(schemas["move"]["properties"])
        assert "sessionId" in schemas["replace"]["properties"]


# ---------------------------------------------------------------------------
# dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_unknown_tool(self, server: FileToolServer) -> None:
        assert _text(server.dispatch("explode", {})) == "Explode failed: Unknown tool: explode"

    def test_validation_error(self, server: FileToolServer) -> None:
        text = _text(server.dispatch("read", {}))
        assert text.startswith("Read failed: Invalid arguments - path:")

    def test_extra_argument_rejected(self, server: FileToolServer) -> None:
        text = _text(server.dispatch("read", {"path": "a.txt", "bogus": 1}))
        assert text.startswith("Read failed:")

    def test_bad_range(self, server: FileToolServer) -> None:
        text = _text(server.dispatch("read", {"path": "a", "startLine": 5, "endLine": 2}))
        assert "cannot be greater than" in text

    def test_tool_error_reported_as_text(self, server: FileToolServer) -> None:
        text = _text(server.dispatch("read", {"path": "../escape.txt"}))
        assert text == "Read failed: Access outside current directory not allowed: ../escape.txt"

    def test_read_then_replace(self, server: FileToolServer, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("hello world\n")

        before = _text(server.dispatch("replace", {"path": "a.txt", "oldString": "world", "newString": "there"}))
        assert before.startswith("Replace failed: File must be read first")

        assert _text(server.dispatch("read", {"path": "a.txt"})) == "hello world\n"
        after = _text(
            server.dispatch("replace", {"path": "a.txt", "old_string": "world", "new_string": "there"})
        )
        assert "Successfully replaced 1 occurrence" in after
        assert (tmp_path / "a.txt").read_text() == "hello there\n"

    def test_session_flow(self, server: FileToolServer, tmp_path: Path) -> None:
        (tmp_path / "a.py").write_text("x = 1\nx = 2\nx = 3\n")
        server.dispatch("read", {"path": "a.py"})

        listing = _text(server.dispatch("replace", {"path": "a.py", "old_string": "x", "new_string": "y"}))
        match = re.search(r"\(Session: (\w+)\)", listing)
        assert match is not None
        token = match.group(1)

        resolved = _text(
            server.dispatch(
                "replace", {"path": "a.py", "sessionId": token, "matchIndex": [0, 2]}
            )
        )
        assert "Successfully replaced 2 occurrence(s)" in resolved
        assert (tmp_path / "a.py").read_text() == "y = 1\nx = 2\ny = 3\n"

        again = _text(server.dispatch("replace", {"path": "a.py", "sessionId": token, "matchIndex": [1]}))
        assert again.startswith("Replace failed: Invalid or expired session")

    def test_edit_batch(self, server: FileToolServer, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("one\ntwo\n")
        server.dispatch("read", {"path": "a.txt"})

        text = _text(
            server.dispatch(
                "edit",
                {
                    "path": "a.txt",
                    "edits": [
                        {"oldString": "one", "newString": "1"},
                        {"lineNumber": 3, "content": "three"},
                    ],
                },
            )
        )

        assert text.startswith("Batch edit completed: 2 changes applied across 2 operations")
        assert (tmp_path / "a.txt").read_text() == "1\ntwo\nthree\n"

    def test_write_and_insert(self, server: FileToolServer, tmp_path: Path) -> None:
        server.dispatch("write", {"path": "n.txt", "content": "a\nc"})
        text = _text(server.dispatch("insert", {"path": "n.txt", "lineNumber": 2, "content": "b"}))
        assert "Successfully inserted content" in text
        assert (tmp_path / "n.txt").read_text() == "a\nb\nc"

    def test_find_and_grep(self, server: FileToolServer, tmp_path: Path) -> None:
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "m.py").write_text("def run():\n    pass\n")

        assert _text(server.dispatch("find", {"path": "."})) == "src/\nsrc/m.py"
        assert _text(server.dispatch("find", {"path": ".", "pattern": "*.md"})) == "No files found"

        grep_text = _text(server.dispatch("grep", {"pattern": r"def \w+"}))
        assert "src/m.py\n1:def run():" in grep_text

    def test_gitignore_written_through_tools_applies(
        self, server: FileToolServer, tmp_path: Path
    ) -> None:
        (tmp_path / "build").mkdir()
        (tmp_path / "build" / "out.txt").write_text("")
        (tmp_path / "keep.txt").write_text("")
        assert _text(server.dispatch("find", {"path": "."})) == "build/\nbuild/out.txt\nkeep.txt"

        server.dispatch("write", {"path": ".gitignore", "content": "build/\n"})
        assert _text(server.dispatch("find", {"path": "."})) == ".gitignore\nkeep.txt"

    def test_move_and_copy(self, server: FileToolServer, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("alpha")

        copied = _text(server.dispatch("copy", {"from": "a.txt", "to": "b.txt"}))
        assert copied == "Copied: a.txt -> b.txt"

        refused = _text(server.dispatch("move", {"from": "a.txt", "to": "b.txt"}))
        assert refused.startswith("Move failed: Destination already exists: b.txt")

        moved = _text(server.dispatch("move", {"from": "a.txt", "to": "c.txt", "overwrite": True}))
        assert moved == "Moved: a.txt -> c.txt"

    def test_instances_are_isolated(self, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("x")
        first = FileToolServer(Config(root=tmp_path))
        second = FileToolServer(Config(root=tmp_path))
        first.dispatch("read", {"path": "a.txt"})

        text = _text(second.dispatch("write", {"path": "a.txt", "content": "y"}))
        assert text.startswith("Write failed: File must be read first")
