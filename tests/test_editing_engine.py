"""Tests for steady_hands.lib.editing.engine."""

from __future__ import annotations

from pathlib import Path

import pytest

import steady_hands.lib.meta.tools.filesystem as fs_tools
from steady_hands.lib.editing.engine import EditEngine
from steady_hands.lib.editing.sessions import SessionStore
from steady_hands.lib.editing.tracker import ReadTracker
from steady_hands.lib.errors import (
    ContentTooLargeError,
    FileMismatchError,
    InvalidLineNumberError,
    InvalidSelectionError,
    InvalidTokenError,
    NoMatchFoundError,
    OutOfBoundsError,
    RequiresPriorReadError,
)
from steady_hands.lib.meta.tools.filesystem import PathGuard
from steady_hands.lib.schemas import EditOperation


def _engine(root: Path, **kwargs) -> EditEngine:
    return EditEngine(PathGuard(root), ReadTracker(root), SessionStore(), **kwargs)


def _write(root: Path, name: str, content: str) -> Path:
    target = root / name
    target.write_bytes(content.encode("utf-8"))
    return target


def _replace(old: str, new: str, replace_all: bool = False) -> EditOperation:
    return EditOperation(old_string=old, new_string=new, replace_all=replace_all)


def _insert(line_number: int, content: str) -> EditOperation:
    return EditOperation(line_number=line_number, content=content)


@pytest.fixture()
def write_calls(monkeypatch: pytest.MonkeyPatch) -> list[Path]:
    calls: list[Path] = []
    original = fs_tools.write_text

    def spy(target: Path, text: str) -> None:
        calls.append(target)
        original(target, text)

    monkeypatch.setattr(fs_tools, "write_text", spy)
    return calls


# ---------------------------------------------------------------------------
# read
# ---------------------------------------------------------------------------


class TestRead:
    def test_default_window_and_hints(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "\n".join(f"line {i}" for i in range(1, 31)))
        engine = _engine(tmp_path)

        result = engine.read("a.txt")

        assert result.start_line == 1
        assert result.end_line == 20
        assert result.total_lines == 30
        rendered = result.render()
        assert rendered.startswith("line 1\n")
        assert "below (10 lines) ..." in rendered
        assert "startLine=21" in rendered

    def test_range(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "a\nb\nc\nd\ne")
        result = _engine(tmp_path).read("a.txt", start_line=2, end_line=3)
        assert result.content == "b\nc"
        assert "... above (1 lines)" in result.render()

    def test_whole_short_file_has_no_hints(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "a\nb")
        assert _engine(tmp_path).read("a.txt").render() == "a\nb"

    def test_marks_file_read(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "a")
        engine = _engine(tmp_path)
        engine.read("./a.txt")
        assert engine.tracker.is_read(tmp_path / "a.txt")

    def test_ranged_output_budget(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "x" * 50 + "\n" + "y")
        engine = _engine(tmp_path, output_limit=10)
        with pytest.raises(ContentTooLargeError, match="Selected range is too large"):
            engine.read("a.txt", start_line=1, end_line=1, range_requested=True)
        assert not engine.tracker.is_read(tmp_path / "a.txt")

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            _engine(tmp_path).read("nope.txt")


# ---------------------------------------------------------------------------
# write
# ---------------------------------------------------------------------------


class TestWrite:
    def test_creates_new_file_without_read(self, tmp_path: Path) -> None:
        engine = _engine(tmp_path)
        message = engine.write("new.txt", "hello\nworld")
        assert (tmp_path / "new.txt").read_text() == "hello\nworld"
        assert "Successfully wrote 11 characters" in message
        assert engine.tracker.is_read(tmp_path / "new.txt")

    def test_existing_file_requires_read(self, tmp_path: Path, write_calls: list[Path]) -> None:
        _write(tmp_path, "a.txt", "keep")
        engine = _engine(tmp_path)

        with pytest.raises(RequiresPriorReadError):
            engine.write("a.txt", "clobber")
        assert (tmp_path / "a.txt").read_text() == "keep"
        assert write_calls == []

        engine.read("a.txt")
        engine.write("a.txt", "replaced")
        assert (tmp_path / "a.txt").read_text() == "replaced"

    def test_missing_parent(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="create_parent_dir=true"):
            _engine(tmp_path).write("deep/dir/a.txt", "x")

    def test_create_parent(self, tmp_path: Path) -> None:
        _engine(tmp_path).write("deep/dir/a.txt", "x", create_parent_dir=True)
        assert (tmp_path / "deep" / "dir" / "a.txt").read_text() == "x"

    def test_size_limit(self, tmp_path: Path) -> None:
        with pytest.raises(ContentTooLargeError):
            _engine(tmp_path, max_file_size=5).write("a.txt", "x" * 6)


# ---------------------------------------------------------------------------
# replace / resolve
# ---------------------------------------------------------------------------


class TestReplace:
    def test_requires_prior_read(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "x")
        with pytest.raises(RequiresPriorReadError):
            _engine(tmp_path).replace("a.txt", "x", "y")

    def test_single_exact(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "a.txt", "alpha\nbeta\n")
        engine = _engine(tmp_path)
        engine.read("a.txt")

        outcome = engine.replace("a.txt", "beta", "gamma")

        assert target.read_text() == "alpha\ngamma\n"
        assert outcome.changes == 1
        assert outcome.session_token is None
        assert "exact match" in outcome.message

    def test_whole_line_delete(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "a.txt", "a\nb\nc")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        engine.replace("a.txt", "b", "")
        assert target.read_text() == "a\nc"

    def test_flexible_fallback(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "a.js", "  if (x) {\n    y();\n  }")
        engine = _engine(tmp_path)
        engine.read("a.js")

        outcome = engine.replace("a.js", "if (x) {\ny();\n}", "if (x) {\n  z();\n}")

        assert target.read_text() == "  if (x) {\n    z();\n  }"
        assert "flexible match" in outcome.message

    def test_identical_strings_rejected(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "x")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        with pytest.raises(ValueError, match="No changes to make"):
            engine.replace("a.txt", "x", "x")

    def test_no_match(self, tmp_path: Path, write_calls: list[Path]) -> None:
        _write(tmp_path, "a.txt", "value = compute()\n")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        with pytest.raises(NoMatchFoundError, match="compute"):
            engine.replace("a.txt", "computr", "x")
        assert write_calls == []

    def test_crlf_file_normalized(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "a.txt", "one\r\ntwo\r\n")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        engine.replace("a.txt", "one\ntwo", "three")
        assert target.read_bytes() == b"three\n"


class TestSessionRoundTrip:
    def _ambiguous(self, tmp_path: Path) -> tuple[EditEngine, Path, str]:
        target = _write(tmp_path, "a.txt", "x\nx\nx")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        outcome = engine.replace("a.txt", "x", "y")
        assert outcome.session_token is not None
        return engine, target, outcome.session_token

    def test_ambiguous_replace_writes_nothing(
        self, tmp_path: Path, write_calls: list[Path]
    ) -> None:
        engine, target, token = self._ambiguous(tmp_path)
        assert target.read_text() == "x\nx\nx"
        assert write_calls == []
        assert token in engine.sessions

    def test_resolve_selected(self, tmp_path: Path) -> None:
        engine, target, token = self._ambiguous(tmp_path)

        outcome = engine.resolve(token, "a.txt", [0, 2])

        assert target.read_text() == "y\nx\ny"
        assert outcome.changes == 2
        with pytest.raises(InvalidTokenError):
            engine.resolve(token, "a.txt", [1])

    def test_resolve_all(self, tmp_path: Path) -> None:
        engine, target, token = self._ambiguous(tmp_path)
        engine.resolve(token, "a.txt", replace_all=True)
        assert target.read_text() == "y\ny\ny"

    def test_invalid_selection_keeps_session(self, tmp_path: Path) -> None:
        engine, target, token = self._ambiguous(tmp_path)
        with pytest.raises(InvalidSelectionError):
            engine.resolve(token, "a.txt", [7])
        assert target.read_text() == "x\nx\nx"
        engine.resolve(token, "a.txt", [1])
        assert target.read_text() == "x\ny\nx"

    def test_file_mismatch(self, tmp_path: Path) -> None:
        engine, _, token = self._ambiguous(tmp_path)
        _write(tmp_path, "b.txt", "x\nx")
        engine.read("b.txt")
        with pytest.raises(FileMismatchError, match="Expected: a.txt"):
            engine.resolve(token, "b.txt", [0])

    def test_unknown_token(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "x")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        with pytest.raises(InvalidTokenError):
            engine.resolve("missing", "a.txt", [0])


# ---------------------------------------------------------------------------
# insert
# ---------------------------------------------------------------------------


class TestInsert:
    def test_insert_and_append(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "a.txt", "a\nc")
        engine = _engine(tmp_path)
        engine.read("a.txt")

        engine.insert("a.txt", 2, "b")
        engine.insert("a.txt", 4, "d")

        assert target.read_text() == "a\nb\nc\nd"

    def test_out_of_range(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "a")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        with pytest.raises(InvalidLineNumberError):
            engine.insert("a.txt", 3, "x")
        with pytest.raises(InvalidLineNumberError):
            engine.insert("a.txt", 0, "x")


# ---------------------------------------------------------------------------
# batch
# ---------------------------------------------------------------------------


class TestApplyBatch:
    def test_requires_prior_read(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "x")
        with pytest.raises(RequiresPriorReadError):
            _engine(tmp_path).apply_batch("a.txt", [_replace("x", "y")])

    def test_sequential_operations_one_write(
        self, tmp_path: Path, write_calls: list[Path]
    ) -> None:
        target = _write(tmp_path, "a.py", "def f():\n    return 1\n")
        engine = _engine(tmp_path)
        engine.read("a.py")

        result = engine.apply_batch(
            "a.py",
            [
                _replace("return 1", "return 2"),
                _insert(1, "# header"),
                _replace("return 2", "return 3"),
            ],
        )

        assert target.read_text() == "# header\ndef f():\n    return 3\n"
        assert result.total_changes == 3
        assert result.written is True
        assert len(write_calls) == 1
        assert all(outcome.ok for outcome in result.outcomes)
        assert "3 changes applied across 3 operations" in result.render()

    def test_single_read(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write(tmp_path, "a.txt", "a\nb")
        engine = _engine(tmp_path)
        engine.read("a.txt")

        reads: list[Path] = []
        original = fs_tools.read_text

        def spy(target: Path, **kwargs) -> str:
            reads.append(target)
            return original(target, **kwargs)

        monkeypatch.setattr(fs_tools, "read_text", spy)
        engine.apply_batch("a.txt", [_replace("a", "A"), _replace("b", "B")])
        assert len(reads) == 1

    def test_failures_do_not_stop_later_operations(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "a.txt", "one\ntwo")
        engine = _engine(tmp_path)
        engine.read("a.txt")

        result = engine.apply_batch(
            "a.txt",
            [
                _replace("missing", "x"),
                _insert(99, "x"),
                EditOperation(old_string="one", new_string="1", line_number=1, content="z"),
                EditOperation(),
                _replace("two", "two"),
                _replace("two", "2"),
            ],
        )

        assert [o.ok for o in result.outcomes] == [False, False, False, False, False, True]
        assert "No matches found" in result.outcomes[0].message
        assert "Invalid line number" in result.outcomes[1].message
        assert "both replace and insert" in result.outcomes[2].message
        assert "must specify either" in result.outcomes[3].message
        assert "no changes to make" in result.outcomes[4].message
        assert result.total_changes == 1
        assert target.read_text() == "one\n2"

    def test_no_op_batch_writes_nothing(
        self, tmp_path: Path, write_calls: list[Path]
    ) -> None:
        target = _write(tmp_path, "a.txt", "keep")
        engine = _engine(tmp_path)
        engine.read("a.txt")

        result = engine.apply_batch("a.txt", [_replace("absent", "x")])

        assert result.total_changes == 0
        assert result.written is False
        assert write_calls == []
        assert target.read_text() == "keep"

    def test_replace_all_and_line_delete(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "a.txt", "tmp\nx = 1\ntmp\nx = 2")
        engine = _engine(tmp_path)
        engine.read("a.txt")

        result = engine.apply_batch(
            "a.txt",
            [_replace("tmp", "", replace_all=True), _replace("x", "y", replace_all=True)],
        )

        assert target.read_text() == "y = 1\ny = 2"
        assert result.total_changes == 4

    def test_single_operation_summary(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "a")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        rendered = engine.apply_batch("a.txt", [_replace("a", "b")]).render()
        assert rendered.startswith("Edit completed: 1 change applied to a.txt")
        assert "Edit 1:" not in rendered

    def test_batch_marks_file_read_after_write(self, tmp_path: Path) -> None:
        _write(tmp_path, "a.txt", "a")
        engine = _engine(tmp_path)
        engine.read("a.txt")
        engine.tracker.clear()
        engine.tracker.mark_read(tmp_path / "a.txt")
        engine.apply_batch("a.txt", [_replace("a", "b")])
        assert engine.tracker.is_read("a.txt")


# ---------------------------------------------------------------------------
# path guard on every mutating operation
# ---------------------------------------------------------------------------


class TestOutOfBounds:
    @pytest.fixture()
    def engine(self, tmp_path: Path) -> EditEngine:
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "outside.txt").write_text("x\nx")
        return _engine(root)

    def test_write(self, engine: EditEngine) -> None:
        with pytest.raises(OutOfBoundsError):
            engine.write("../outside.txt", "y")

    def test_replace(self, engine: EditEngine) -> None:
        with pytest.raises(OutOfBoundsError):
            engine.replace("../outside.txt", "x", "y")

    def test_insert(self, engine: EditEngine) -> None:
        with pytest.raises(OutOfBoundsError):
            engine.insert("../outside.txt", 1, "y")

    def test_batch(self, engine: EditEngine) -> None:
        with pytest.raises(OutOfBoundsError):
            engine.apply_batch("../outside.txt", [_replace("x", "y")])

    def test_resolve(self, engine: EditEngine) -> None:
        with pytest.raises(OutOfBoundsError):
            engine.resolve("token", "../outside.txt", [0])

    def test_read(self, engine: EditEngine, tmp_path: Path) -> None:
        with pytest.raises(OutOfBoundsError):
            engine.read("../outside.txt")
        assert (tmp_path / "outside.txt").read_text() == "x\nx"
