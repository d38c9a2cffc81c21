"""Tests for the kindlegen adapter."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from mobibatch.converters.kindlegen import KindleGen, ToolResult, check_kindlegen_available
from mobibatch.exceptions import ExternalToolError


class TestKindleGenInit:
    """Tests for KindleGen initialization."""

    def test_default_init(self):
        """Test default initialization."""
        tool = KindleGen()

        assert tool.executable == "kindlegen"
        assert tool.compression_level == 0
        assert tool.verbose is False


class TestBuildCommand:
    """Tests for KindleGen.build_command."""

    def test_plain_command(self):
        """Test argument order without verbose flag."""
        tool = KindleGen(compression_level=2)
        cmd = tool.build_command(Path("/ws/book.epub"), "book.mobi")

        assert cmd == ["kindlegen", "-c2", "/ws/book.epub", "-o", "book.mobi"]

    def test_verbose_command(self):
        """Test -verbose comes before the compression flag."""
        tool = KindleGen(executable="/opt/kindlegen", compression_level=0, verbose=True)
        cmd = tool.build_command(Path("/ws/book.opf"), "book.mobi")

        assert cmd == ["/opt/kindlegen", "-verbose", "-c0", "/ws/book.opf", "-o", "book.mobi"]

    def test_paths_with_spaces_stay_one_argument(self):
        """Test no shell quoting is needed for paths with spaces."""
        tool = KindleGen()
        cmd = tool.build_command(Path("/tmp/my books/book.epub"), "book.mobi")

        assert "/tmp/my books/book.epub" in cmd


class TestRun:
    """Tests for KindleGen.run."""

    def test_run_captures_output(self):
        """Test output and exit code are returned."""
        tool = KindleGen()
        completed = MagicMock()
        completed.returncode = 1
        completed.stdout = "Warning(prcgen): no cover\n"

        with patch("mobibatch.converters.kindlegen.subprocess.run", return_value=completed) as run:
            result = tool.run(Path("/ws/book.epub"), "book.mobi")

        assert result == ToolResult(exit_code=1, output="Warning(prcgen): no cover\n")
        kwargs = run.call_args.kwargs
        assert kwargs["cwd"] == Path("/ws")
        assert kwargs["stdout"] == subprocess.PIPE
        assert kwargs["stderr"] == subprocess.STDOUT
        assert "shell" not in kwargs

    def test_run_empty_stdout(self):
        """Test a None stdout becomes an empty string."""
        completed = MagicMock()
        completed.returncode = 0
        completed.stdout = None

        with patch("mobibatch.converters.kindlegen.subprocess.run", return_value=completed):
            result = KindleGen().run(Path("/ws/book.epub"), "book.mobi")

        assert result.output == ""

    def test_missing_executable(self):
        """Test launch failure raises ExternalToolError."""
        tool = KindleGen(executable="no-such-kindlegen")

        with patch(
            "mobibatch.converters.kindlegen.subprocess.run",
            side_effect=FileNotFoundError("No such file or directory"),
        ):
            with pytest.raises(ExternalToolError) as exc_info:
                tool.run(Path("/ws/book.epub"), "book.mobi")

        assert "no-such-kindlegen" in str(exc_info.value)
        assert isinstance(exc_info.value.cause, FileNotFoundError)


class TestCheckAvailable:
    """Tests for check_kindlegen_available."""

    def test_found(self):
        """Test when kindlegen is on PATH."""
        with patch("shutil.which", return_value="/usr/bin/kindlegen"):
            assert check_kindlegen_available() is True

    def test_not_found(self):
        """Test when kindlegen is missing."""
        with patch("shutil.which", return_value=None):
            assert check_kindlegen_available("kindlegen") is False
