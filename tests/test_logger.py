"""
Tests for the console Logger.
"""

import io
import threading

from rich.console import Console

from leftovers.core.logger import Logger


def make_logger(no_confirm=False):
    console = Console(file=io.StringIO(), width=200, force_terminal=False)
    return Logger(console=console, no_confirm=no_confirm), console


class TestLoggerOutput:
    """Tests for printf and println."""

    def test_printf_formats_arguments(self):
        """Test printf applies %-formatting."""
        logger, console = make_logger()
        logger.printf("SUCCESS deleting %s %s", "EC2 Volume", "vol-1")
        assert console.file.getvalue() == "SUCCESS deleting EC2 Volume vol-1\n"

    def test_printf_drops_trailing_newline(self):
        """Test every call produces exactly one line."""
        logger, console = make_logger()
        logger.printf("done\n")
        assert console.file.getvalue() == "done\n"

    def test_printf_without_arguments_keeps_percent(self):
        """Test a message without arguments is not formatted."""
        logger, console = make_logger()
        logger.printf("100% done")
        assert console.file.getvalue() == "100% done\n"

    def test_println_keeps_brackets(self):
        """Test square brackets are printed literally, not as markup."""
        logger, console = make_logger()
        logger.println("[EC2 Key Pair: ci-key]")
        assert console.file.getvalue() == "[EC2 Key Pair: ci-key]\n"

    def test_concurrent_lines_do_not_interleave(self):
        """Test lines written from many threads stay whole."""
        logger, console = make_logger()
        expected = {f"line from worker {i} " + "x" * 100 for i in range(20)}

        threads = [
            threading.Thread(target=logger.println, args=(line,)) for line in expected
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = console.file.getvalue().splitlines()
        assert set(lines) == expected
        assert len(lines) == 20


class TestLoggerPrompts:
    """Tests for confirmation prompts."""

    def test_confirmed(self, monkeypatch):
        """Test answering yes confirms the deletion."""
        logger, console = make_logger()
        monkeypatch.setattr("builtins.input", lambda *args: "y")

        assert logger.prompt_with_details("EC2 Volume", "vol-1") is True
        assert "Are you sure you want to delete EC2 Volume vol-1?" in console.file.getvalue()

    def test_declined(self, monkeypatch):
        """Test answering no declines the deletion."""
        logger, _ = make_logger()
        monkeypatch.setattr("builtins.input", lambda *args: "n")

        assert logger.prompt_with_details("EC2 Volume", "vol-1") is False

    def test_no_confirm_never_asks(self, monkeypatch):
        """Test no-confirm mode answers yes without reading input."""
        logger, console = make_logger(no_confirm=True)

        def fail(*args):
            raise AssertionError("prompted in no-confirm mode")

        monkeypatch.setattr("builtins.input", fail)

        assert logger.prompt_with_details("IAM Role", "ci-role") is True
        assert console.file.getvalue() == ""

    def test_no_confirm_switch(self):
        """Test no_confirm() turns prompting off for good."""
        logger, _ = make_logger()
        assert logger.confirms is True

        logger.no_confirm()

        assert logger.confirms is False
        assert logger.prompt_with_details("IAM Role", "ci-role") is True

    def test_repr(self):
        """Test string representation."""
        logger, _ = make_logger(no_confirm=True)
        assert repr(logger) == "Logger(no_confirm=True)"
