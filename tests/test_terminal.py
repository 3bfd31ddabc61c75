"""Tests for jobtop.terminal.Terminal using pipes instead of a real TTY."""

import io
import os

import pytest

from jobtop.exceptions import TerminalError
from jobtop.terminal import (
    CLEAR_SCREEN,
    LEAVE_ALT_SCREEN,
    SHOW_CURSOR,
    Terminal,
    move_to,
)


@pytest.fixture
def pipe_terminal():
    read_fd, write_fd = os.pipe()
    stdin = os.fdopen(read_fd, "rb", buffering=0)
    stdout = io.StringIO()
    yield Terminal(stdin=stdin, stdout=stdout), write_fd, stdout
    stdin.close()
    os.close(write_fd)


class TestInput:
    """Key reads with timeouts."""

    def test_read_key(self, pipe_terminal):
        terminal, write_fd, _ = pipe_terminal
        os.write(write_fd, b"q")
        assert terminal.read_key(0.5) == "q"

    def test_read_key_timeout(self, pipe_terminal):
        terminal, _, _ = pipe_terminal
        assert terminal.read_key(0.01) is None

    def test_read_pending_after_escape(self, pipe_terminal):
        terminal, write_fd, _ = pipe_terminal
        os.write(write_fd, b"\x1b[A")
        assert terminal.read_key(0.5) == "\x1b"
        assert terminal.read_pending(0.05) == "[A"

    def test_read_pending_nothing(self, pipe_terminal):
        terminal, _, _ = pipe_terminal
        assert terminal.read_pending(0.01) == ""


class TestOutput:
    """Painting and terminal modes."""

    def test_move_to(self):
        assert move_to(3) == "\x1b[3;1H"

    def test_paint_positions_every_line(self, pipe_terminal):
        terminal, _, stdout = pipe_terminal
        terminal.paint(["first", "second"])
        out = stdout.getvalue()
        assert move_to(1) + "first" in out
        assert move_to(2) + "second" in out
        assert CLEAR_SCREEN not in out

    def test_clear(self, pipe_terminal):
        terminal, _, stdout = pipe_terminal
        terminal.clear()
        assert stdout.getvalue() == CLEAR_SCREEN

    def test_enter_requires_tty(self, pipe_terminal):
        terminal, _, _ = pipe_terminal
        with pytest.raises(TerminalError):
            terminal.enter()

    def test_restore_without_enter(self, pipe_terminal):
        terminal, _, stdout = pipe_terminal
        terminal.restore()
        out = stdout.getvalue()
        assert SHOW_CURSOR in out
        assert LEAVE_ALT_SCREEN in out

    def test_size_fallback(self, pipe_terminal):
        terminal, _, _ = pipe_terminal
        width, height = terminal.size()
        assert width > 0 and height > 0
