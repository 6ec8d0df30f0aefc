"""Terminal driver: raw input mode, terminal size and key decoding"""

import contextlib
import enum
import fcntl
import logging
import os
import select
import signal
import struct
import subprocess
import sys
import termios
from abc import ABC, abstractmethod
from typing import IO, Iterator, NamedTuple

from tailview.helpers.ansi import (
    CLEAR_SCREEN,
    ESC,
    HIDE_CURSOR,
    SHOW_CURSOR,
    Size,
)

logger = logging.getLogger(__name__)

DEFAULT_SIZE = Size(40, 80)

MAX_READ = 6


class Key(enum.Enum):
    """Logical keys understood by the viewer"""

    QUIT = "quit"
    ESCAPE = "escape"
    SLASH_SEARCH = "slash_search"
    DATE_FILTER = "date_filter"
    NEXT = "next"
    PREV = "prev"
    DOWN = "down"
    UP = "up"
    LEFT = "left"
    RIGHT = "right"
    PAGE_DOWN = "page_down"
    PAGE_UP = "page_up"
    HOME = "home"
    END = "end"
    TOGGLE_EXPAND = "toggle_expand"
    CHAR = "char"


class KeyEvent(NamedTuple):
    """A decoded key press"""

    key: Key
    char: str = ""


_SINGLE_KEYS = {
    "q": Key.QUIT,
    "Q": Key.QUIT,
    "/": Key.SLASH_SEARCH,
    "f": Key.DATE_FILTER,
    "F": Key.DATE_FILTER,
    "n": Key.NEXT,
    "N": Key.PREV,
    "j": Key.DOWN,
    "k": Key.UP,
    "d": Key.PAGE_DOWN,
    "D": Key.PAGE_DOWN,
    "u": Key.PAGE_UP,
    "U": Key.PAGE_UP,
    "g": Key.HOME,
    "G": Key.END,
    " ": Key.TOGGLE_EXPAND,
    "\r": Key.TOGGLE_EXPAND,
    "\n": Key.TOGGLE_EXPAND,
}

_CSI_KEYS = {
    b"A": Key.UP,
    b"B": Key.DOWN,
    b"C": Key.RIGHT,
    b"D": Key.LEFT,
    b"H": Key.HOME,
    b"F": Key.END,
    b"5~": Key.PAGE_UP,
    b"6~": Key.PAGE_DOWN,
}


def decode_event(data: bytes) -> KeyEvent | None:
    """Decode one read from the terminal into a key event.

    A lone ESC byte is the Escape key. Escape sequences are looked up as a
    whole; unknown ones produce no event. For anything else only the first
    character counts.
    """
    if not data:
        return None

    if data[0] == ESC:
        if len(data) == 1:
            return KeyEvent(Key.ESCAPE)
        if data[1:2] != b"[":
            return None
        key = _CSI_KEYS.get(data[2:])
        return KeyEvent(key) if key else None

    char = data.decode("utf-8", errors="ignore")[:1]
    if not char:
        return None
    if char in _SINGLE_KEYS:
        return KeyEvent(_SINGLE_KEYS[char])
    if char.isprintable():
        return KeyEvent(Key.CHAR, char)
    return None


class TerminalDriver(ABC):
    """Abstract terminal interface, so the viewer can run without a TTY"""

    @abstractmethod
    def acquire(self) -> contextlib.AbstractContextManager[None]:
        """Enter raw input mode for the duration of a with-block"""

    @abstractmethod
    def size(self) -> Size:
        """Get the terminal size"""

    @abstractmethod
    def read_event(self, timeout: float | None = None) -> KeyEvent | None:
        """Wait for the next key event; None on timeout or undecodable input"""

    @abstractmethod
    def read_line(self, prompt: str) -> str:
        """Read one line of input with echo turned back on"""

    @abstractmethod
    def write(self, frame: str) -> None:
        """Write a whole frame at once"""


class TtyTerminal(TerminalDriver):
    """Concrete implementation of TerminalDriver on top of termios"""

    def __init__(self, stdin: IO[str] | None = None, stdout: IO[str] | None = None):
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._fd = self._stdin.fileno()
        self._saved_attrs: list | None = None
        self._fallback_size: Size | None = None

    @contextlib.contextmanager
    def acquire(self) -> Iterator[None]:
        """Disable echo and line buffering, restoring them on every exit path"""
        self._saved_attrs = termios.tcgetattr(self._fd)
        previous_handlers = {
            signum: signal.signal(signum, self._on_termination_signal)
            for signum in (signal.SIGTERM, signal.SIGHUP)
        }
        try:
            self._set_raw()
            self.write(HIDE_CURSOR + CLEAR_SCREEN)
            yield
        finally:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler)
            self.write(CLEAR_SCREEN + SHOW_CURSOR)
            self._saved_attrs = None
            logger.info("Terminal restored")

    @staticmethod
    def _on_termination_signal(signum: int, _frame) -> None:
        logger.info("Received signal %d", signum)
        raise SystemExit(128 + signum)

    def _set_raw(self) -> None:
        attrs = termios.tcgetattr(self._fd)
        attrs[3] &= ~(termios.ECHO | termios.ICANON)
        attrs[6][termios.VMIN] = 1
        attrs[6][termios.VTIME] = 0
        termios.tcsetattr(self._fd, termios.TCSADRAIN, attrs)

    def _set_cooked(self) -> None:
        attrs = termios.tcgetattr(self._fd)
        attrs[3] |= termios.ECHO | termios.ICANON
        termios.tcsetattr(self._fd, termios.TCSADRAIN, attrs)

    def size(self) -> Size:
        """Get the terminal size from the kernel, falling back to tput once"""
        try:
            packed = fcntl.ioctl(
                self._stdout.fileno(),
                termios.TIOCGWINSZ,
                struct.pack("HHHH", 0, 0, 0, 0),
            )
            rows, cols, _, _ = struct.unpack("HHHH", packed)
        except OSError:
            rows = cols = 0
        if rows > 0 and cols > 0:
            return Size(rows, cols)
        if self._fallback_size is None:
            self._fallback_size = self._tput_size()
        return self._fallback_size

    @staticmethod
    def _tput_size() -> Size:
        values = []
        for capability, default in (
            ("lines", DEFAULT_SIZE.height),
            ("cols", DEFAULT_SIZE.width),
        ):
            try:
                output = subprocess.run(
                    ["tput", capability],
                    capture_output=True,
                    text=True,
                    check=True,
                ).stdout
                values.append(int(output.strip()))
            except (OSError, subprocess.CalledProcessError, ValueError):
                values.append(default)
        return Size(*values)

    def read_event(self, timeout: float | None = None) -> KeyEvent | None:
        """Wait for input and decode one key event"""
        ready, _, _ = select.select([self._fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(self._fd, MAX_READ)
        if not data:
            raise EOFError("terminal input closed")
        return decode_event(data)

    def read_line(self, prompt: str) -> str:
        """Read one line in canonical mode, then return to raw mode"""
        self.write(SHOW_CURSOR + prompt)
        self._set_cooked()
        try:
            data = os.read(self._fd, 4096)
        finally:
            if self._saved_attrs is not None:
                self._set_raw()
            self.write(HIDE_CURSOR)
        return data.decode("utf-8", errors="replace").rstrip("\r\n")

    def write(self, frame: str) -> None:
        """Write a whole frame with a single write"""
        self._stdout.write(frame)
        self._stdout.flush()
