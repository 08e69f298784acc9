"""
Intcode VM: Line-Oriented I/O Ports

The machine never touches stdin/stdout directly. An Input instruction
asks its InputPort for one line of text; an Output instruction hands its
OutputPort one line. One decimal integer per line, newline-terminated.

Port capabilities:
  InputPort.read_line()   -> str, or None when no line is available yet
  OutputPort.write_line(text)

Returning None from read_line() is the suspension point: the engine
reports StopReason.WAIT_INPUT and leaves the Input instruction unexecuted,
so the driver can feed the port and step again. Ports that wrap a real
stream (stdin) simply block inside read_line() instead.

Concrete ports:
  BufferedInput    queued lines, fed by the driver (feed / feed_values)
  BufferedOutput   collects written lines for inspection
  StreamInput      wraps a text file (sys.stdin by default)
  StreamOutput     wraps a text file (sys.stdout by default)
  Pipe             both sides at once; wires one machine's output to
                   another machine's input
  CallbackInput    asks a driver function for each value
  CallbackOutput   hands each value to a driver function
"""

import sys
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, TextIO

__all__ = [
    'InputPort', 'OutputPort', 'BufferedInput', 'BufferedOutput',
    'StreamInput', 'StreamOutput', 'Pipe', 'CallbackInput', 'CallbackOutput',
    'NullInput',
]


class InputPort(ABC):
    """Source of input lines."""

    @abstractmethod
    def read_line(self) -> Optional[str]:
        """Next line of text, or None if nothing is available yet."""


class OutputPort(ABC):
    """Sink for output lines."""

    @abstractmethod
    def write_line(self, text: str) -> None:
        """Accept one line of text (without its newline)."""


# ──────────────────────────────────────────────
# In-process buffers
# ──────────────────────────────────────────────

class BufferedInput(InputPort):
    """Queue of pending input lines.

    Example:
        port = BufferedInput([5])
        port.feed_values(1, 2)
        port.read_line()   # "5"
    """

    def __init__(self, values: Iterable = ()):
        self._queue: Deque[str] = deque()
        self.feed_values(*values)

    def feed(self, text: str):
        """Queue raw text; every non-blank line in it becomes one input."""
        for line in text.splitlines():
            if line.strip():
                self._queue.append(line)

    def feed_values(self, *values: int):
        for value in values:
            self._queue.append(str(value))

    def read_line(self) -> Optional[str]:
        if not self._queue:
            return None
        return self._queue.popleft()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def clear(self):
        self._queue.clear()


class NullInput(InputPort):
    """Input port that never has anything to read."""

    def read_line(self) -> Optional[str]:
        return None


class BufferedOutput(OutputPort):
    """Collects every written line."""

    def __init__(self):
        self.lines: List[str] = []

    def write_line(self, text: str) -> None:
        self.lines.append(text)

    def values(self) -> List[int]:
        return [int(line) for line in self.lines]

    @property
    def last(self) -> Optional[int]:
        return int(self.lines[-1]) if self.lines else None

    @property
    def text(self) -> str:
        return ''.join(f"{line}\n" for line in self.lines)

    def clear(self):
        self.lines.clear()


# ──────────────────────────────────────────────
# OS streams
# ──────────────────────────────────────────────

class StreamInput(InputPort):
    """Reads lines from a text stream. Blocks on an interactive terminal.

    End of stream reports no available input (None); blank lines are
    skipped.
    """

    def __init__(self, stream: Optional[TextIO] = None, prompt: Optional[str] = None,
                 prompt_stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdin
        self.prompt = prompt
        self.prompt_stream = prompt_stream if prompt_stream is not None else sys.stderr

    def read_line(self) -> Optional[str]:
        while True:
            if self.prompt:
                self.prompt_stream.write(self.prompt)
                self.prompt_stream.flush()
            line = self.stream.readline()
            if line == '':
                return None
            line = line.strip()
            if line:
                return line


class StreamOutput(OutputPort):
    """Writes each line to a text stream and flushes it."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout

    def write_line(self, text: str) -> None:
        self.stream.write(text + '\n')
        self.stream.flush()


# ──────────────────────────────────────────────
# Machine-to-machine wiring
# ──────────────────────────────────────────────

class Pipe(InputPort, OutputPort):
    """FIFO connecting an upstream machine's output to a downstream input.

    The most recent ``history_size`` lines written are kept in ``history`` so
    the last value that went through the pipe can be recovered after the
    downstream side consumed it.
    """

    def __init__(self, name: str = '', history_size: int = 16):
        self.name = name
        self._queue: Deque[str] = deque()
        self.history: Deque[str] = deque(maxlen=history_size)

    def write_line(self, text: str) -> None:
        self._queue.append(text)
        self.history.append(text)

    def read_line(self) -> Optional[str]:
        if not self._queue:
            return None
        return self._queue.popleft()

    def feed_values(self, *values: int):
        """Inject values without recording them as pipe traffic."""
        for value in values:
            self._queue.append(str(value))

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def last(self) -> Optional[int]:
        return int(self.history[-1]) if self.history else None

    def __repr__(self) -> str:
        return f"Pipe({self.name!r}, pending={len(self._queue)})"


# ──────────────────────────────────────────────
# Driver callbacks (interactive agents)
# ──────────────────────────────────────────────

class CallbackInput(InputPort):
    """Asks ``supplier()`` for each input value; None means not ready."""

    def __init__(self, supplier: Callable[[], Optional[int]]):
        self.supplier = supplier

    def read_line(self) -> Optional[str]:
        value = self.supplier()
        return None if value is None else str(value)


class CallbackOutput(OutputPort):
    """Passes each output value, as an int, to ``consumer``."""

    def __init__(self, consumer: Callable[[int], None]):
        self.consumer = consumer

    def write_line(self, text: str) -> None:
        self.consumer(int(text))
