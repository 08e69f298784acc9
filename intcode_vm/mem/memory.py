"""
Intcode VM: Fixed-Capacity Word Memory

Memory is a flat array of signed integers, preallocated to a capacity the
driver chooses at load time. Cells past the loaded program read as zero,
and programs are free to use that space as scratch (self-extending memory).

Python ints never overflow, so the largest legal product (e.g. the
34915192 * 34915192 test) is exact with no width emulation.

Bounds:
  address < 0           → InvalidAddress
  address >= capacity   → AddressOutOfRange

Program text format:
  a single line of comma-separated base-10 integers, surrounding
  whitespace ignored, e.g. "1,9,10,3,2,3,11,0,99,30,40,50"
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..errors import InvalidAddress, AddressOutOfRange, ProgramFormatError

__all__ = ['Memory', 'parse_program', 'load_program', 'load_program_file']

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")


class Memory:
    """Fixed-capacity, zero-initialised word memory."""

    def __init__(self, capacity: int, image: Iterable[int] = ()):
        if capacity < 0:
            raise ValueError(f"Memory capacity must be >= 0, got {capacity}")
        self._cells: List[int] = [0] * capacity
        self._image: List[int] = list(image)
        if len(self._image) > capacity:
            raise ProgramFormatError(
                f"Program of {len(self._image)} words exceeds capacity {capacity}")
        self._cells[:len(self._image)] = self._image

    # --- Core read/write ---

    def check(self, address: int) -> int:
        """Validate an address, returning it unchanged."""
        if address < 0:
            raise InvalidAddress(address)
        if address >= len(self._cells):
            raise AddressOutOfRange(address, len(self._cells))
        return address

    def read(self, address: int) -> int:
        return self._cells[self.check(address)]

    def write(self, address: int, value: int):
        self._cells[self.check(address)] = value

    def __getitem__(self, address: int) -> int:
        return self.read(address)

    def __setitem__(self, address: int, value: int):
        self.write(address, value)

    def __len__(self) -> int:
        return len(self._cells)

    @property
    def capacity(self) -> int:
        return len(self._cells)

    @property
    def program_length(self) -> int:
        """Number of words in the originally loaded image."""
        return len(self._image)

    # --- Bulk access ---

    def reset(self):
        """Restore the loaded image and zero everything past it."""
        self._cells[:] = [0] * len(self._cells)
        self._cells[:len(self._image)] = self._image

    def snapshot(self, start: int = 0, end: Optional[int] = None) -> List[int]:
        """Copy of memory[start:end]. Defaults to the whole arena."""
        return list(self._cells[start:end])

    def to_list(self, trim: bool = False) -> List[int]:
        """Full contents; with ``trim`` trailing zero cells are dropped."""
        cells = list(self._cells)
        if trim:
            while cells and cells[-1] == 0:
                cells.pop()
        return cells

    def diff(self, other: List[int], start: int = 0) -> dict:
        """Compare against a snapshot, return {addr: (old, new)} for changes."""
        changes = {}
        for i, old in enumerate(other):
            addr = start + i
            if addr >= len(self._cells):
                break
            if self._cells[addr] != old:
                changes[addr] = (old, self._cells[addr])
        return changes

    def dump(self, start: int = 0, length: int = 64, per_line: int = 8) -> str:
        """Decimal dump for debugging, ``per_line`` words per row."""
        lines = []
        end = min(start + length, len(self._cells))
        for row in range(start, end, per_line):
            words = ' '.join(f'{v:>8d}' for v in self._cells[row:min(row + per_line, end)])
            lines.append(f'{row:05d}  {words}')
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return f"Memory(capacity={len(self._cells)}, program_length={len(self._image)})"


# ══════════════════════════════════════════════
# Program loading
# ══════════════════════════════════════════════

def parse_program(source_text: str) -> List[int]:
    """Parse comma-separated program text into a list of words."""
    text = source_text.strip()
    if not text:
        return []
    words = []
    for index, token in enumerate(text.split(',')):
        token = token.strip()
        if not _INT_RE.fullmatch(token):
            raise ProgramFormatError(f"not an integer: {token!r}", index)
        words.append(int(token))
    return words


def load_program(source_text: str, capacity: Optional[int] = None) -> Memory:
    """Parse program text and load it at address 0 of a new Memory.

    ``capacity`` defaults to the program length (no scratch space).
    """
    words = parse_program(source_text)
    if capacity is None:
        capacity = len(words)
    memory = Memory(capacity, words)
    log.debug("Loaded %d words into memory of capacity %d", len(words), capacity)
    return memory


def load_program_file(path: Union[str, Path], capacity: Optional[int] = None) -> Memory:
    """Load a program from a text file."""
    text = Path(path).read_text(encoding='utf-8')
    log.info("Loading program from %s", path)
    return load_program(text, capacity)
