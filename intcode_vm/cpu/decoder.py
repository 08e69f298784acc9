"""
Intcode VM: Instruction Decoder

An instruction word is a non-negative decimal integer:

    ABCDE
      DE : two-digit opcode        (word % 100)
      C  : mode of parameter 1
      B  : mode of parameter 2
      A  : mode of parameter 3

Mode digits are read least-significant first and a leading zero digit is
implicit, so 1002 decodes to Mult with modes (Position, Immediate, Position).

Opcode table:

  code  mnemonic  arity  effect
  ----  --------  -----  ------------------------------------
    1   ADD         3    dst := a + b
    2   MUL         3    dst := a * b
    3   IN          1    dst := next input line
    4   OUT         1    write a
    5   JNZ         2    if a != 0: ip := target
    6   JZ          2    if a == 0: ip := target
    7   LT          3    dst := 1 if a < b else 0
    8   EQ          3    dst := 1 if a == b else 0
    9   ARB         1    relative_base += a
   99   HALT        0    stop

Parameter modes:
  0  POSITION   parameter is an address
  1  IMMEDIATE  parameter is the value itself
  2  RELATIVE   parameter + relative base is an address
"""

from enum import Enum
from typing import List, Optional, Tuple

from ..errors import (
    UnknownOpcode, UnknownParameterMode, ExcessiveParameterModes,
    NegativeInstructionValue, IntcodeError,
)

__all__ = ['Opcode', 'ParameterMode', 'decode', 'format_instruction', 'disassemble']


class Opcode(Enum):
    ADD = 1
    MULT = 2
    INPUT = 3
    OUTPUT = 4
    JUMP_NON_ZERO = 5
    JUMP_ZERO = 6
    COMPARE_LT = 7
    COMPARE_EQ = 8
    ADJUST_RELATIVE_BASE = 9
    HALT = 99

    @property
    def arity(self) -> int:
        return _ARITY[self]

    @property
    def mnemonic(self) -> str:
        return _MNEMONICS[self]

    @property
    def width(self) -> int:
        """Words occupied by the instruction, including the opcode word."""
        return 1 + _ARITY[self]


_ARITY = {
    Opcode.ADD: 3,
    Opcode.MULT: 3,
    Opcode.INPUT: 1,
    Opcode.OUTPUT: 1,
    Opcode.JUMP_NON_ZERO: 2,
    Opcode.JUMP_ZERO: 2,
    Opcode.COMPARE_LT: 3,
    Opcode.COMPARE_EQ: 3,
    Opcode.ADJUST_RELATIVE_BASE: 1,
    Opcode.HALT: 0,
}

_MNEMONICS = {
    Opcode.ADD: 'ADD',
    Opcode.MULT: 'MUL',
    Opcode.INPUT: 'IN',
    Opcode.OUTPUT: 'OUT',
    Opcode.JUMP_NON_ZERO: 'JNZ',
    Opcode.JUMP_ZERO: 'JZ',
    Opcode.COMPARE_LT: 'LT',
    Opcode.COMPARE_EQ: 'EQ',
    Opcode.ADJUST_RELATIVE_BASE: 'ARB',
    Opcode.HALT: 'HALT',
}

_OPCODES = {op.value: op for op in Opcode}


class ParameterMode(Enum):
    POSITION = 0
    IMMEDIATE = 1
    RELATIVE = 2


_MODES = {mode.value: mode for mode in ParameterMode}


def decode(word: int, ip: Optional[int] = None) -> Tuple[Opcode, Tuple[ParameterMode, ...]]:
    """Split an instruction word into its opcode and parameter modes.

    ``ip`` is only used to tag raised errors with the faulting address.

    Raises NegativeInstructionValue, UnknownOpcode, UnknownParameterMode
    or ExcessiveParameterModes.
    """
    if word < 0:
        raise NegativeInstructionValue(word, ip)

    code, mode_digits = word % 100, word // 100
    opcode = _OPCODES.get(code)
    if opcode is None:
        raise UnknownOpcode(code, ip)

    modes: List[ParameterMode] = []
    for _ in range(opcode.arity):
        digit = mode_digits % 10
        mode = _MODES.get(digit)
        if mode is None:
            raise UnknownParameterMode(digit, ip)
        modes.append(mode)
        mode_digits //= 10

    if mode_digits > 0:
        raise ExcessiveParameterModes(mode_digits, ip)

    return opcode, tuple(modes)


# ──────────────────────────────────────────────
# Listing / trace formatting
# ──────────────────────────────────────────────

def _format_operand(raw: int, mode: ParameterMode) -> str:
    if mode is ParameterMode.IMMEDIATE:
        return f"#{raw}"
    if mode is ParameterMode.RELATIVE:
        return f"[rb{raw:+d}]"
    return f"[{raw}]"


def format_instruction(memory, address: int) -> Tuple[str, int]:
    """Render the instruction at ``address`` as text.

    Returns (text, width). Words that do not decode are shown as
    ``DATA n`` with a width of 1, so a listing can walk straight through
    data regions and self-modified code.
    """
    word = memory[address]
    try:
        opcode, modes = decode(word)
    except IntcodeError:
        return f"DATA {word}", 1

    if address + opcode.arity >= len(memory):
        return f"DATA {word}", 1

    operands = [
        _format_operand(memory[address + 1 + i], mode)
        for i, mode in enumerate(modes)
    ]
    text = opcode.mnemonic
    if operands:
        text += ' ' + ', '.join(operands)
    return text, opcode.width


def disassemble(memory, start: int = 0, end: Optional[int] = None) -> List[str]:
    """Linear-sweep listing of memory[start:end] (end exclusive).

    Each line: ``AAAAA  w0 w1 ...  MNEM operands``.
    """
    if end is None:
        end = len(memory)
    lines = []
    addr = start
    while addr < end:
        text, width = format_instruction(memory, addr)
        words = ' '.join(str(memory[addr + i]) for i in range(width))
        lines.append(f"{addr:05d}  {words:<28s}  {text}")
        addr += width
    return lines
