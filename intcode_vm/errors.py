"""
Intcode VM: Error Hierarchy

Every fault the machine can raise derives from IntcodeError. All of them
are terminal for the run that raised them: the engine re-raises the same
error on any later step() call, and drivers decide whether to abort, log,
or show a diagnostic.

Decode faults:
  UnknownOpcode            low two digits match no opcode
  UnknownParameterMode     mode digit is not 0, 1 or 2
  ExcessiveParameterModes  more mode digits than the opcode has parameters
  NegativeInstructionValue word at IP is negative

Operand faults:
  InvalidAddress           resolved Position/Relative/jump address < 0
  WrongParameterMode       write target given in Immediate mode
  TooFewParameterModes     fewer modes than parameters consumed
  AddressOutOfRange        address at or past the memory capacity

I/O and loading:
  InvalidInputValue        input line is not a decimal integer
  ProgramFormatError       program text does not parse

Drivers:
  ChainDeadlock            every chained machine waits on an empty port
"""

from typing import Optional

__all__ = [
    'IntcodeError', 'DecodeError', 'UnknownOpcode', 'UnknownParameterMode',
    'ExcessiveParameterModes', 'NegativeInstructionValue', 'AddressError',
    'InvalidAddress', 'WrongParameterMode', 'TooFewParameterModes',
    'AddressOutOfRange', 'InvalidInputValue', 'ProgramFormatError',
    'ChainDeadlock',
]


class IntcodeError(Exception):
    """Base class for all machine faults.

    ``ip`` may be filled in after construction by the engine, which knows
    the faulting instruction address when a lower layer (Memory) does not.
    """
    def __init__(self, message: str, ip: Optional[int] = None):
        self.message = message
        self.ip = ip
        super().__init__(message)

    def __str__(self) -> str:
        if self.ip is None:
            return self.message
        return f"@{self.ip}: {self.message}"


# ──────────────────────────────────────────────
# Decode faults
# ──────────────────────────────────────────────

class DecodeError(IntcodeError):
    pass


class UnknownOpcode(DecodeError):
    def __init__(self, code: int, ip: Optional[int] = None):
        self.code = code
        super().__init__(f"Unknown opcode {code}", ip)


class UnknownParameterMode(DecodeError):
    def __init__(self, digit: int, ip: Optional[int] = None):
        self.digit = digit
        super().__init__(f"Unknown parameter mode {digit}", ip)


class ExcessiveParameterModes(DecodeError):
    def __init__(self, leftover: int, ip: Optional[int] = None):
        self.leftover = leftover
        super().__init__(f"Excessive parameter modes (leftover digits {leftover})", ip)


class NegativeInstructionValue(DecodeError):
    def __init__(self, value: int, ip: Optional[int] = None):
        self.value = value
        super().__init__(f"Negative instruction value {value}", ip)


# ──────────────────────────────────────────────
# Operand faults
# ──────────────────────────────────────────────

class AddressError(IntcodeError):
    pass


class InvalidAddress(AddressError):
    def __init__(self, address: int, ip: Optional[int] = None):
        self.address = address
        super().__init__(f"Invalid address {address}", ip)


class WrongParameterMode(AddressError):
    def __init__(self, ip: Optional[int] = None):
        super().__init__("Immediate mode used for a write target", ip)


class TooFewParameterModes(AddressError):
    def __init__(self, ip: Optional[int] = None):
        super().__init__("Too few parameter modes for the operands consumed", ip)


class AddressOutOfRange(AddressError):
    def __init__(self, address: int, capacity: int, ip: Optional[int] = None):
        self.address = address
        self.capacity = capacity
        super().__init__(f"Address {address} outside memory capacity {capacity}", ip)


# ──────────────────────────────────────────────
# I/O and program loading
# ──────────────────────────────────────────────

class InvalidInputValue(IntcodeError):
    def __init__(self, text: str, ip: Optional[int] = None):
        self.text = text
        super().__init__(f"Input is not an integer: {text!r}", ip)


class ProgramFormatError(IntcodeError):
    """Raised when program text cannot be loaded."""
    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        super().__init__(f"Token {index}: {message}" if index is not None else message)


class ChainDeadlock(IntcodeError):
    def __init__(self, waiting: int):
        self.waiting = waiting
        super().__init__(f"All {waiting} machines are waiting for input")
