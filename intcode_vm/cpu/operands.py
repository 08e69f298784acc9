"""
Intcode VM: Operand Resolution

Turns a raw parameter word plus its ParameterMode into something the
opcode handlers can use:

  resolve_read     value to read   (any mode)
  resolve_address  address to write (Position / Relative only)
  resolve_jump     next IP          (value must be >= 0)

Address formation:
  POSITION   addr = raw
  RELATIVE   addr = raw + relative_base
  IMMEDIATE  no address; literal value

A negative address is always rejected with InvalidAddress. Addresses past
the memory capacity are rejected by Memory itself (AddressOutOfRange).
"""

from typing import Optional

from .decoder import ParameterMode
from ..errors import InvalidAddress, WrongParameterMode, TooFewParameterModes

__all__ = ['resolve_read', 'resolve_address', 'resolve_jump']


def resolve_address(raw: int, mode: Optional[ParameterMode], relative_base: int,
                    ip: Optional[int] = None) -> int:
    """Address named by a Position or Relative parameter."""
    if mode is None:
        raise TooFewParameterModes(ip)
    if mode is ParameterMode.IMMEDIATE:
        raise WrongParameterMode(ip)

    address = raw + relative_base if mode is ParameterMode.RELATIVE else raw
    if address < 0:
        raise InvalidAddress(address, ip)
    return address


def resolve_read(raw: int, mode: Optional[ParameterMode], memory, relative_base: int,
                 ip: Optional[int] = None) -> int:
    """Value of a parameter: the literal in Immediate mode, else memory[address]."""
    if mode is ParameterMode.IMMEDIATE:
        return raw
    return memory[resolve_address(raw, mode, relative_base, ip)]


def resolve_jump(raw: int, mode: Optional[ParameterMode], memory, relative_base: int,
                 ip: Optional[int] = None) -> int:
    """Jump target; the resolved value becomes the next IP, so it must be >= 0."""
    target = resolve_read(raw, mode, memory, relative_base, ip)
    if target < 0:
        raise InvalidAddress(target, ip)
    return target
