"""Intcode VM: decode, operand resolution and register state."""
