"""Intcode VM: line-oriented I/O ports."""
