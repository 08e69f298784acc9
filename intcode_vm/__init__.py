"""
Intcode VM
==========
An interpreter for the Intcode instruction set: integer memory, three
parameter modes, a relative-base register, and line-oriented I/O ports
that let machines be chained together.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
    │  Memory  │───>│ Decoder  │───>│ Operands │───>│  Engine  │<──> Ports
    │ (words)  │    │ (opcode, │    │ (value / │    │ (step /  │
    │          │    │  modes)  │    │  address)│    │  run)    │
    └──────────┘    └──────────┘    └──────────┘    └──────────┘

    - mem/memory.py:     fixed-capacity word arena + program text loader
    - cpu/decoder.py:    opcode/mode decode, instruction listing
    - cpu/operands.py:   Position / Immediate / Relative resolution
    - cpu/regs.py:       caller-owned (ip, relative_base) record
    - emu.py:            IntcodeMachine step()/run(), StopReason
    - periph/ports.py:   InputPort / OutputPort and concrete ports
    - chain.py:          several machines wired output -> input
"""

__version__ = "0.4.0"

from .errors import *
from .cpu.decoder import Opcode, ParameterMode, decode, format_instruction, disassemble
from .cpu.operands import resolve_read, resolve_address, resolve_jump
from .cpu.regs import MachineState
from .mem.memory import Memory, parse_program, load_program, load_program_file
from .periph.ports import (
    InputPort, OutputPort, BufferedInput, BufferedOutput, StreamInput,
    StreamOutput, Pipe, CallbackInput, CallbackOutput, NullInput,
)
from .emu import IntcodeMachine, StopReason, run_program
from .chain import MachineChain, run_chain
from .config import MachineConfig, CAPACITY_PROFILES, load_config
