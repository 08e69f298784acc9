"""
Intcode VM: Main Machine Class

Integrates:
  - Register state (cpu/regs.py)
  - Word memory (mem/memory.py)
  - Instruction decoder (cpu/decoder.py)
  - Operand resolution (cpu/operands.py)
  - Input/output ports (periph/ports.py)

Execution model, one step():
  1. Fetch the word at IP (negative → NegativeInstructionValue)
  2. Decode opcode + parameter modes
  3. Resolve every operand (no memory write happens before this succeeds)
  4. Execute the opcode handler
  5. Advance IP by the instruction width unless a jump branched

Stop reasons:
  - HALT:       Halt executed; terminal, further steps are no-ops
  - WAIT_INPUT: Input found its port empty; nothing changed, step again
                after feeding the port
  - TIMEOUT:    driver-supplied max_steps exhausted (run() only)
  - BREAK:      breakpoint address reached (run() only)

Faults are raised as IntcodeError subclasses. A faulted machine cannot be
resumed: every later step() re-raises the original error.
"""

import logging
import re
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from .cpu.decoder import Opcode, ParameterMode, decode, format_instruction
from .cpu.operands import resolve_read, resolve_address, resolve_jump
from .cpu.regs import MachineState
from .errors import IntcodeError, InvalidInputValue
from .mem.memory import Memory, load_program, load_program_file
from .periph.ports import InputPort, OutputPort, NullInput, BufferedInput, BufferedOutput

__all__ = ['IntcodeMachine', 'StopReason', 'run_program']

log = logging.getLogger(__name__)

_INPUT_RE = re.compile(r"[+-]?[0-9]+")

Modes = Tuple[ParameterMode, ...]


class StopReason(Enum):
    HALT = 'HALT'
    WAIT_INPUT = 'WAIT_INPUT'
    TIMEOUT = 'TIMEOUT'
    BREAK = 'BREAK'


class _WaitInput(Exception):
    """Raised inside the Input handler when the port has no line."""


class IntcodeMachine:
    """Intcode virtual machine.

    Usage:
        machine = IntcodeMachine("3,0,4,0,99", input_port=BufferedInput([42]))
        machine.run()                  # StopReason.HALT
        machine.output_port.values()   # [42]

    Interactive drivers call step() themselves and look at last_opcode to
    decide when to read output or inject the next input.
    """

    DEFAULT_CAPACITY = 0xFFFF

    def __init__(self, program: Union[Memory, str, Iterable[int]],
                 input_port: Optional[InputPort] = None,
                 output_port: Optional[OutputPort] = None,
                 state: Optional[MachineState] = None,
                 capacity: Optional[int] = None,
                 name: str = 'intcode'):
        if isinstance(program, Memory):
            self.mem = program
        elif isinstance(program, str):
            self.mem = load_program(program, capacity)
        else:
            words = list(program)
            self.mem = Memory(len(words) if capacity is None else capacity, words)

        self.input_port: InputPort = input_port if input_port is not None else NullInput()
        self.output_port: OutputPort = output_port if output_port is not None else BufferedOutput()
        self.state = state if state is not None else MachineState()
        self.name = name

        self.halted = False
        self.fault: Optional[IntcodeError] = None
        self.last_opcode: Optional[Opcode] = None

        self._breakpoints: Set[int] = set()
        self._trace = False
        self._trace_output: List[str] = []

        self._dispatch = self._build_dispatch()

    @classmethod
    def from_file(cls, path: Union[str, Path], capacity: Optional[int] = None,
                  **kwargs) -> 'IntcodeMachine':
        """Load a program file into a new machine (capacity defaults to 0xFFFF)."""
        if capacity is None:
            capacity = cls.DEFAULT_CAPACITY
        return cls(load_program_file(path, capacity), **kwargs)

    # ══════════════════════════════════════════════
    # Memory access for drivers
    # ══════════════════════════════════════════════

    def patch(self, address: int, value: int):
        """Poke a word before (or between) steps, e.g. to select a mode."""
        self.mem[address] = value

    def peek(self, address: int) -> int:
        return self.mem[address]

    @property
    def ip(self) -> int:
        return self.state.ip

    @property
    def relative_base(self) -> int:
        return self.state.relative_base

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns a StopReason if stopped, else None."""
        if self.fault is not None:
            raise self.fault
        if self.halted:
            return StopReason.HALT

        ip = self.state.ip
        try:
            opcode, modes = decode(self.mem[ip], ip)
            params = [self.mem[ip + 1 + i] for i in range(opcode.arity)]

            trace_line = self._format_trace(ip) if self._trace else None
            jumped = self._dispatch[opcode](params, modes, ip)
        except _WaitInput:
            log.debug("%s: waiting for input at %d", self.name, ip)
            return StopReason.WAIT_INPUT
        except IntcodeError as err:
            if err.ip is None:
                err.ip = ip
            self.fault = err
            log.debug("%s: fault %s", self.name, err)
            raise

        if trace_line is not None:
            self._record_trace(trace_line)
        if not jumped:
            self.state.ip = ip + opcode.width
        self.state.steps += 1
        self.last_opcode = opcode

        if opcode is Opcode.HALT:
            self.halted = True
            log.debug("%s: halted after %d steps", self.name, self.state.steps)
            return StopReason.HALT
        return None

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Step until the machine stops.

        Args:
            max_steps: instruction budget; None runs without limit.

        Returns:
            HALT, WAIT_INPUT, BREAK, or TIMEOUT when max_steps ran out.
        """
        executed = 0
        while max_steps is None or executed < max_steps:
            if executed and self.state.ip in self._breakpoints:
                return StopReason.BREAK
            reason = self.step()
            if reason is not None:
                return reason
            executed += 1
        return StopReason.TIMEOUT

    # ══════════════════════════════════════════════
    # Opcode handlers
    #
    # Each handler receives the raw parameter words, their modes and the
    # instruction address, and returns True only if it set IP itself.
    # ══════════════════════════════════════════════

    def _build_dispatch(self) -> Dict[Opcode, Callable]:
        table = {
            Opcode.ADD: self._op_add,
            Opcode.MULT: self._op_mult,
            Opcode.INPUT: self._op_input,
            Opcode.OUTPUT: self._op_output,
            Opcode.JUMP_NON_ZERO: self._op_jump_non_zero,
            Opcode.JUMP_ZERO: self._op_jump_zero,
            Opcode.COMPARE_LT: self._op_compare_lt,
            Opcode.COMPARE_EQ: self._op_compare_eq,
            Opcode.ADJUST_RELATIVE_BASE: self._op_adjust_relative_base,
            Opcode.HALT: self._op_halt,
        }
        missing = set(Opcode) - set(table)
        if missing:
            raise NotImplementedError(f"No handler for {sorted(op.name for op in missing)}")
        return table

    def _mode(self, modes: Modes, index: int) -> Optional[ParameterMode]:
        return modes[index] if index < len(modes) else None

    def _read(self, params: List[int], modes: Modes, index: int, ip: int) -> int:
        return resolve_read(params[index], self._mode(modes, index), self.mem,
                            self.state.relative_base, ip)

    def _target(self, params: List[int], modes: Modes, index: int, ip: int) -> int:
        address = resolve_address(params[index], self._mode(modes, index),
                                  self.state.relative_base, ip)
        return self.mem.check(address)

    def _binary(self, params, modes, ip, fn: Callable[[int, int], int]) -> bool:
        a = self._read(params, modes, 0, ip)
        b = self._read(params, modes, 1, ip)
        dst = self._target(params, modes, 2, ip)
        self.mem[dst] = fn(a, b)
        return False

    def _op_add(self, params, modes, ip) -> bool:
        return self._binary(params, modes, ip, lambda a, b: a + b)

    def _op_mult(self, params, modes, ip) -> bool:
        return self._binary(params, modes, ip, lambda a, b: a * b)

    def _op_compare_lt(self, params, modes, ip) -> bool:
        return self._binary(params, modes, ip, lambda a, b: 1 if a < b else 0)

    def _op_compare_eq(self, params, modes, ip) -> bool:
        return self._binary(params, modes, ip, lambda a, b: 1 if a == b else 0)

    def _op_input(self, params, modes, ip) -> bool:
        dst = self._target(params, modes, 0, ip)
        line = self.input_port.read_line()
        if line is None:
            raise _WaitInput()
        text = line.strip()
        if not _INPUT_RE.fullmatch(text):
            raise InvalidInputValue(line, ip)
        self.mem[dst] = int(text)
        return False

    def _op_output(self, params, modes, ip) -> bool:
        value = self._read(params, modes, 0, ip)
        self.output_port.write_line(str(value))
        return False

    def _jump(self, params, modes, ip, branch: Callable[[int], bool]) -> bool:
        value = self._read(params, modes, 0, ip)
        target = resolve_jump(params[1], self._mode(modes, 1), self.mem,
                              self.state.relative_base, ip)
        if branch(value):
            self.state.ip = target
            return True
        return False

    def _op_jump_non_zero(self, params, modes, ip) -> bool:
        return self._jump(params, modes, ip, lambda v: v != 0)

    def _op_jump_zero(self, params, modes, ip) -> bool:
        return self._jump(params, modes, ip, lambda v: v == 0)

    def _op_adjust_relative_base(self, params, modes, ip) -> bool:
        self.state.relative_base += self._read(params, modes, 0, ip)
        return False

    def _op_halt(self, params, modes, ip) -> bool:
        return False

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, address: int):
        """run() stops with BREAK before executing the instruction at address."""
        self._breakpoints.add(address)

    def remove_breakpoint(self, address: int):
        self._breakpoints.discard(address)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record every executed instruction (also logged at DEBUG)."""
        self._trace = enable

    def _format_trace(self, ip: int) -> str:
        # Formatted before dispatch: shows the instruction and registers as fetched
        text, _ = format_instruction(self.mem, ip)
        return f"{ip:05d}: {text:<36s} {self.state.display()}"

    def _record_trace(self, line: str):
        self._trace_output.append(line)
        log.debug("%s %s", self.name, line)

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """Fresh run: reload the program image and zero the registers."""
        self.mem.reset()
        self.state.reset()
        self.halted = False
        self.fault = None
        self.last_opcode = None
        self._trace_output.clear()

    def __repr__(self) -> str:
        status = 'faulted' if self.fault else 'halted' if self.halted else 'ready'
        return f"IntcodeMachine({self.name!r}, {self.state.display()}, {status})"


def run_program(program: Union[Memory, str, Iterable[int]], inputs: Iterable[int] = (),
                capacity: Optional[int] = None,
                max_steps: Optional[int] = None) -> Tuple[IntcodeMachine, List[int]]:
    """Run a program with buffered input to completion.

    Returns (machine, outputs). The machine is returned so callers can
    inspect final memory and the stop state.
    """
    machine = IntcodeMachine(program, input_port=BufferedInput(inputs),
                             output_port=BufferedOutput(), capacity=capacity)
    reason = machine.run(max_steps)
    log.info("Program stopped: %s after %d steps", reason.value, machine.state.steps)
    return machine, machine.output_port.values()
