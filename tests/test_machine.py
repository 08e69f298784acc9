"""
Intcode VM: Machine Integration Tests

Reference programs with known final memory or known output, plus the
fault contract: which error, where, and that nothing was written.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from intcode_vm.cpu.decoder import Opcode
from intcode_vm.cpu.regs import MachineState
from intcode_vm.emu import IntcodeMachine, StopReason, run_program
from intcode_vm.errors import (
    NegativeInstructionValue, UnknownParameterMode, WrongParameterMode,
    UnknownOpcode, InvalidAddress, AddressOutOfRange, InvalidInputValue,
)
from intcode_vm.periph.ports import BufferedInput, BufferedOutput, CallbackOutput

QUINE = [109, 1, 204, -1, 1001, 100, 1, 100, 1008, 100, 16, 101, 1006, 101, 0, 99]

# Outputs 999 below 8, 1000 at 8, 1001 above 8
COMPARE_8 = [3, 21, 1008, 21, 8, 20, 1005, 20, 22, 107, 8, 21, 20, 1006, 20, 31,
             1106, 0, 36, 98, 0, 0, 1002, 21, 125, 20, 4, 20, 1105, 1, 46, 104,
             999, 1105, 1, 46, 1101, 1000, 1, 20, 4, 20, 1105, 1, 46, 98, 99]


def run_to_memory(program):
    machine = IntcodeMachine(program)
    assert machine.run() is StopReason.HALT
    return machine.mem.to_list()


# ═══════════════════════════════════════════════
# Test Group 1: Arithmetic programs
# ═══════════════════════════════════════════════

class TestArithmeticPrograms:
    """Add/Mult programs with known final memory."""

    @pytest.mark.parametrize("program,expected", [
        ([1, 0, 0, 0, 99], [2, 0, 0, 0, 99]),
        ([2, 3, 0, 3, 99], [2, 3, 0, 6, 99]),
        ([2, 4, 4, 5, 99, 0], [2, 4, 4, 5, 99, 9801]),
        ([1, 1, 1, 4, 99, 5, 6, 0, 99], [30, 1, 1, 4, 2, 5, 6, 0, 99]),
        ([1, 9, 10, 3, 2, 3, 11, 0, 99, 30, 40, 50],
         [3500, 9, 10, 70, 2, 3, 11, 0, 99, 30, 40, 50]),
    ])
    def test_final_memory(self, program, expected):
        assert run_to_memory(program) == expected

    def test_negative_immediate(self):
        """1101,100,-1,4,0 → writes 99 over its own tail and halts."""
        assert run_to_memory([1101, 100, -1, 4, 0]) == [1101, 100, -1, 4, 99]

    def test_deterministic_rerun(self):
        """Same image, same result, every time."""
        program = [1, 9, 10, 3, 2, 3, 11, 0, 99, 30, 40, 50]
        assert run_to_memory(program) == run_to_memory(program)

    def test_reset_allows_fresh_run(self):
        machine = IntcodeMachine([1, 0, 0, 0, 99])
        machine.run()
        assert machine.mem.to_list() == [2, 0, 0, 0, 99]
        machine.reset()
        assert machine.mem.to_list() == [1, 0, 0, 0, 99]
        assert machine.ip == 0
        assert not machine.halted
        machine.run()
        assert machine.mem.to_list() == [2, 0, 0, 0, 99]

    def test_patch_before_run(self):
        """Poke noun/verb style inputs into addresses 1 and 2."""
        machine = IntcodeMachine([1, 0, 0, 0, 99, 7, 8])
        machine.patch(1, 5)
        machine.patch(2, 6)
        machine.run()
        assert machine.peek(0) == 15


# ═══════════════════════════════════════════════
# Test Group 2: I/O, relative base, large values
# ═══════════════════════════════════════════════

class TestInputOutput:
    """Programs that talk through ports."""

    def test_echo(self):
        _, out = run_program([3, 0, 4, 0, 99], inputs=[42])
        assert out == [42]

    def test_quine(self):
        """Program outputs a copy of itself (needs scratch space at 100/101)."""
        machine, out = run_program(QUINE, capacity=0xFF)
        assert out == QUINE
        assert machine.halted

    def test_large_product(self):
        _, out = run_program([1102, 34915192, 34915192, 7, 4, 7, 99, 0])
        assert len(str(out[0])) == 16

    def test_large_immediate(self):
        _, out = run_program([104, 1125899906842624, 99])
        assert out == [1125899906842624]

    def test_output_text_protocol(self):
        machine = IntcodeMachine([104, -3, 104, 7, 99])
        machine.run()
        assert machine.output_port.text == "-3\n7\n"

    @pytest.mark.parametrize("value,expected", [(7, 999), (8, 1000), (9, 1001)])
    def test_compare_with_eight(self, value, expected):
        _, out = run_program(COMPARE_8, inputs=[value])
        assert out == [expected]

    @pytest.mark.parametrize("program,value,expected", [
        ([3, 9, 8, 9, 10, 9, 4, 9, 99, -1, 8], 8, 1),
        ([3, 9, 8, 9, 10, 9, 4, 9, 99, -1, 8], 5, 0),
        ([3, 3, 1108, -1, 8, 3, 4, 3, 99], 8, 1),
        ([3, 9, 7, 9, 10, 9, 4, 9, 99, -1, 8], 3, 1),
        ([3, 3, 1107, -1, 8, 3, 4, 3, 99], 9, 0),
        ([3, 12, 6, 12, 15, 1, 13, 14, 13, 4, 13, 99, -1, 0, 1, 9], 0, 0),
        ([3, 3, 1105, -1, 9, 1101, 0, 0, 12, 4, 12, 99, 1], 5, 1),
    ])
    def test_jump_and_compare(self, program, value, expected):
        _, out = run_program(program, inputs=[value])
        assert out == [expected]

    def test_relative_base_write(self):
        """ARB then write through a Relative target."""
        machine, out = run_program([109, 10, 203, 0, 204, 0, 99], inputs=[77], capacity=20)
        assert machine.relative_base == 10
        assert machine.peek(10) == 77
        assert out == [77]

    def test_input_with_whitespace(self):
        machine = IntcodeMachine([3, 0, 99], input_port=BufferedInput())
        machine.input_port.feed(" -12 \n")
        machine.run()
        assert machine.peek(0) == -12

    def test_non_ascii_digits_rejected(self):
        """Only ASCII 0-9 count as decimal digits."""
        machine = IntcodeMachine([3, 0, 99], input_port=BufferedInput(["٤٢"]))
        with pytest.raises(InvalidInputValue):
            machine.run()
        assert machine.peek(0) == 3

    def test_blank_fed_lines_skipped(self):
        port = BufferedInput()
        port.feed("5\n\n6\n")
        machine = IntcodeMachine([3, 0, 3, 1, 99], input_port=port)
        assert machine.run() is StopReason.HALT
        assert machine.mem.snapshot(0, 2) == [5, 6]

    def test_invalid_input_text(self):
        machine = IntcodeMachine([3, 0, 99], input_port=BufferedInput(["abc"]))
        with pytest.raises(InvalidInputValue) as exc:
            machine.run()
        assert exc.value.ip == 0
        assert machine.peek(0) == 3


# ═══════════════════════════════════════════════
# Test Group 3: Suspension and stepping
# ═══════════════════════════════════════════════

class TestStepping:
    """Single-step driving and the WAIT_INPUT contract."""

    def test_wait_input_changes_nothing(self):
        machine = IntcodeMachine([3, 0, 4, 0, 99])
        before = machine.mem.snapshot()
        assert machine.step() is StopReason.WAIT_INPUT
        assert machine.ip == 0
        assert machine.state.steps == 0
        assert machine.mem.snapshot() == before

    def test_resume_after_feeding(self):
        port = BufferedInput()
        machine = IntcodeMachine([3, 0, 4, 0, 99], input_port=port)
        assert machine.run() is StopReason.WAIT_INPUT
        port.feed_values(5)
        assert machine.run() is StopReason.HALT
        assert machine.output_port.values() == [5]

    def test_last_opcode(self):
        machine = IntcodeMachine([104, 1, 99])
        assert machine.step() is None
        assert machine.last_opcode is Opcode.OUTPUT
        assert machine.step() is StopReason.HALT
        assert machine.last_opcode is Opcode.HALT

    def test_halt_advances_ip_and_is_terminal(self):
        machine = IntcodeMachine([99, 104, 5, 99])
        assert machine.step() is StopReason.HALT
        assert machine.ip == 1
        assert machine.step() is StopReason.HALT
        assert machine.output_port.values() == []

    def test_jump_not_taken_advances(self):
        machine = IntcodeMachine([1105, 0, 7, 99])
        machine.step()
        assert machine.ip == 3

    def test_jump_taken(self):
        machine = IntcodeMachine([1106, 0, 4, 0, 99])
        machine.step()
        assert machine.ip == 4

    def test_jump_to_self(self):
        """A branch to its own address is a real jump, not an advance."""
        machine = IntcodeMachine([1105, 1, 0, 99])
        machine.step()
        assert machine.ip == 0

    def test_max_steps_timeout(self):
        machine = IntcodeMachine([1105, 1, 0])
        assert machine.run(max_steps=50) is StopReason.TIMEOUT
        assert machine.state.steps == 50

    def test_breakpoint(self):
        machine = IntcodeMachine([1101, 1, 1, 0, 104, 9, 99])
        machine.add_breakpoint(4)
        assert machine.run() is StopReason.BREAK
        assert machine.ip == 4
        assert machine.output_port.values() == []
        assert machine.run() is StopReason.HALT
        assert machine.output_port.values() == [9]

    def test_interactive_callback(self):
        """Driver reacts to each output between steps."""
        seen = []
        machine = IntcodeMachine([104, 3, 104, 4, 99], output_port=CallbackOutput(seen.append))
        machine.run()
        assert seen == [3, 4]

    def test_caller_owned_state(self):
        state = MachineState()
        machine = IntcodeMachine([109, 5, 99], state=state)
        machine.run()
        assert state.relative_base == 5
        assert state.ip == 3

    def test_independent_machines(self):
        a = IntcodeMachine([3, 0, 4, 0, 99], input_port=BufferedInput([1]))
        b = IntcodeMachine([3, 0, 4, 0, 99], input_port=BufferedInput([2]))
        a.step()
        b.run()
        a.run()
        assert a.output_port.values() == [1]
        assert b.output_port.values() == [2]

    def test_trace(self):
        machine = IntcodeMachine([1101, 2, 3, 0, 99])
        machine.enable_trace()
        machine.run()
        trace = machine.get_trace().splitlines()
        assert len(trace) == 2
        assert "ADD #2, #3, [0]" in trace[0]
        assert "HALT" in trace[1]

    def test_trace_skips_waiting_input(self):
        """An Input that found no line did not execute, so it is not traced."""
        port = BufferedInput()
        machine = IntcodeMachine([3, 0, 99], input_port=port)
        machine.enable_trace()
        for _ in range(3):
            assert machine.step() is StopReason.WAIT_INPUT
        assert machine.get_trace() == ""

        port.feed_values(4)
        assert machine.run() is StopReason.HALT
        trace = machine.get_trace().splitlines()
        assert len(trace) == 2
        assert "IN [0]" in trace[0]
        assert "HALT" in trace[1]


# ═══════════════════════════════════════════════
# Test Group 4: Faults
# ═══════════════════════════════════════════════

class TestFaults:
    """Fault kinds, their IP, and no partial writes."""

    def test_negative_first_word(self):
        machine = IntcodeMachine([-1, 0, 0, 0, 99])
        with pytest.raises(NegativeInstructionValue) as exc:
            machine.run()
        assert exc.value.ip == 0
        assert machine.mem.to_list() == [-1, 0, 0, 0, 99]

    def test_mode_digit_nine(self):
        with pytest.raises(UnknownParameterMode):
            IntcodeMachine([901, 0, 0, 0, 99]).run()

    def test_immediate_add_target(self):
        machine = IntcodeMachine([10001, 0, 0, 0, 99])
        with pytest.raises(WrongParameterMode):
            machine.run()
        assert machine.mem.to_list() == [10001, 0, 0, 0, 99]

    def test_immediate_input_target_keeps_input(self):
        port = BufferedInput([5])
        with pytest.raises(WrongParameterMode):
            IntcodeMachine([103, 0, 99], input_port=port).run()
        assert port.pending == 1

    def test_unknown_opcode_ip(self):
        machine = IntcodeMachine([104, 1, 42, 99])
        with pytest.raises(UnknownOpcode) as exc:
            machine.run()
        assert exc.value.ip == 2
        assert exc.value.code == 42
        assert machine.output_port.values() == [1]

    def test_negative_relative_address(self):
        with pytest.raises(InvalidAddress):
            IntcodeMachine([109, -5, 204, 0, 99]).run()

    def test_negative_jump_target(self):
        with pytest.raises(InvalidAddress):
            IntcodeMachine([1105, 1, -1, 99]).run()

    def test_write_beyond_capacity(self):
        machine = IntcodeMachine([1101, 1, 1, 50, 99], capacity=10)
        with pytest.raises(AddressOutOfRange) as exc:
            machine.run()
        assert exc.value.ip == 0
        assert exc.value.capacity == 10

    def test_running_off_the_end(self):
        with pytest.raises(AddressOutOfRange):
            IntcodeMachine([1101, 1, 1, 0]).run()

    def test_fault_is_sticky(self):
        machine = IntcodeMachine([-1, 99])
        with pytest.raises(NegativeInstructionValue):
            machine.step()
        with pytest.raises(NegativeInstructionValue):
            machine.step()
