"""
Intcode VM: Cooperative Machine Chains

Runs several machines in one thread, wired output → input through Pipe
ports:

    seed ─> [M0] ─pipe─> [M1] ─pipe─> ... ─pipe─> [Mn-1] ─> out
              ^                                           │
              └──────────────── feedback ─────────────────┘

Each machine gets its own copy of the program image, its own registers
and its own pipe, so nothing is shared except the line values moving
through the pipes.

Scheduling: round-robin. Each machine runs until it halts or waits for
input, then the next one gets a turn. The chain ends when the last
machine halts. If every live machine is waiting and no pipe holds a
value, the chain is deadlocked (ChainDeadlock).

Typical use (amplifier chain with phase settings):
    chain = MachineChain(program, stage_inputs=[[4], [3], [2], [1], [0]])
    chain.run(seed=[0])   # final value out of the last stage
"""

import logging
from typing import Iterable, List, Optional, Sequence, Union

from .emu import IntcodeMachine, StopReason
from .errors import ChainDeadlock
from .mem.memory import Memory, parse_program
from .periph.ports import Pipe

__all__ = ['MachineChain', 'run_chain']

log = logging.getLogger(__name__)


class MachineChain:
    """A directed chain, or feedback loop, of Intcode machines."""

    def __init__(self, program: Union[str, Sequence[int]],
                 stage_inputs: Sequence[Iterable[int]],
                 feedback: bool = False,
                 capacity: Optional[int] = None):
        words = parse_program(program) if isinstance(program, str) else list(program)
        if not stage_inputs:
            raise ValueError("A chain needs at least one stage")
        if capacity is None:
            capacity = max(len(words), IntcodeMachine.DEFAULT_CAPACITY)

        count = len(stage_inputs)
        self.feedback = feedback
        # pipes[i] feeds machine i; pipes[count] is the chain's output
        self.pipes: List[Pipe] = [Pipe(f"in{i}") for i in range(count)]
        self.output = self.pipes[0] if feedback else Pipe("out")
        if not feedback:
            self.pipes.append(self.output)

        self.machines: List[IntcodeMachine] = []
        for i, values in enumerate(stage_inputs):
            self.pipes[i].feed_values(*values)
            downstream = self.pipes[(i + 1) % count] if feedback else self.pipes[i + 1]
            self.machines.append(IntcodeMachine(
                Memory(capacity, words),
                input_port=self.pipes[i],
                output_port=downstream,
                name=f"stage{i}",
            ))

    @property
    def last(self) -> IntcodeMachine:
        return self.machines[-1]

    def run(self, seed: Iterable[int] = (), max_steps: Optional[int] = None) -> Optional[int]:
        """Feed ``seed`` to the first stage and run until the last stage halts.

        Returns the last value the final stage produced, or None if it
        produced nothing. ``max_steps`` bounds each machine's turn.
        """
        self.pipes[0].feed_values(*seed)
        rounds = 0
        while not self.last.halted:
            progressed = False
            for machine in self.machines:
                if machine.halted:
                    continue
                before = machine.state.steps
                reason = machine.run(max_steps)
                if machine.state.steps != before:
                    progressed = True
                if reason is StopReason.TIMEOUT:
                    log.warning("%s used its %s-step budget", machine.name, max_steps)
            rounds += 1
            if not progressed and not self.last.halted:
                waiting = sum(1 for m in self.machines if not m.halted)
                raise ChainDeadlock(waiting)
        log.debug("Chain of %d finished after %d rounds", len(self.machines), rounds)
        return self.final_output

    @property
    def final_output(self) -> Optional[int]:
        """Last value written by the final stage."""
        return self.output.last


def run_chain(program: Union[str, Sequence[int]], phases: Sequence[int],
              seed: int = 0, feedback: bool = False,
              capacity: Optional[int] = None) -> Optional[int]:
    """One-shot amplifier chain: each stage gets its phase, then the signal."""
    chain = MachineChain(program, [[p] for p in phases], feedback=feedback,
                         capacity=capacity)
    return chain.run(seed=[seed])
