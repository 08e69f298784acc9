"""
Intcode VM: Machine Register State

The machine has exactly two registers:
  ip            : address of the next instruction word (>= 0)
  relative_base : signed offset added to Relative-mode parameters

The record is owned by the caller and handed to the engine, so several
independent machines can live in one process with no shared state.
"""


class MachineState:
    """Intcode register set."""

    __slots__ = ('ip', 'relative_base', 'steps')

    def __init__(self, ip: int = 0, relative_base: int = 0):
        self.ip: int = ip                        # Instruction pointer
        self.relative_base: int = relative_base  # Relative-mode base
        self.steps: int = 0                      # Instructions executed

    def reset(self):
        """Return to the fresh-run state."""
        self.ip = 0
        self.relative_base = 0
        self.steps = 0

    def copy(self) -> 'MachineState':
        clone = MachineState(self.ip, self.relative_base)
        clone.steps = self.steps
        return clone

    def display(self) -> str:
        return f"IP={self.ip:05d} RB={self.relative_base:+d} STEPS={self.steps}"

    def __repr__(self) -> str:
        return (f"MachineState(ip={self.ip}, relative_base={self.relative_base}, "
                f"steps={self.steps})")
