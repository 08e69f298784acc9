"""
Intcode VM: Machine Configuration

Capacity profiles mirror how the drivers size memory: programs that use
scratch space past their own length need generous headroom, and the
puzzle drivers all used 0xFFFF words.

Config file (JSON), every key optional:
    {
        "profile": "default",
        "capacity": 65535,
        "max_steps": 1000000,
        "trace": false
    }

An explicit "capacity" wins over the profile's capacity. Unknown keys are
rejected so typos do not go unnoticed.
"""

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

__all__ = ['MachineConfig', 'CAPACITY_PROFILES', 'load_config']

log = logging.getLogger(__name__)


CAPACITY_PROFILES: Dict[str, Dict[str, Any]] = {
    "small": {
        "capacity": 0xFF,
        "description": "Tiny test programs, quine-sized scratch space",
    },
    "default": {
        "capacity": 0xFFFF,
        "description": "Puzzle-sized programs (64K words)",
    },
    "large": {
        "capacity": 0xFFFFF,
        "description": "Programs with large scratch areas (1M words)",
    },
}


@dataclass
class MachineConfig:
    capacity: int = CAPACITY_PROFILES["default"]["capacity"]
    max_steps: Optional[int] = None
    trace: bool = False

    @classmethod
    def from_profile(cls, name: str) -> 'MachineConfig':
        if name not in CAPACITY_PROFILES:
            raise ValueError(f"Unknown profile {name!r} "
                             f"(choose from {', '.join(CAPACITY_PROFILES)})")
        return cls(capacity=CAPACITY_PROFILES[name]["capacity"])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MachineConfig':
        data = dict(data)
        known = {f.name for f in fields(cls)} | {"profile"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        config = cls.from_profile(data.pop("profile", "default"))
        config = replace(config, **data)
        config.validate()
        return config

    def override(self, **kwargs) -> 'MachineConfig':
        """Copy with every non-None keyword applied (CLI flags)."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        config = replace(self, **changes)
        config.validate()
        return config

    def validate(self):
        if not isinstance(self.capacity, int) or self.capacity <= 0:
            raise ValueError(f"capacity must be a positive integer, got {self.capacity!r}")
        if self.max_steps is not None and (not isinstance(self.max_steps, int)
                                           or self.max_steps <= 0):
            raise ValueError(f"max_steps must be a positive integer, got {self.max_steps!r}")


def load_config(path: Union[str, Path]) -> MachineConfig:
    """Read a JSON config file into a MachineConfig."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: config must be a JSON object")
    log.debug("Loaded config from %s: %s", path, data)
    return MachineConfig.from_dict(data)
