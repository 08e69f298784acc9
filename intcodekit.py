#!/usr/bin/env python3
"""
intcodekit - Intcode VM command line
====================================

    intcodekit run     - Run a program, inputs from flags or stdin
    intcodekit disasm  - List a program as instructions
    intcodekit chain   - Run an amplifier chain (optionally a feedback loop)

Usage:
    python intcodekit.py <command> [options]
    python intcodekit.py <command> --help

Examples:
    python intcodekit.py run program.txt --input 1
    python intcodekit.py run program.txt --profile large --trace -vv
    python intcodekit.py disasm program.txt --start 0 --end 40
    python intcodekit.py chain amp.txt --phases 9,8,7,6,5 --feedback

Exit status:
    0  program halted
    1  machine fault, bad program file, or bad arguments
    2  program stopped waiting for input, or hit --max-steps
"""

import argparse
import logging
import sys
import os

# Ensure our package is importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from intcode_vm import __version__
from intcode_vm.chain import MachineChain
from intcode_vm.config import MachineConfig, CAPACITY_PROFILES, load_config
from intcode_vm.cpu.decoder import disassemble
from intcode_vm.emu import IntcodeMachine, StopReason
from intcode_vm.errors import IntcodeError
from intcode_vm.log_setup import setup_logging, verbosity_to_level
from intcode_vm.mem.memory import load_program_file, parse_program
from intcode_vm.periph.ports import BufferedInput, StreamInput, StreamOutput

log = logging.getLogger("intcode_vm.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STOPPED = 2


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...) or decimal."""
    value = value.strip()
    if value.lower().startswith(("0x", "-0x")):
        return int(value, 16)
    return int(value)


def parse_int_list(value: str):
    """Parse "4,3,2,1,0" into [4, 3, 2, 1, 0]."""
    try:
        return [parse_int_arg(v) for v in value.split(",") if v.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a comma-separated integer list: {value!r}")


def build_config(args) -> MachineConfig:
    """Config file < --profile < explicit flags."""
    if args.config:
        config = load_config(args.config)
    else:
        config = MachineConfig()
    if args.profile:
        config = config.override(capacity=CAPACITY_PROFILES[args.profile]["capacity"])
    return config.override(
        capacity=args.capacity,
        max_steps=args.max_steps,
        trace=True if getattr(args, "trace", False) else None,
    )


# ── run ──────────────────────────────────────────────────────────────────

def cmd_run(args) -> int:
    config = build_config(args)
    memory = load_program_file(args.program, config.capacity)

    if args.input:
        input_port = BufferedInput(args.input)
    else:
        prompt = "> " if sys.stdin.isatty() else None
        input_port = StreamInput(sys.stdin, prompt=prompt)

    machine = IntcodeMachine(memory, input_port=input_port,
                             output_port=StreamOutput(sys.stdout),
                             name=os.path.basename(args.program))
    for address, value in args.patch or []:
        machine.patch(address, value)
    machine.enable_trace(config.trace)

    reason = machine.run(config.max_steps)
    log.info("Stopped: %s after %d steps (%s)", reason.value,
             machine.state.steps, machine.state.display())

    if config.trace:
        print(machine.get_trace(), file=sys.stderr)
    if args.dump:
        print(",".join(str(v) for v in machine.mem.to_list(trim=True)))

    if reason is StopReason.HALT:
        return EXIT_OK
    if reason is StopReason.WAIT_INPUT:
        log.warning("Program is waiting for input at %d but input ran out", machine.ip)
    elif reason is StopReason.TIMEOUT:
        log.warning("Step budget of %d exhausted at %d", config.max_steps, machine.ip)
    return EXIT_STOPPED


# ── disasm ───────────────────────────────────────────────────────────────

def cmd_disasm(args) -> int:
    memory = load_program_file(args.program)
    end = args.end if args.end is not None else memory.program_length
    end = min(end, memory.program_length)
    for line in disassemble(memory, args.start, end):
        print(line)
    return EXIT_OK


# ── chain ────────────────────────────────────────────────────────────────

def cmd_chain(args) -> int:
    config = build_config(args)
    with open(args.program, "r", encoding="utf-8") as f:
        words = parse_program(f.read())

    chain = MachineChain(words, [[p] for p in args.phases],
                         feedback=args.feedback, capacity=config.capacity)
    result = chain.run(seed=[args.seed], max_steps=config.max_steps)
    if result is None:
        log.error("Chain produced no output")
        return EXIT_STOPPED
    print(result)
    return EXIT_OK


def add_machine_options(p):
    p.add_argument("--capacity", type=parse_int_arg, default=None,
                   help="Memory capacity in words (overrides profile/config)")
    p.add_argument("--profile", choices=list(CAPACITY_PROFILES.keys()), default=None,
                   help="Capacity profile")
    p.add_argument("--config", help="JSON config file")
    p.add_argument("--max-steps", type=parse_int_arg, default=None,
                   help="Stop after this many instructions per run")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="intcodekit",
        description="Intcode VM toolkit - run, list and chain Intcode programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Profiles: " + ", ".join(
            f"{k} ({v['capacity']:#x})" for k, v in CAPACITY_PROFILES.items()),
    )
    parser.add_argument("--version", action="version", version=f"intcodekit {__version__}")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase log verbosity (-v, -vv)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-file", help="Also write a DEBUG log to this file")
    sub = parser.add_subparsers(dest="command", metavar="command")

    p_run = sub.add_parser("run", help="Run a program")
    p_run.add_argument("program", help="Program file (comma-separated integers)")
    p_run.add_argument("--input", "-i", type=parse_int_arg, action="append",
                       help="Input value (repeatable); stdin is used when omitted")
    p_run.add_argument("--patch", nargs=2, type=parse_int_arg, action="append",
                       metavar=("ADDR", "VALUE"),
                       help="Poke memory before running (repeatable)")
    p_run.add_argument("--trace", action="store_true",
                       help="Print an instruction trace to stderr")
    p_run.add_argument("--dump", action="store_true",
                       help="Print final memory (trailing zeros trimmed)")
    add_machine_options(p_run)

    p_dis = sub.add_parser("disasm", help="List a program as instructions")
    p_dis.add_argument("program", help="Program file")
    p_dis.add_argument("--start", type=parse_int_arg, default=0, help="First address")
    p_dis.add_argument("--end", type=parse_int_arg, default=None,
                       help="End address, exclusive (default: program length)")

    p_chain = sub.add_parser("chain", help="Run an amplifier chain")
    p_chain.add_argument("program", help="Program file")
    p_chain.add_argument("--phases", type=parse_int_list, required=True,
                         help="Comma-separated phase setting per stage")
    p_chain.add_argument("--seed", type=parse_int_arg, default=0,
                         help="Signal fed to the first stage (default 0)")
    p_chain.add_argument("--feedback", action="store_true",
                         help="Wire the last stage back into the first")
    add_machine_options(p_chain)

    return parser


COMMANDS = {
    "run": cmd_run,
    "disasm": cmd_disasm,
    "chain": cmd_chain,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    setup_logging(verbosity_to_level(args.verbose, args.quiet), args.log_file)

    try:
        return COMMANDS[args.command](args)
    except IntcodeError as e:
        log.error("Machine fault: %s", e)
        return EXIT_ERROR
    except (OSError, ValueError) as e:
        log.error("%s", e)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
