#!/usr/bin/env python3
"""Stack machine command line interface.

Assemble and run a stack machine program.

Usage:
    python main.py --program programs/sum_1_to_5.asm
    python main.py --inline "pu;6;pu;7;mu;ha" --trace
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from stackvm import StackMachine, StackMachineError, WORD_SIZE

# Memory and stack hold 2**word_size cells each
MIN_WORD_SIZE = 2
MAX_WORD_SIZE = 16


def main():
    parser = argparse.ArgumentParser(
        description="Stack VM: educational stack machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a program file
    python main.py --program programs/sum_1_to_5.asm

    # Run with full trace output
    python main.py --program programs/multiply.asm --trace

    # Run inline assembly
    python main.py --inline "pu;6;pu;7;mu;ha"
        """
    )

    parser.add_argument(
        "--program", "-p",
        type=str,
        help="Path to assembly program file (.asm)"
    )
    parser.add_argument(
        "--inline", "-i",
        type=str,
        help="Inline assembly (separate lines with ;)"
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=StackMachine.DEFAULT_MAX_STEPS,
        help=f"Maximum execution steps (safety limit). Default: {StackMachine.DEFAULT_MAX_STEPS}"
    )
    parser.add_argument(
        "--word-size",
        type=int,
        default=WORD_SIZE,
        help=f"Machine word size in bits. Default: {WORD_SIZE}"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print full execution trace"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (final stack only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every step"
    )

    args = parser.parse_args()

    if not args.program and not args.inline:
        parser.error("Either --program or --inline is required")
    if not MIN_WORD_SIZE <= args.word_size <= MAX_WORD_SIZE:
        parser.error(f"--word-size must be between {MIN_WORD_SIZE} and {MAX_WORD_SIZE}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    machine = StackMachine(word_size=args.word_size, max_steps=args.max_steps)

    if args.program:
        program_path = Path(args.program)
        if not program_path.exists():
            print(f"Error: Program file not found: {args.program}")
            return 1
        source = program_path.read_text()
        if not args.quiet:
            print(f"Loading program: {args.program}")
    else:
        source = args.inline.replace(";", "\n")
        if not args.quiet:
            print("Running inline assembly")

    try:
        words = machine.load_program(source)
    except StackMachineError as e:
        print(f"Assembly error: {e}")
        return 1

    if not args.quiet:
        print(f"Assembled {len(words)} words")
        print("-" * 60)
        print("Executing...")
        print("-" * 60)

    try:
        machine.run()
    except RuntimeError as e:
        print(f"Execution error: {e}")

    if args.trace:
        machine.print_trace()
    elif not args.quiet:
        print()
        summary = machine.get_summary()
        print(f"Steps: {summary['steps']}")
        print(f"Status: {summary['status']}")
        print(f"IP: {summary['ip']}")
        print(f"Stack: {summary['stack']}")
        if summary['errors']:
            print(f"Errors: {summary['errors']}")
    else:
        print(" ".join(str(v) for v in machine.get_stack()))

    return 0 if machine.is_halted() else 1


if __name__ == "__main__":
    sys.exit(main())
