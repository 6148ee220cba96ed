"""stackvm: an educational 8-bit stack machine with a mnemonic assembler.

The machine executes 19 operations over a flat memory of 2**W signed words
(W = 8 by default) that holds both code and data. Programs are written one
instruction or datum per line using two-letter mnemonics and assembled into
the memory image the machine loads at address 0.

Pipeline:
    TEXT -> parse_program -> ParseNodes -> generate_instructions -> WORDS
    WORDS -> StackMachine.load -> (execute -> StepReport)* -> HALT | FAULT

Modules:
    errors: Exception taxonomy
    operations: Operation enumeration and mnemonic table
    state: MachineState and word/address range checks
    assembler: Parser and code generator
    registry: Per-operation handlers producing validated state changes
    machine: StackMachine engine
"""

__version__ = "0.1.0"

from .errors import (
    StackMachineError,
    AssemblySyntaxError,
    WordRangeError,
    StackOverflowError,
    StackUnderflowError,
    InvalidOpcodeError,
    MachineHaltedError,
)
from .operations import Operation, MNEMONICS
from .state import MachineState, MachineStatus, WORD_SIZE
from .assembler import ParseNode, parse_program, generate_instructions, assemble
from .registry import OperationRegistry, StateChange
from .machine import StackMachine, StepReport

__all__ = [
    "StackMachineError",
    "AssemblySyntaxError",
    "WordRangeError",
    "StackOverflowError",
    "StackUnderflowError",
    "InvalidOpcodeError",
    "MachineHaltedError",
    "Operation",
    "MNEMONICS",
    "MachineState",
    "MachineStatus",
    "WORD_SIZE",
    "ParseNode",
    "parse_program",
    "generate_instructions",
    "assemble",
    "OperationRegistry",
    "StateChange",
    "StackMachine",
    "StepReport",
]
