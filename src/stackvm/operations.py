"""Operation set of the stack machine.

Each operation's opcode is its position in the canonical enumeration, so the
IntEnum value doubles as the machine word stored in memory. Every operation
also has a fixed two-letter mnemonic used by the assembler.
"""

from enum import IntEnum
from typing import Dict, Optional

from .errors import InvalidOpcodeError


class Operation(IntEnum):
    """The 19 machine operations, valued by opcode."""
    HALT = 0
    NO_OPERATION = 1
    PUSH = 2
    POP = 3
    STORE = 4
    LOAD = 5
    ADD = 6
    SUBTRACT = 7
    MULTIPLY = 8
    DIVIDE = 9
    LESS = 10
    GREATER = 11
    SAME = 12
    DIFFERENT = 13
    AND = 14
    OR = 15
    NOT = 16
    JUMP = 17
    JUMP_CONDITIONALLY = 18

    @property
    def opcode(self) -> int:
        return int(self)

    @property
    def mnemonic(self) -> str:
        return MNEMONICS[self]

    @classmethod
    def from_opcode(cls, opcode: int) -> "Operation":
        """Decode a machine word into an operation.

        Raises:
            InvalidOpcodeError: If the word is outside the enumeration
        """
        try:
            return cls(opcode)
        except ValueError:
            raise InvalidOpcodeError(opcode) from None

    @classmethod
    def from_mnemonic(cls, mnemonic: str) -> Optional["Operation"]:
        """Look up an operation by its exact (case-sensitive) mnemonic."""
        return _BY_MNEMONIC.get(mnemonic)


MNEMONICS: Dict[Operation, str] = {
    Operation.HALT: "ha",
    Operation.NO_OPERATION: "no",
    Operation.PUSH: "pu",
    Operation.POP: "po",
    Operation.STORE: "st",
    Operation.LOAD: "lo",
    Operation.ADD: "ad",
    Operation.SUBTRACT: "su",
    Operation.MULTIPLY: "mu",
    Operation.DIVIDE: "di",
    Operation.LESS: "le",
    Operation.GREATER: "gr",
    Operation.SAME: "sa",
    Operation.DIFFERENT: "df",
    Operation.AND: "an",
    Operation.OR: "or",
    Operation.NOT: "nt",
    Operation.JUMP: "ju",
    Operation.JUMP_CONDITIONALLY: "jc",
}

_BY_MNEMONIC: Dict[str, Operation] = {m: op for op, m in MNEMONICS.items()}
