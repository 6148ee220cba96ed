"""Exception taxonomy for the stack machine and its assembler.

Assembly-time errors are raised to the caller. Execution-time errors are
raised inside the registry handlers and captured by StackMachine.execute,
which returns them as part of a failed StepReport.
"""


class StackMachineError(Exception):
    """Base class for all assembler and machine errors."""


class AssemblySyntaxError(StackMachineError):
    """Raised on malformed program lines and unknown mnemonics."""

    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class WordRangeError(StackMachineError, ValueError):
    """Raised when a value or address falls outside its allowed range."""


class StackOverflowError(WordRangeError):
    """Raised when a step would push past the end of the stack."""


class StackUnderflowError(StackMachineError):
    """Raised when an operation needs more operands than the stack holds."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"stack must contain at least {required} items, has {available}"
        )


class InvalidOpcodeError(StackMachineError):
    """Raised when a fetched word does not name an operation."""

    def __init__(self, opcode: int):
        self.opcode = opcode
        super().__init__(f"invalid operation code {opcode}")


class MachineHaltedError(StackMachineError):
    """Raised when stepping a machine that has halted or faulted."""
