"""MachineState: memory, stack and instruction pointer of the stack machine.

State Components:
    - Memory: 2**word_size words holding both program and data
    - Stack: 2**word_size words plus a counter of live entries
    - IP: Instruction pointer (memory address of the next opcode)
    - Status: READY, HALTED or FAULTED

The state is allocated once per machine and mutated in place. Operation
handlers only read it; StackMachine applies validated changes to it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


# Reference configuration: 8-bit signed words
WORD_SIZE = 8


def word_bounds(word_size: int = WORD_SIZE) -> tuple:
    """Return the (min, max) signed word values for a word size."""
    return -(2 ** (word_size - 1)), 2 ** (word_size - 1) - 1


def is_in_value_range(value, word_size: int = WORD_SIZE) -> bool:
    """Check that value is an integer word of the given size."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    low, high = word_bounds(word_size)
    return low <= value <= high


def is_in_address_range(address, word_size: int = WORD_SIZE) -> bool:
    """Check that address indexes a memory of 2**word_size cells."""
    if isinstance(address, bool) or not isinstance(address, int):
        return False
    return 0 <= address < 2 ** word_size


class MachineStatus(Enum):
    READY = "ready"
    HALTED = "halted"
    FAULTED = "faulted"


@dataclass
class MachineState:
    """Mutable machine state.

    Attributes:
        word_size: Bits per word; memory and stack hold 2**word_size words
        memory: Flat memory, code and data share it
        stack: Fixed-size stack storage, slots >= stack_counter are zero
        stack_counter: Number of live stack entries
        ip: Instruction pointer
        status: Lifecycle status of the machine
        step_count: Number of successful steps since the last reset
    """
    word_size: int = WORD_SIZE
    memory: List[int] = field(default_factory=list)
    stack: List[int] = field(default_factory=list)
    stack_counter: int = 0
    ip: int = 0
    status: MachineStatus = MachineStatus.READY
    step_count: int = 0

    def __post_init__(self):
        if not self.memory:
            self.memory = [0] * self.memory_size
        if not self.stack:
            self.stack = [0] * self.stack_size

    @property
    def memory_size(self) -> int:
        return 2 ** self.word_size

    @property
    def stack_size(self) -> int:
        return 2 ** self.word_size

    @property
    def min_word(self) -> int:
        return word_bounds(self.word_size)[0]

    @property
    def max_word(self) -> int:
        return word_bounds(self.word_size)[1]

    def is_word(self, value) -> bool:
        return is_in_value_range(value, self.word_size)

    def is_address(self, address) -> bool:
        return is_in_address_range(address, self.word_size)

    def peek(self, depth: int = 0) -> int:
        """Read a live stack entry; depth 0 is the top, 1 the second.

        Raises:
            IndexError: If fewer than depth + 1 entries are live
        """
        if depth < 0 or depth >= self.stack_counter:
            raise IndexError(f"stack depth {depth} not live")
        return self.stack[self.stack_counter - 1 - depth]

    def live_stack(self) -> List[int]:
        """Copy of the live stack entries, bottom first."""
        return self.stack[:self.stack_counter]

    def clear(self) -> None:
        """Zero memory and stack in place and rewind the IP."""
        for i in range(len(self.memory)):
            self.memory[i] = 0
        for i in range(len(self.stack)):
            self.stack[i] = 0
        self.stack_counter = 0
        self.ip = 0
        self.status = MachineStatus.READY
        self.step_count = 0

    def snapshot(self) -> dict:
        """Create a copy of the current state for tracing.

        Returns:
            Dictionary with copies of all state components
        """
        return {
            "memory": list(self.memory),
            "stack": self.live_stack(),
            "stack_counter": self.stack_counter,
            "ip": self.ip,
            "status": self.status.value,
            "step_count": self.step_count,
        }

    def validate(self) -> bool:
        """Validate state integrity.

        Checks:
            - Memory and stack have their fixed sizes and hold words only
            - Stack counter is within [0, stack_size]
            - Slots above the counter are zero
            - IP is a memory address

        Returns:
            True if state is valid, False otherwise
        """
        if len(self.memory) != self.memory_size:
            return False
        if len(self.stack) != self.stack_size:
            return False
        if not all(self.is_word(v) for v in self.memory):
            return False
        if not all(self.is_word(v) for v in self.stack):
            return False

        if not 0 <= self.stack_counter <= self.stack_size:
            return False
        if any(self.stack[self.stack_counter:]):
            return False

        if not self.is_address(self.ip):
            return False

        return self.step_count >= 0

    def __str__(self) -> str:
        """Human-readable state representation."""
        stack = " ".join(str(v) for v in self.live_stack())
        return (
            f"[Step {self.step_count}] IP={self.ip} "
            f"opcode={self.memory[self.ip]} stack=[{stack}] {self.status.value.upper()}"
        )


def create_initial_state(words: List[int], word_size: int = WORD_SIZE) -> MachineState:
    """Create a fresh state with words copied to the start of memory.

    Words are copied as given; StackMachine.load performs range checks.
    """
    state = MachineState(word_size=word_size)
    state.memory[:len(words)] = list(words)
    return state
