"""OperationRegistry: handlers for every stack machine operation.

Each handler is a pure function of the current MachineState that returns a
StateChange describing the intended effect. Handlers never mutate state.
The change is validated before StackMachine applies it, so a failing
operation leaves memory, stack and IP untouched.

Handler conventions:
    top = stack[counter - 1], second = stack[counter - 2]
    Missing operands raise StackUnderflowError.
    Out-of-range addresses or results raise WordRangeError.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .errors import StackOverflowError, StackUnderflowError, WordRangeError
from .operations import Operation
from .state import MachineState


@dataclass(frozen=True)
class StateChange:
    """Proposed effect of one operation.

    Attributes:
        halt: Whether the machine stops
        pop_count: Number of stack entries removed
        pushed: Values pushed in order, the last ends on top
        memory_write: Optional (address, value) pair
        ip_delta: Signed change of the instruction pointer
    """
    halt: bool = False
    pop_count: int = 0
    pushed: Tuple[int, ...] = ()
    memory_write: Optional[Tuple[int, int]] = None
    ip_delta: int = 0


Handler = Callable[[MachineState], StateChange]


def validate_change(state: MachineState, change: StateChange) -> StateChange:
    """Check a proposed change against the machine's invariants.

    Returns:
        The change itself, if valid

    Raises:
        StackUnderflowError: If more entries are popped than are live
        StackOverflowError: If the resulting stack depth exceeds the stack
        WordRangeError: If a pushed value, write or new IP is out of range
    """
    if change.pop_count < 0 or change.pop_count > state.stack_counter:
        raise StackUnderflowError(change.pop_count, state.stack_counter)

    for value in change.pushed:
        if not state.is_word(value):
            raise WordRangeError(f"pushed value {value} exceeds value range")

    depth = state.stack_counter - change.pop_count + len(change.pushed)
    if depth > state.stack_size:
        raise StackOverflowError(f"stack depth {depth} exceeds stack size {state.stack_size}")

    if change.memory_write is not None:
        address, value = change.memory_write
        if not state.is_address(address):
            raise WordRangeError(f"address {address} out of memory bounds")
        if not state.is_word(value):
            raise WordRangeError(f"written value {value} exceeds value range")

    if not change.halt and not state.is_address(state.ip + change.ip_delta):
        raise WordRangeError(
            f"instruction pointer {state.ip + change.ip_delta} out of memory bounds"
        )

    return change


class OperationRegistry:
    """Registry mapping each Operation to its handler.

    The registry is checked for completeness and frozen after
    initialization, so every opcode the machine can decode has exactly one
    handler and no handler can be swapped at runtime.

    Attributes:
        _handlers: Dictionary mapping operations to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        """Initialize registry with all operation handlers."""
        self._handlers: Dict[Operation, Handler] = {}
        self._frozen = False
        self._register_all_handlers()
        self._check_complete()
        self.freeze()

    def _register_all_handlers(self) -> None:
        # Control
        self.register(Operation.HALT, self._op_halt)
        self.register(Operation.NO_OPERATION, self._op_no_operation)

        # Stack and memory
        self.register(Operation.PUSH, self._op_push)
        self.register(Operation.POP, self._op_pop)
        self.register(Operation.STORE, self._op_store)
        self.register(Operation.LOAD, self._op_load)

        # Arithmetic
        self.register(Operation.ADD, self._binary(lambda top, second: top + second))
        self.register(Operation.SUBTRACT, self._binary(lambda top, second: top - second))
        self.register(Operation.MULTIPLY, self._binary(lambda top, second: top * second))
        self.register(Operation.DIVIDE, self._op_divide)

        # Comparison and logic
        self.register(Operation.LESS, self._binary(lambda top, second: int(top < second)))
        self.register(Operation.GREATER, self._binary(lambda top, second: int(top > second)))
        self.register(Operation.SAME, self._binary(lambda top, second: int(top == second)))
        self.register(Operation.DIFFERENT, self._binary(lambda top, second: int(top != second)))
        self.register(Operation.AND, self._binary(lambda top, second: int(top == 1 and second == 1)))
        self.register(Operation.OR, self._binary(lambda top, second: int(top == 1 or second == 1)))
        self.register(Operation.NOT, self._op_not)

        # Control flow
        self.register(Operation.JUMP, self._op_jump)
        self.register(Operation.JUMP_CONDITIONALLY, self._op_jump_conditionally)

    def _check_complete(self) -> None:
        missing = [op.name for op in Operation if op not in self._handlers]
        if missing:
            raise RuntimeError(f"No handler registered for: {', '.join(missing)}")

    def register(self, operation: Operation, handler: Handler) -> None:
        """Register an operation handler.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If operation already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register handlers: registry is frozen")
        if operation in self._handlers:
            raise ValueError(f"Handler already registered: {operation.name}")
        self._handlers[operation] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_operations(self) -> set:
        """Get set of all registered operations."""
        return set(self._handlers.keys())

    def execute(self, state: MachineState, operation: Operation) -> StateChange:
        """Compute and validate the change an operation would make.

        Args:
            state: Current machine state (not modified)
            operation: Decoded operation

        Returns:
            Validated StateChange

        Raises:
            StackMachineError: If the operation cannot execute
        """
        change = self._handlers[operation](state)
        return validate_change(state, change)

    # =========================================================================
    # Control Handlers
    # =========================================================================

    def _op_halt(self, state: MachineState) -> StateChange:
        return StateChange(halt=True)

    def _op_no_operation(self, state: MachineState) -> StateChange:
        return StateChange(ip_delta=1)

    # =========================================================================
    # Stack and Memory Handlers
    # =========================================================================

    def _op_push(self, state: MachineState) -> StateChange:
        """Push the immediate word stored right after the opcode."""
        address = state.ip + 1
        if not state.is_address(address):
            raise WordRangeError(f"immediate address {address} out of memory bounds")
        return StateChange(pushed=(state.memory[address],), ip_delta=2)

    def _op_pop(self, state: MachineState) -> StateChange:
        self._require(state, 1)
        return StateChange(pop_count=1, ip_delta=1)

    def _op_store(self, state: MachineState) -> StateChange:
        """Write second into memory at address top."""
        self._require(state, 2)
        return StateChange(
            pop_count=2,
            memory_write=(state.peek(0), state.peek(1)),
            ip_delta=1,
        )

    def _op_load(self, state: MachineState) -> StateChange:
        """Replace the top address with the word stored there."""
        self._require(state, 1)
        address = state.peek(0)
        if not state.is_address(address):
            raise WordRangeError(f"address {address} out of memory bounds")
        return StateChange(pop_count=1, pushed=(state.memory[address],), ip_delta=1)

    # =========================================================================
    # Arithmetic and Logic Handlers
    # =========================================================================

    def _binary(self, compute: Callable[[int, int], int]) -> Handler:
        """Build a handler that pops top and second and pushes compute(top, second)."""
        def handler(state: MachineState) -> StateChange:
            self._require(state, 2)
            result = compute(state.peek(0), state.peek(1))
            return StateChange(pop_count=2, pushed=(result,), ip_delta=1)
        return handler

    def _op_divide(self, state: MachineState) -> StateChange:
        """Push remainder then quotient of top / second.

        The quotient is floored and the remainder takes the dividend's sign.
        Division by zero yields the dividend for both.
        """
        self._require(state, 2)
        dividend = state.peek(0)
        divisor = state.peek(1)

        if divisor == 0:
            quotient = remainder = dividend
        else:
            quotient = dividend // divisor
            remainder = dividend - divisor * int(dividend / divisor)

        return StateChange(pop_count=2, pushed=(remainder, quotient), ip_delta=1)

    def _op_not(self, state: MachineState) -> StateChange:
        self._require(state, 1)
        return StateChange(pop_count=1, pushed=(int(state.peek(0) == 0),), ip_delta=1)

    # =========================================================================
    # Control Flow Handlers
    # =========================================================================

    def _op_jump(self, state: MachineState) -> StateChange:
        """Jump to the absolute address on top of the stack."""
        self._require(state, 1)
        return StateChange(pop_count=1, ip_delta=state.peek(0) - state.ip)

    def _op_jump_conditionally(self, state: MachineState) -> StateChange:
        """Jump to second if top is 1, otherwise fall through."""
        self._require(state, 2)
        condition = state.peek(0)
        target = state.peek(1)
        delta = target - state.ip if condition == 1 else 1
        return StateChange(pop_count=2, ip_delta=delta)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _require(self, state: MachineState, count: int) -> None:
        if state.stack_counter < count:
            raise StackUnderflowError(count, state.stack_counter)


# Singleton registry instance
_registry: Optional[OperationRegistry] = None


def get_registry() -> OperationRegistry:
    """Get the singleton operation registry instance."""
    global _registry
    if _registry is None:
        _registry = OperationRegistry()
    return _registry
