"""Tests for OperationRegistry and change validation."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from stackvm.errors import StackOverflowError, StackUnderflowError, WordRangeError
from stackvm.operations import Operation
from stackvm.registry import OperationRegistry, StateChange, get_registry, validate_change
from stackvm.state import MachineState


def make_state(stack, ip=0, memory=None):
    """Build a state with the given live stack (bottom first)."""
    state = MachineState()
    state.stack[:len(stack)] = stack
    state.stack_counter = len(stack)
    state.ip = ip
    if memory:
        for address, value in memory.items():
            state.memory[address] = value
    return state


class TestRegistryStructure:
    """Test registry completeness and freezing."""

    def test_every_operation_registered(self):
        assert get_registry().get_operations() == set(Operation)

    def test_frozen(self):
        registry = OperationRegistry()
        assert registry.is_frozen() is True
        with pytest.raises(RuntimeError, match="frozen"):
            registry.register(Operation.HALT, lambda state: StateChange(halt=True))

    def test_singleton(self):
        assert get_registry() is get_registry()

    def test_missing_handler_detected(self):
        """A registry that skips an operation refuses to build."""
        class Incomplete(OperationRegistry):
            def _register_all_handlers(self):
                self.register(Operation.HALT, self._op_halt)

        with pytest.raises(RuntimeError, match="NO_OPERATION"):
            Incomplete()


class TestHandlersDoNotMutate:
    """Handlers only compute changes."""

    def test_add_leaves_state(self):
        state = make_state([3, 4])
        before = state.snapshot()
        get_registry().execute(state, Operation.ADD)
        assert state.snapshot() == before


class TestArithmeticHandlers:
    """Test arithmetic operand order and results."""

    @pytest.fixture
    def registry(self):
        return get_registry()

    def test_add(self, registry):
        change = registry.execute(make_state([3, 4]), Operation.ADD)
        assert change == StateChange(pop_count=2, pushed=(7,), ip_delta=1)

    def test_subtract_is_top_minus_second(self, registry):
        change = registry.execute(make_state([3, 10]), Operation.SUBTRACT)
        assert change.pushed == (7,)

    def test_multiply(self, registry):
        change = registry.execute(make_state([-6, 7]), Operation.MULTIPLY)
        assert change.pushed == (-42,)

    def test_overflow_is_error(self, registry):
        with pytest.raises(WordRangeError):
            registry.execute(make_state([100, 100]), Operation.ADD)

    def test_divide(self, registry):
        """dividend = top, divisor = second; remainder then quotient."""
        change = registry.execute(make_state([3, 17]), Operation.DIVIDE)
        assert change.pushed == (2, 5)

    def test_divide_negative_floors_quotient(self, registry):
        change = registry.execute(make_state([2, -7]), Operation.DIVIDE)
        assert change.pushed == (-1, -4)

    def test_divide_by_zero(self, registry):
        change = registry.execute(make_state([0, 9]), Operation.DIVIDE)
        assert change.pushed == (9, 9)

    def test_divide_overflow(self, registry):
        with pytest.raises(WordRangeError):
            registry.execute(make_state([-1, -128]), Operation.DIVIDE)


class TestLogicHandlers:
    """Test comparison and logic results."""

    @pytest.fixture
    def registry(self):
        return get_registry()

    @pytest.mark.parametrize("operation,stack,expected", [
        (Operation.LESS, [5, 2], 1),
        (Operation.LESS, [2, 5], 0),
        (Operation.GREATER, [2, 5], 1),
        (Operation.GREATER, [5, 5], 0),
        (Operation.SAME, [4, 4], 1),
        (Operation.SAME, [4, 3], 0),
        (Operation.DIFFERENT, [4, 3], 1),
        (Operation.DIFFERENT, [4, 4], 0),
        (Operation.AND, [1, 1], 1),
        (Operation.AND, [1, 2], 0),
        (Operation.OR, [0, 1], 1),
        (Operation.OR, [2, 0], 0),
    ])
    def test_binary(self, registry, operation, stack, expected):
        change = registry.execute(make_state(stack), operation)
        assert change.pop_count == 2
        assert change.pushed == (expected,)

    @pytest.mark.parametrize("value,expected", [(0, 1), (1, 0), (-3, 0)])
    def test_not(self, registry, value, expected):
        change = registry.execute(make_state([value]), Operation.NOT)
        assert change == StateChange(pop_count=1, pushed=(expected,), ip_delta=1)


class TestStackAndMemoryHandlers:
    """Test push, pop, store and load."""

    @pytest.fixture
    def registry(self):
        return get_registry()

    def test_push_reads_immediate(self, registry):
        change = registry.execute(make_state([], ip=4, memory={5: -9}), Operation.PUSH)
        assert change == StateChange(pushed=(-9,), ip_delta=2)

    def test_push_immediate_past_memory(self, registry):
        with pytest.raises(WordRangeError):
            registry.execute(make_state([], ip=255), Operation.PUSH)

    def test_store(self, registry):
        change = registry.execute(make_state([11, 200]), Operation.STORE)
        assert change.memory_write == (200, 11)
        assert change.pop_count == 2

    def test_store_negative_address(self, registry):
        with pytest.raises(WordRangeError):
            registry.execute(make_state([11, -1]), Operation.STORE)

    def test_load(self, registry):
        change = registry.execute(make_state([30], memory={30: 8}), Operation.LOAD)
        assert change == StateChange(pop_count=1, pushed=(8,), ip_delta=1)

    def test_load_negative_address(self, registry):
        with pytest.raises(WordRangeError):
            registry.execute(make_state([-5]), Operation.LOAD)

    @pytest.mark.parametrize("operation,needed", [
        (Operation.POP, 1),
        (Operation.LOAD, 1),
        (Operation.NOT, 1),
        (Operation.JUMP, 1),
        (Operation.STORE, 2),
        (Operation.ADD, 2),
        (Operation.DIVIDE, 2),
        (Operation.JUMP_CONDITIONALLY, 2),
    ])
    def test_underflow(self, registry, operation, needed):
        with pytest.raises(StackUnderflowError) as excinfo:
            registry.execute(make_state([1] * (needed - 1)), operation)
        assert excinfo.value.required == needed


class TestControlFlowHandlers:
    """Test halt, jump and jumpConditionally."""

    @pytest.fixture
    def registry(self):
        return get_registry()

    def test_halt(self, registry):
        assert registry.execute(make_state([]), Operation.HALT) == StateChange(halt=True)

    def test_jump_delta(self, registry):
        change = registry.execute(make_state([3], ip=10), Operation.JUMP)
        assert change.ip_delta == -7

    def test_jump_out_of_memory(self, registry):
        with pytest.raises(WordRangeError):
            registry.execute(make_state([-1], ip=10), Operation.JUMP)

    def test_jump_conditionally_taken(self, registry):
        change = registry.execute(make_state([40, 1], ip=10), Operation.JUMP_CONDITIONALLY)
        assert change == StateChange(pop_count=2, ip_delta=30)

    @pytest.mark.parametrize("condition", [0, 2, -1])
    def test_jump_conditionally_not_taken(self, registry, condition):
        change = registry.execute(make_state([40, condition], ip=10), Operation.JUMP_CONDITIONALLY)
        assert change == StateChange(pop_count=2, ip_delta=1)

    def test_no_operation_at_end_of_memory(self, registry):
        with pytest.raises(WordRangeError):
            registry.execute(make_state([], ip=255), Operation.NO_OPERATION)


class TestValidateChange:
    """Test validation independent of handlers."""

    def test_push_onto_full_stack(self):
        state = make_state([0] * 256)
        with pytest.raises(StackOverflowError):
            validate_change(state, StateChange(pushed=(1,), ip_delta=1))

    def test_halt_skips_ip_check(self):
        state = make_state([], ip=255)
        assert validate_change(state, StateChange(halt=True)).halt is True

    def test_write_value_range(self):
        with pytest.raises(WordRangeError):
            validate_change(make_state([]), StateChange(memory_write=(0, 500), ip_delta=1))
