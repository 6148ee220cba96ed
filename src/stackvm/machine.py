"""StackMachine: fetch-decode-execute engine for the stack machine.

Each step runs:
    FETCH (word at IP) -> DECODE (Operation) -> REGISTRY (StateChange)
    -> VALIDATE -> APPLY

and returns a StepReport describing exactly what changed, so a driver can
render the machine by applying deltas instead of diffing full snapshots.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .assembler import assemble
from .errors import MachineHaltedError, StackMachineError, WordRangeError
from .operations import Operation
from .registry import OperationRegistry, StateChange, get_registry
from .state import WORD_SIZE, MachineState, MachineStatus

logger = logging.getLogger(__name__)


@dataclass
class StepReport:
    """Result of one execute() call.

    Attributes:
        success: Whether the step completed
        address: IP at which the step started
        operation: Decoded operation (None if decoding failed)
        opcode: Word fetched at address
        halt: Whether the step halted the machine
        pop_count: Number of stack entries popped
        pushed: Values pushed in order, the last is the new top
        memory_write: Optional (address, value) written to memory
        ip_delta: Signed change applied to the IP
        error: The error that failed the step
    """
    success: bool
    address: int = 0
    operation: Optional[Operation] = None
    opcode: Optional[int] = None
    halt: bool = False
    pop_count: int = 0
    pushed: Tuple[int, ...] = ()
    memory_write: Optional[Tuple[int, int]] = None
    ip_delta: int = 0
    error: Optional[StackMachineError] = None

    @property
    def name(self) -> Optional[str]:
        return self.operation.name if self.operation is not None else None

    def to_dict(self) -> Dict:
        """Plain-data form of the report for display and serialization."""
        if not self.success:
            return {"success": False, "address": self.address, "error": str(self.error)}
        return {
            "success": True,
            "address": self.address,
            "operation": self.name,
            "opcode": self.opcode,
            "halt": self.halt,
            "pop_count": self.pop_count,
            "pushed": list(self.pushed),
            "memory_write": list(self.memory_write) if self.memory_write else None,
            "ip_delta": self.ip_delta,
        }


class StackMachine:
    """Stack machine owning its memory, stack and instruction pointer.

    Attributes:
        state: Current MachineState, mutated in place by execute()
        registry: OperationRegistry with one handler per operation
        trace: Step reports since the last reset
        max_steps: Default step limit for run()
    """

    DEFAULT_MAX_STEPS = 10000

    def __init__(self, word_size: int = WORD_SIZE, max_steps: int = DEFAULT_MAX_STEPS):
        """Initialize a zeroed machine.

        Args:
            word_size: Bits per word; memory and stack hold 2**word_size words
            max_steps: Default step limit for run()
        """
        self.state = MachineState(word_size=word_size)
        self.registry: OperationRegistry = get_registry()
        self.trace: List[StepReport] = []
        self.max_steps = max_steps

    @property
    def word_size(self) -> int:
        return self.state.word_size

    @property
    def status(self) -> MachineStatus:
        return self.state.status

    def load(self, words: List[int]) -> None:
        """Copy words into memory starting at address 0.

        The rest of memory is left as is; call reset() first to start
        from a clean image.

        Raises:
            WordRangeError: If words is empty, longer than memory or holds
                a value that is not a word
        """
        words = list(words)
        if not words:
            raise WordRangeError("program must not be empty")
        if len(words) > self.state.memory_size:
            raise WordRangeError("program size must not exceed memory size")
        for index, value in enumerate(words):
            if not self.state.is_word(value):
                raise WordRangeError(f"word {value!r} at address {index} exceeds value range")

        self.state.memory[:len(words)] = words
        logger.info("Loaded %d words", len(words))

    def load_program(self, source: str) -> List[int]:
        """Assemble source, reset the machine and load the result.

        Assembly errors propagate before the reset, leaving state untouched.

        Returns:
            The assembled words
        """
        words = assemble(source, self.word_size)
        self.reset()
        self.load(words)
        return words

    def reset(self) -> None:
        """Zero memory and stack and rewind the IP. Always succeeds."""
        self.state.clear()
        self.trace = []
        logger.info("Machine reset")

    def execute(self) -> StepReport:
        """Execute a single instruction.

        Never raises machine errors: a failing step is reported with
        success=False, leaves state unchanged and faults the machine.

        Returns:
            StepReport describing the applied change
        """
        state = self.state
        address = state.ip

        # Refused steps are not part of the trace
        if state.status is not MachineStatus.READY:
            return StepReport(
                success=False,
                address=address,
                error=MachineHaltedError(f"machine is {state.status.value}"),
            )

        opcode = state.memory[address]
        operation = None
        try:
            operation = Operation.from_opcode(opcode)
            change = self.registry.execute(state, operation)
        except StackMachineError as e:
            state.status = MachineStatus.FAULTED
            logger.warning("Fault at address %d (opcode %d): %s", address, opcode, e)
            report = StepReport(
                success=False,
                address=address,
                operation=operation,
                opcode=opcode,
                error=e,
            )
            self.trace.append(report)
            return report

        self._apply(change)

        report = StepReport(
            success=True,
            address=address,
            operation=operation,
            opcode=opcode,
            halt=change.halt,
            pop_count=change.pop_count,
            pushed=change.pushed,
            memory_write=change.memory_write,
            ip_delta=change.ip_delta,
        )
        self.trace.append(report)
        logger.debug("Step %d: %s at %d, ip %+d", state.step_count, operation.name, address, change.ip_delta)
        if change.halt:
            logger.info("Machine halted at address %d", address)
        return report

    def _apply(self, change: StateChange) -> None:
        state = self.state

        counter = state.stack_counter - change.pop_count
        for i in range(counter, state.stack_counter):
            state.stack[i] = 0
        for value in change.pushed:
            state.stack[counter] = value
            counter += 1
        state.stack_counter = counter

        if change.memory_write is not None:
            address, value = change.memory_write
            state.memory[address] = value

        if change.halt:
            state.status = MachineStatus.HALTED
        else:
            state.ip += change.ip_delta
        state.step_count += 1

    def run(self, max_steps: Optional[int] = None) -> List[StepReport]:
        """Step until the machine halts or faults.

        Args:
            max_steps: Override maximum steps (uses instance default if None)

        Returns:
            Complete execution trace

        Raises:
            RuntimeError: If the step limit is reached first
        """
        limit = max_steps if max_steps is not None else self.max_steps

        steps = 0
        while steps < limit:
            report = self.execute()
            steps += 1
            if not report.success or report.halt:
                return self.trace

        raise RuntimeError(f"Max steps ({limit}) exceeded")

    def is_halted(self) -> bool:
        return self.state.status is MachineStatus.HALTED

    def is_faulted(self) -> bool:
        return self.state.status is MachineStatus.FAULTED

    def get_stack(self) -> List[int]:
        """Live stack entries, bottom first."""
        return self.state.live_stack()

    def get_memory(self) -> List[int]:
        return list(self.state.memory)

    def get_ip(self) -> int:
        return self.state.ip

    def print_trace(self) -> None:
        """Print execution trace in human-readable format."""
        print("=" * 70)
        print("STACK MACHINE EXECUTION TRACE")
        print("=" * 70)

        for index, report in enumerate(self.trace):
            if not report.success:
                print(f"\n[Step {index}] ERROR at {report.address}: {report.error}")
                continue

            print(f"\n[Step {index}] {report.name} ({report.operation.mnemonic}) at {report.address}")
            if report.pop_count:
                print(f"  Popped: {report.pop_count}")
            if report.pushed:
                print(f"  Pushed: {list(report.pushed)}")
            if report.memory_write:
                address, value = report.memory_write
                print(f"  Memory[{address}] <- {value}")
            if report.halt:
                print("  HALT")
            else:
                print(f"  IP: {report.address} -> {report.address + report.ip_delta}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        summary = self.get_summary()
        print(f"  Status: {summary['status']}")
        print(f"  IP: {summary['ip']}")
        print(f"  Stack: {summary['stack']}")
        print(f"  Steps: {summary['steps']}")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "steps": self.state.step_count,
            "status": self.state.status.value,
            "halted": self.is_halted(),
            "faulted": self.is_faulted(),
            "ip": self.state.ip,
            "stack": self.get_stack(),
            "trace_length": len(self.trace),
            "errors": [str(r.error) for r in self.trace if not r.success],
        }
