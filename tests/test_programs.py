"""Integration tests for example programs."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from stackvm import StackMachine

PROGRAMS = Path(__file__).parent.parent / "programs"


@pytest.fixture
def machine():
    return StackMachine()


class TestMultiplyProgram:
    """Test multiply.asm - 6 * 7 stored at address 100."""

    def test_result(self, machine):
        machine.load_program((PROGRAMS / "multiply.asm").read_text())
        trace = machine.run()

        assert machine.is_halted() is True
        assert machine.get_memory()[100] == 42
        assert len(trace) == 6

    def test_image(self, machine):
        words = machine.load_program((PROGRAMS / "multiply.asm").read_text())
        assert words == [2, 6, 2, 7, 8, 2, 100, 4, 0]


class TestSumProgram:
    """Test sum_1_to_5.asm - loop summing 5..1 into memory."""

    def test_sum(self, machine):
        machine.load_program((PROGRAMS / "sum_1_to_5.asm").read_text())
        machine.run()

        assert machine.is_halted() is True
        assert machine.get_memory()[100] == 15
        assert machine.get_memory()[101] == 0
        assert machine.get_stack() == []

    def test_step_count(self, machine):
        """3 setup steps + 5 loop iterations of 19 steps + halt."""
        machine.load_program((PROGRAMS / "sum_1_to_5.asm").read_text())
        machine.run()
        assert machine.get_summary()["steps"] == 3 + 5 * 19 + 1


class TestFactorialProgram:
    """Test factorial.asm - 5! = 120."""

    def test_factorial(self, machine):
        machine.load_program((PROGRAMS / "factorial.asm").read_text())
        machine.run()

        assert machine.is_halted() is True
        assert machine.get_memory()[120] == 120

    def test_step_limit(self):
        machine = StackMachine(max_steps=10)
        machine.load_program((PROGRAMS / "factorial.asm").read_text())
        with pytest.raises(RuntimeError, match="Max steps"):
            machine.run()
        assert machine.get_summary()["steps"] == 10


class TestInlinePrograms:
    """Small programs written inline."""

    def test_comparison_chain(self, machine):
        """not (3 > 5) and (2 == 2)."""
        machine.load_program("""
            pu
            5
            pu
            3
            gr      # 3 > 5 -> 0
            nt      # 1
            pu
            2
            pu
            2
            sa      # 1
            an      # 1
            ha
        """)
        machine.run()
        assert machine.get_stack() == [1]

    def test_divide_pushes_remainder_then_quotient(self, machine):
        machine.load_program("pu\n4\npu\n-7\ndi\nha")
        machine.run()
        assert machine.get_stack() == [-3, -2]
