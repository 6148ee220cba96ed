"""Stack VM Interactive Demo.

A Gradio web interface for assembling, stepping and running stack machine
programs.

Usage:
    cd /path/to/stackvm
    python demo/gradio_app.py

Features:
    - Write or load assembly programs
    - Assemble, single-step, run and reset
    - See memory (IP marked), live stack and the step trace
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from stackvm import MNEMONICS, StackMachine, StackMachineError


PROGRAMS_DIR = Path(__file__).parent.parent / "programs"


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Multiply 6x7": (PROGRAMS_DIR / "multiply.asm").read_text(),
    "Sum 5..1": (PROGRAMS_DIR / "sum_1_to_5.asm").read_text(),
    "Factorial(5)": (PROGRAMS_DIR / "factorial.asm").read_text(),
    "Infinite Loop": "pu\n42\npu\n0\nju      # back to 0, never halts",
    "Custom": "",
}

MAX_TRACE_LINES = 100


# =============================================================================
# Formatting
# =============================================================================

def format_memory(machine: StackMachine, columns: int = 16) -> str:
    """Render memory as rows of words, IP cell in brackets."""
    memory = machine.get_memory()
    ip = machine.get_ip()
    lines = []
    for start in range(0, len(memory), columns):
        cells = []
        for address in range(start, min(start + columns, len(memory))):
            cell = f"{memory[address]:>4}"
            cells.append(f"[{cell.strip():>3}]" if address == ip else f" {cell}")
        lines.append(f"{start:>3}:" + "".join(cells))
    return "\n".join(lines)


def format_stack(machine: StackMachine) -> str:
    """Render the live stack, top first."""
    stack = machine.get_stack()
    if not stack:
        return "(empty)"
    lines = []
    for depth, value in enumerate(reversed(stack)):
        marker = "  <- top" if depth == 0 else ""
        lines.append(f"{len(stack) - 1 - depth:>3}: {value:>5}{marker}")
    return "\n".join(lines)


def format_trace(machine: StackMachine) -> str:
    trace = machine.trace
    lines = ["EXECUTION TRACE", "=" * 60]
    for index, report in enumerate(trace[:MAX_TRACE_LINES]):
        if not report.success:
            lines.append(f"[{index}] @{report.address} ERROR: {report.error}")
            continue
        parts = [f"[{index}] @{report.address} {report.operation.mnemonic} {report.name}"]
        if report.pop_count:
            parts.append(f"pop {report.pop_count}")
        if report.pushed:
            parts.append(f"push {list(report.pushed)}")
        if report.memory_write:
            parts.append("mem[{}] <- {}".format(*report.memory_write))
        parts.append("HALT" if report.halt else f"ip {report.ip_delta:+d}")
        lines.append("  ".join(parts))
    if len(trace) > MAX_TRACE_LINES:
        lines.append(f"... ({len(trace) - MAX_TRACE_LINES} more entries)")
    return "\n".join(lines)


def format_summary(machine: StackMachine, message: str = "") -> str:
    summary = machine.get_summary()
    lines = [
        "SUMMARY",
        "=" * 40,
        f"Status: {summary['status']}",
        f"Steps:  {summary['steps']}",
        f"IP:     {summary['ip']}",
    ]
    if summary["errors"]:
        lines.append(f"Fault:  {summary['errors'][-1]}")
    if message:
        lines.append(f"\n{message}")
    return "\n".join(lines)


def render(machine: StackMachine, message: str = "") -> tuple:
    return (
        machine,
        format_summary(machine, message),
        format_trace(machine),
        format_memory(machine),
        format_stack(machine),
    )


# =============================================================================
# Actions
# =============================================================================

def assemble_program(program: str, machine: StackMachine = None) -> tuple:
    """Assemble program text into a fresh (or reset) machine.

    Returns:
        Tuple of (machine, summary, trace, memory, stack)
    """
    machine = machine or StackMachine()
    if not program.strip():
        return render(machine, "Error: No program provided")
    try:
        words = machine.load_program(program)
    except StackMachineError as e:
        return render(machine, f"Assembly error: {e}")
    return render(machine, f"Assembled {len(words)} words")


def step_program(machine: StackMachine) -> tuple:
    if machine is None:
        return render(StackMachine(), "Assemble a program first")
    report = machine.execute()
    message = "" if report.success else f"Step failed: {report.error}"
    return render(machine, message)


def run_program(machine: StackMachine, max_steps: int) -> tuple:
    if machine is None:
        return render(StackMachine(), "Assemble a program first")
    try:
        machine.run(int(max_steps))
    except RuntimeError as e:
        return render(machine, f"Stopped: {e}")
    return render(machine)


def load_example(example_name: str) -> str:
    """Load an example program."""
    return EXAMPLE_PROGRAMS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="Stack VM Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # Stack VM: Educational 8-bit Stack Machine

        Programs are one instruction or integer per line. A `pu` (push)
        reads its value from the next line. Comments start with `#`.
        """)

        machine_state = gr.State(None)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Assembly Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Sum 5..1",
                    label="Load Example"
                )

                program_input = gr.Textbox(
                    value=EXAMPLE_PROGRAMS["Sum 5..1"],
                    label="Source Code",
                    lines=20,
                    placeholder="Enter assembly code here..."
                )

                max_steps = gr.Slider(
                    minimum=10,
                    maximum=100000,
                    value=StackMachine.DEFAULT_MAX_STEPS,
                    step=10,
                    label="Max Steps"
                )

                with gr.Row():
                    assemble_button = gr.Button("Assemble / Reset", variant="primary")
                    step_button = gr.Button("Step")
                    run_button = gr.Button("Run")

            with gr.Column(scale=3):
                with gr.Row():
                    summary_output = gr.Textbox(label="Summary", lines=8, interactive=False)
                    stack_output = gr.Textbox(label="Stack", lines=8, interactive=False)

                memory_output = gr.Textbox(label="Memory", lines=16, interactive=False)
                trace_output = gr.Textbox(label="Execution Trace", lines=16, interactive=False)

        with gr.Accordion("ISA Reference", open=False):
            rows = "\n".join(
                f"| `{mnemonic}` | {op.name} | {op.opcode} |"
                for op, mnemonic in MNEMONICS.items()
            )
            gr.Markdown(
                "| Mnemonic | Operation | Opcode |\n|---|---|---|\n" + rows +
                "\n\nOperands: `top` is the last pushed value, `second` the one below it. "
                "`su` computes top - second, `st` writes second to address top, "
                "`jc` jumps to second when top is 1."
            )

        outputs = [machine_state, summary_output, trace_output, memory_output, stack_output]

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[program_input]
        )
        assemble_button.click(
            fn=assemble_program,
            inputs=[program_input, machine_state],
            outputs=outputs
        )
        step_button.click(fn=step_program, inputs=[machine_state], outputs=outputs)
        run_button.click(fn=run_program, inputs=[machine_state, max_steps], outputs=outputs)

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
