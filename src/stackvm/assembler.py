"""Assembler: program text to machine words.

Two stages:
    parse_program: text -> list of ParseNode (one per non-blank line)
    generate_instructions: ParseNode list -> list of words

Program format:
    - One instruction or datum per line, blank lines ignored
    - Optional trailing comment introduced by '#'
    - Two-letter, case-sensitive mnemonics (see operations.MNEMONICS)
    - An integer literal line is a data word; a push reads its immediate
      from the line directly after it

Line order is memory order, so the node at index i is loaded at address i.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from .errors import AssemblySyntaxError, WordRangeError
from .operations import Operation
from .state import WORD_SIZE, is_in_value_range

logger = logging.getLogger(__name__)

DATA = "data"

_LINE_RE = re.compile(r'([\w-]+)\s*(?:#(.*))?')
_INTEGER_RE = re.compile(r'-?\d+')


@dataclass
class ParseNode:
    """One parsed program line.

    Attributes:
        source_text: Leading token as written in the source
        kind: DATA for integer literals, otherwise the Operation
        value: Literal value for data nodes
        comment: Comment text after '#', if any
        line_num: 1-based line number in the original text
    """
    source_text: str
    kind: Union[str, Operation]
    value: Optional[int] = None
    comment: Optional[str] = None
    line_num: int = 0

    @property
    def is_data(self) -> bool:
        return self.kind == DATA


def parse_program(program_text: str, word_size: int = WORD_SIZE) -> List[ParseNode]:
    """Parse program text into nodes.

    Args:
        program_text: Assembly source
        word_size: Machine word size, bounds the number of lines

    Returns:
        List of ParseNode in source order

    Raises:
        WordRangeError: If the program has more lines than memory cells
        AssemblySyntaxError: On malformed lines or unknown mnemonics
    """
    lines = [
        (num, line.strip())
        for num, line in enumerate(program_text.split("\n"), start=1)
        if line.strip()
    ]

    memory_size = 2 ** word_size
    if len(lines) > memory_size:
        raise WordRangeError(
            f"program length {len(lines)} exceeds memory size {memory_size}"
        )

    nodes = [_parse_line(num, line) for num, line in lines]
    logger.debug("Parsed %d program lines", len(nodes))
    return nodes


def _parse_line(line_num: int, line: str) -> ParseNode:
    match = _LINE_RE.fullmatch(line)
    if match is None:
        raise AssemblySyntaxError("malformed line", line_num, line)

    code = match.group(1)
    comment = match.group(2)
    if comment is not None:
        comment = comment.strip() or None

    if _INTEGER_RE.fullmatch(code):
        try:
            value = int(code)
        except ValueError:
            # int() refuses very long digit strings
            raise WordRangeError(f"Line {line_num}: data value exceeds value range") from None
        return ParseNode(code, DATA, value=value, comment=comment, line_num=line_num)

    operation = Operation.from_mnemonic(code)
    if operation is None:
        raise AssemblySyntaxError(f"invalid assembly code {code}", line_num, line)

    return ParseNode(code, operation, comment=comment, line_num=line_num)


def generate_instructions(nodes: List[ParseNode], word_size: int = WORD_SIZE) -> List[int]:
    """Generate machine words from parsed nodes.

    Raises:
        WordRangeError: If a data value does not fit in a word
    """
    words = []
    for index, node in enumerate(nodes):
        if node.is_data:
            if not is_in_value_range(node.value, word_size):
                raise WordRangeError(
                    f"data value {node.value} at parse tree node {index} exceeds value range"
                )
            words.append(node.value)
        else:
            words.append(node.kind.opcode)
    return words


def assemble(program_text: str, word_size: int = WORD_SIZE) -> List[int]:
    """Parse and generate in one call."""
    return generate_instructions(parse_program(program_text, word_size), word_size)
