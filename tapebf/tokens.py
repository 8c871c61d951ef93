from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, List, Tuple

from .errors import UnrecognizedSymbol

logger = logging.getLogger(__name__)


class Instruction(str, Enum):
    MOVE_RIGHT = ">"
    MOVE_LEFT = "<"
    INCREMENT = "+"
    DECREMENT = "-"
    OUTPUT = "."
    INPUT = ","
    LOOP_OPEN = "["
    LOOP_CLOSE = "]"

    @property
    def symbol(self) -> str:
        return self.value


SYMBOLS = "><+-.,[]"

_SYMBOL_TABLE = {instruction.value: instruction for instruction in Instruction}


def clean_source(text: str) -> str:
    """Keep only the eight recognised symbols, preserving their order."""
    return "".join(ch for ch in text if ch in _SYMBOL_TABLE)


def tokenize(symbols: Iterable[str]) -> Tuple[Instruction, ...]:
    """Map cleaned source symbols one-to-one onto instructions.

    Raises UnrecognizedSymbol for the first character outside the alphabet;
    no partial sequence is returned in that case.
    """
    instructions: List[Instruction] = []
    for position, symbol in enumerate(symbols):
        try:
            instructions.append(_SYMBOL_TABLE[symbol])
        except KeyError:
            raise UnrecognizedSymbol(symbol, position) from None
    logger.debug("tokenized %d instructions", len(instructions))
    return tuple(instructions)


def render(instructions: Iterable[Instruction]) -> str:
    return "".join(instruction.value for instruction in instructions)


__all__ = [
    "Instruction",
    "SYMBOLS",
    "clean_source",
    "render",
    "tokenize",
]
