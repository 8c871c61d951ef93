from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .tokens import Instruction, clean_source, tokenize
from .validator import validate


@dataclass(frozen=True)
class Program:
    """A cleaned, tokenized and validated instruction sequence."""

    code: str
    instructions: Tuple[Instruction, ...]

    @classmethod
    def from_source(cls, text: str) -> "Program":
        code = clean_source(text)
        instructions = tokenize(code)
        validate(instructions)
        return cls(code=code, instructions=instructions)

    def __len__(self) -> int:
        return len(self.instructions)


__all__ = ["Program"]
