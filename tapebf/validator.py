from __future__ import annotations

import logging
from typing import Sequence

from .errors import UnmatchedLoopClose, UnmatchedLoopOpen
from .tokens import Instruction

logger = logging.getLogger(__name__)


def validate(instructions: Sequence[Instruction]) -> None:
    """Check that every loop open has a matching close and vice versa.

    A single left-to-right pass with a running depth counter. Jump targets
    are not recorded here; the engine resolves them while running.
    """
    depth = 0
    for position, instruction in enumerate(instructions):
        if instruction == Instruction.LOOP_OPEN:
            depth += 1
        elif instruction == Instruction.LOOP_CLOSE:
            depth -= 1
            if depth < 0:
                raise UnmatchedLoopClose(position)
    if depth != 0:
        raise UnmatchedLoopOpen(depth)
    logger.debug("validated %d instructions", len(instructions))


__all__ = ["validate"]
