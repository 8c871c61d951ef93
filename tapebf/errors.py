from __future__ import annotations


class ProgramError(Exception):
    """Base class for problems detected before a program is executed."""


class UnrecognizedSymbol(ProgramError):
    def __init__(self, symbol: str, position: int) -> None:
        super().__init__(
            f"Character {symbol!r} at position {position} is not inside the list of characters"
        )
        self.symbol = symbol
        self.position = position


class UnmatchedLoopClose(ProgramError):
    def __init__(self, position: int) -> None:
        super().__init__(f"The loop ended at position {position} does not have a beginning")
        self.position = position


class UnmatchedLoopOpen(ProgramError):
    def __init__(self, count: int) -> None:
        super().__init__(f"Expected all loops to be closed, but {count} loops are not closed")
        self.count = count


__all__ = [
    "ProgramError",
    "UnrecognizedSymbol",
    "UnmatchedLoopClose",
    "UnmatchedLoopOpen",
]
