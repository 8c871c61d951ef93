from .debugger import DebugSession, format_state
from .engine import DEFAULT_TAPE_LENGTH, ExecutionEngine, ExecutionState
from .errors import ProgramError, UnmatchedLoopClose, UnmatchedLoopOpen, UnrecognizedSymbol
from .program import Program
from .tokens import Instruction, clean_source, render, tokenize
from .validator import validate

__all__ = [
    "DEFAULT_TAPE_LENGTH",
    "DebugSession",
    "ExecutionEngine",
    "ExecutionState",
    "Instruction",
    "Program",
    "ProgramError",
    "UnmatchedLoopClose",
    "UnmatchedLoopOpen",
    "UnrecognizedSymbol",
    "clean_source",
    "format_state",
    "render",
    "tokenize",
    "validate",
]
