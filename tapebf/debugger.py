from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Sequence, Set

from .engine import DEFAULT_TAPE_LENGTH, ExecutionEngine, ExecutionState
from .program import Program
from .tokens import Instruction


def _to_input_bytes(data: str) -> List[int]:
    """One byte per character; callers must keep ``data`` within latin-1."""
    return list(data.encode("latin-1"))


@dataclass
class DebugSession:
    program: Program
    input_template: List[int]
    tape_window: int = 10
    history_limit: int = 200
    tape_length: int = DEFAULT_TAPE_LENGTH

    def __post_init__(self) -> None:
        self.breakpoints: Set[int] = set()
        self.watched: Set[Instruction] = set()
        self.history: Deque[ExecutionState] = deque(maxlen=self.history_limit)
        self.hit_breakpoint: Optional[int] = None
        self._init_engine()

    @property
    def code(self) -> str:
        return self.program.code

    def _init_engine(self) -> None:
        self.engine = ExecutionEngine(tape_length=self.tape_length)
        self.step_iter = self.engine.step(
            self.program.instructions,
            input_data=list(self.input_template),
            tape_window=self.tape_window,
        )
        self.finished = False
        self.history.clear()
        self._record_state(
            self.engine.snapshot(0, None, 0, len(self.program), self.tape_window)
        )

    def restart(self) -> None:
        self.hit_breakpoint = None
        self._init_engine()

    def _record_state(self, state: ExecutionState) -> None:
        self.history.append(state)
        self.last_state = state

    def _advance(self) -> Optional[ExecutionState]:
        if self.finished:
            return None
        state = next(self.step_iter, None)
        if state is None or state.instruction is None:
            self.finished = True
        if state is not None:
            self._record_state(state)
        return state

    def _stop_reason(self, state: ExecutionState) -> Optional[int]:
        """Return the pc to report as a breakpoint hit, if execution should pause."""
        if state.pc >= state.code_length:
            return None
        upcoming = self.program.instructions[state.pc]
        if state.pc in self.breakpoints or upcoming in self.watched:
            return state.pc
        return None

    def step_forward(self, count: int = 1) -> Sequence[ExecutionState]:
        self.hit_breakpoint = None
        states: List[ExecutionState] = []
        while len(states) < count:
            state = self._advance()
            if state is None:
                break
            states.append(state)
            self.hit_breakpoint = self._stop_reason(state)
            if self.finished or self.hit_breakpoint is not None:
                break
        return states

    def run_until_break(self, limit: Optional[int] = None) -> Sequence[ExecutionState]:
        """Step until a breakpoint, the end of the program or ``limit`` steps.

        Without a limit a non-terminating program never returns.
        """
        if limit is not None:
            return self.step_forward(limit)
        states: List[ExecutionState] = []
        while True:
            batch = self.step_forward(1)
            states.extend(batch)
            if not batch or self.finished or self.hit_breakpoint is not None:
                return states

    def current_state(self) -> ExecutionState:
        return self.last_state

    def add_breakpoint(self, pc: int) -> None:
        self.breakpoints.add(pc)

    def remove_breakpoint(self, pc: int) -> bool:
        try:
            self.breakpoints.remove(pc)
        except KeyError:
            return False
        return True

    def watch(self, instruction: Instruction) -> None:
        """Pause before every occurrence of ``instruction``, wherever it sits."""
        self.watched.add(Instruction(instruction))

    def unwatch(self, instruction: Instruction) -> bool:
        try:
            self.watched.remove(Instruction(instruction))
        except KeyError:
            return False
        return True

    def clear_breakpoints(self) -> None:
        self.breakpoints.clear()
        self.watched.clear()

    def list_breakpoints(self) -> List[int]:
        return sorted(self.breakpoints)

    def is_finished(self) -> bool:
        return self.finished


def format_state(state: ExecutionState, code: str) -> str:
    if state.instruction is not None:
        label = state.instruction.symbol
    elif state.pc >= state.code_length and state.step:
        label = "(end)"
    else:
        label = "(init)"
    lines = [
        f"step={state.step} pc={state.pc}/{state.code_length} instruction={label!r} "
        f"pointer={state.pointer} depth={state.loop_depth}"
    ]
    if state.output:
        lines.append(f"output={state.output!r}")
    cells = []
    for absolute, value in enumerate(state.tape, start=state.tape_start):
        cell = f"{absolute}:{value:03}"
        cells.append(f"[{cell}]" if absolute == state.pointer else f" {cell} ")
    lines.append("tape=" + " ".join(cells))
    lines.append(f"code={_format_code_window(code, state.pc)}")
    return "\n".join(lines)


def _format_code_window(code: str, pc: int, window: int = 16) -> str:
    if not code:
        return "(empty)"
    start = max(0, pc - window)
    if pc >= len(code):
        return code[start:] + "[END]"
    return f"{code[start:pc]}[{code[pc]}]{code[pc + 1 : pc + window + 1]}"


__all__ = ["DebugSession", "format_state"]
