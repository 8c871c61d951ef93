from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Iterator, List, Optional, Sequence

from .tokens import Instruction

logger = logging.getLogger(__name__)

DEFAULT_TAPE_LENGTH = 30000


@dataclass
class ExecutionState:
    step: int
    pc: int
    instruction: Optional[Instruction]
    pointer: int
    tape_start: int
    tape: List[int]
    output: str
    code_length: int
    loop_depth: int


def wrap_value(value: int, lower: int, upper: int) -> int:
    """Wrap ``value`` into the half-open range ``[lower, upper)``."""
    return lower + (value - lower) % (upper - lower)


@dataclass
class ExecutionEngine:
    """Runs validated instruction sequences against a circular byte tape.

    The engine trusts its caller to have validated loop balance; an
    unbalanced sequence has no defined behaviour here.
    """

    tape_length: int = DEFAULT_TAPE_LENGTH
    cell_bits: int = 8

    tape: List[int] = field(init=False, repr=False)
    pointer: int = field(init=False, repr=False)
    loop_entries: List[int] = field(init=False, repr=False)
    output_buffer: bytearray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.tape_length < 1:
            raise ValueError("tape_length must be at least 1")
        if self.cell_bits < 1:
            raise ValueError("cell_bits must be at least 1")
        self.cell_modulus = 1 << self.cell_bits
        self.reset()

    def reset(self) -> None:
        self.tape = [0] * self.tape_length
        self.pointer = 0
        self.loop_entries = []
        self.output_buffer = bytearray()

    def run(
        self,
        instructions: Sequence[Instruction],
        input_data: Optional[Iterable[int]] = None,
        output: Optional[BinaryIO] = None,
    ) -> bytes:
        self.reset()
        input_iter = iter(input_data if input_data is not None else ())
        pc = 0
        code_length = len(instructions)
        while pc < code_length:
            pc = self._execute_instruction(instructions, pc, input_iter, output)
        logger.debug("program finished, %d bytes of output", len(self.output_buffer))
        return bytes(self.output_buffer)

    def step(
        self,
        instructions: Sequence[Instruction],
        input_data: Optional[Iterable[int]] = None,
        tape_window: int = 10,
    ) -> Iterator[ExecutionState]:
        self.reset()
        input_iter = iter(input_data if input_data is not None else ())
        pc = 0
        steps = 0
        code_length = len(instructions)

        while pc < code_length:
            instruction = instructions[pc]
            pc = self._execute_instruction(instructions, pc, input_iter, None)
            steps += 1
            yield self.snapshot(pc, instruction, steps, code_length, tape_window)

        yield self.snapshot(pc, None, steps, code_length, tape_window)

    def _execute_instruction(
        self,
        instructions: Sequence[Instruction],
        pc: int,
        input_iter: Iterator[int],
        output: Optional[BinaryIO],
    ) -> int:
        instruction = instructions[pc]
        new_pc = pc + 1
        if instruction == Instruction.MOVE_RIGHT:
            self.pointer = wrap_value(self.pointer + 1, 0, self.tape_length)
        elif instruction == Instruction.MOVE_LEFT:
            self.pointer = wrap_value(self.pointer - 1, 0, self.tape_length)
        elif instruction == Instruction.INCREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] + 1) % self.cell_modulus
        elif instruction == Instruction.DECREMENT:
            self.tape[self.pointer] = (self.tape[self.pointer] - 1) % self.cell_modulus
        elif instruction == Instruction.OUTPUT:
            self._emit(self.tape[self.pointer] & 0xFF, output)
        elif instruction == Instruction.INPUT:
            value = next(input_iter, None)
            # End of input leaves the cell untouched.
            if value is not None:
                self.tape[self.pointer] = value % self.cell_modulus
        elif instruction == Instruction.LOOP_OPEN:
            if self.tape[self.pointer] == 0:
                new_pc = self._skip_loop(instructions, pc) + 1
            else:
                self.loop_entries.append(pc)
        elif instruction == Instruction.LOOP_CLOSE:
            entry = self.loop_entries.pop()
            if self.tape[self.pointer] != 0:
                # Back to the open itself so its zero check runs again.
                new_pc = entry
        return new_pc

    def _skip_loop(self, instructions: Sequence[Instruction], pc: int) -> int:
        """Scan forward from the open at ``pc`` to its matching close."""
        depth = 1
        while depth:
            pc += 1
            instruction = instructions[pc]
            if instruction == Instruction.LOOP_OPEN:
                depth += 1
            elif instruction == Instruction.LOOP_CLOSE:
                depth -= 1
        return pc

    def _emit(self, value: int, output: Optional[BinaryIO]) -> None:
        self.output_buffer.append(value)
        if output is not None:
            output.write(bytes((value,)))
            flush = getattr(output, "flush", None)
            if flush is not None:
                flush()

    def snapshot(
        self,
        pc: int,
        instruction: Optional[Instruction],
        step: int,
        code_length: int,
        tape_window: int,
    ) -> ExecutionState:
        start = max(0, self.pointer - tape_window)
        end = min(self.tape_length, self.pointer + tape_window + 1)
        return ExecutionState(
            step=step,
            pc=pc,
            instruction=instruction,
            pointer=self.pointer,
            tape_start=start,
            tape=self.tape[start:end].copy(),
            output=self.output_buffer.decode("latin-1"),
            code_length=code_length,
            loop_depth=len(self.loop_entries),
        )


__all__ = [
    "DEFAULT_TAPE_LENGTH",
    "ExecutionEngine",
    "ExecutionState",
    "wrap_value",
]
