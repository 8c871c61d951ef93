from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional

from .debugger import DebugSession, format_state
from .engine import DEFAULT_TAPE_LENGTH, ExecutionEngine
from .errors import ProgramError
from .program import Program
from .tokens import clean_source, tokenize
from .validator import validate

logger = logging.getLogger(__name__)


def _progress(percentage: int, message: str) -> None:
    logger.info("[%3d%%] %s", percentage, message)


def _error(message: str) -> None:
    print(f"ERROR: {message}", file=sys.stderr)


def _stdin_bytes() -> Iterator[int]:
    stream = sys.stdin.buffer
    while True:
        chunk = stream.read(1)
        if not chunk:
            return
        yield chunk[0]


def _configure_logging(debug: bool) -> None:
    package_logger = logging.getLogger("tapebf")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    package_logger.propagate = False


def _write_output(data: bytes) -> None:
    sink = getattr(sys.stdout, "buffer", None)
    if sink is None:
        sys.stdout.write(data.decode("latin-1"))
    else:
        sys.stdout.flush()
        sink.write(data)
        sink.flush()


def _trace(program: Program, input_bytes: List[int], tape_length: int) -> None:
    session = DebugSession(program, input_template=input_bytes, tape_length=tape_length)
    print(format_state(session.current_state(), program.code), file=sys.stderr)
    while not session.is_finished():
        for state in session.step_forward(1):
            print("-" * 40, file=sys.stderr)
            print(format_state(state, program.code), file=sys.stderr)
    _write_output(bytes(session.engine.output_buffer))


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tapebf",
        description="Interpret a program written in the eight-symbol tape language",
    )
    parser.add_argument("source", help="Path to the program file (must end in .bf)")
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show progress information while loading and running",
    )
    parser.add_argument(
        "--input",
        help="Input string for the program (default: read from stdin)",
    )
    parser.add_argument(
        "--tape-length",
        type=int,
        default=DEFAULT_TAPE_LENGTH,
        help=f"Number of tape cells (default: {DEFAULT_TAPE_LENGTH})",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Print the machine state after every instruction to stderr",
    )
    args = parser.parse_args(argv)
    _configure_logging(args.debug)

    if args.tape_length < 1:
        _error("Tape length must be at least 1")
        return 1

    if not args.source.endswith(".bf"):
        _error(f"File {args.source} is not a brainfuck file: expected file ending in .bf")
        return 1

    _progress(0, f"Reading contents from file {args.source}")
    try:
        text = Path(args.source).read_text(encoding="utf-8", errors="replace")
    except OSError:
        _error(f"File {args.source} could not be loaded.")
        return 1

    try:
        _progress(25, "Converting input to tokens")
        code = clean_source(text)
        instructions = tokenize(code)
        _progress(50, "Validating code")
        validate(instructions)
    except ProgramError as exc:
        _error(str(exc))
        return 1
    program = Program(code=code, instructions=instructions)

    _progress(75, "Running interpreter on tokens")
    # --input is encoded the same way as bytes arriving on stdin.
    typed_input = args.input.encode("utf-8") if args.input is not None else None
    if args.trace:
        input_bytes = list(typed_input if typed_input is not None else sys.stdin.buffer.read())
        _trace(program, input_bytes, args.tape_length)
    else:
        input_data = typed_input if typed_input is not None else _stdin_bytes()
        engine = ExecutionEngine(tape_length=args.tape_length)
        sink = getattr(sys.stdout, "buffer", None)
        output = engine.run(program.instructions, input_data=input_data, output=sink)
        if sink is None:
            _write_output(output)

    _progress(100, "Program interpreted, exiting...")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
