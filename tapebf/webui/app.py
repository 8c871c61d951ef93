from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from fastapi import FastAPI, HTTPException, Response, status
from pydantic import BaseModel, Field, field_validator

from tapebf.debugger import DebugSession, _to_input_bytes
from tapebf.engine import DEFAULT_TAPE_LENGTH, ExecutionState
from tapebf.errors import ProgramError
from tapebf.program import Program

from .session import SessionRecord, SessionStore

logger = logging.getLogger(__name__)


def _state_to_dict(state: ExecutionState) -> dict:
    return {
        "step": state.step,
        "pc": state.pc,
        "instruction": state.instruction.symbol if state.instruction is not None else None,
        "pointer": state.pointer,
        "tape_start": state.tape_start,
        "tape": list(state.tape),
        "output": state.output,
        "code_length": state.code_length,
        "loop_depth": state.loop_depth,
    }


class SessionConfiguration(BaseModel):
    code: str
    input: str = ""
    tape_window: int = Field(default=10, ge=0)
    history_limit: int = Field(default=200, ge=1)
    tape_length: int = Field(default=DEFAULT_TAPE_LENGTH, ge=1)

    @field_validator("input")
    @classmethod
    def validate_input(cls, value: str) -> str:
        if any(ord(ch) > 0xFF for ch in value):
            raise ValueError("input must only contain characters in the range 0-255")
        return value


class SessionState(BaseModel):
    step: int
    pc: int
    instruction: Optional[str]
    pointer: int
    tape_start: int
    tape: List[int]
    output: str
    code_length: int
    loop_depth: int


class SessionPayload(BaseModel):
    session_id: str
    code: str
    input: str
    state: SessionState
    history: List[SessionState]
    finished: bool
    history_size: int
    breakpoints: List[int]
    hit_breakpoint: Optional[int]


class StepRequest(BaseModel):
    count: int = Field(default=1, ge=1)


class StepResponse(BaseModel):
    session_id: str
    code: str
    states: List[SessionState]
    history: List[SessionState]
    finished: bool
    history_size: int
    breakpoints: List[int]
    hit_breakpoint: Optional[int]


class RunRequest(BaseModel):
    limit: int = Field(default=10000, ge=1)
    ignore_breakpoints: bool = False


class BreakpointRequest(BaseModel):
    pc: int = Field(ge=0)


def create_app(store: Optional[SessionStore] = None) -> FastAPI:
    session_store = store if store is not None else SessionStore()
    app = FastAPI(title="tapebf debugging API", version="0.1.0")

    def _get_record(session_id: str) -> SessionRecord:
        try:
            return session_store.get(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    def _serialize_states(states: Iterable[ExecutionState]) -> List[SessionState]:
        return [SessionState(**_state_to_dict(state)) for state in states]

    def _build_payload(record: SessionRecord) -> SessionPayload:
        session = record.session
        return SessionPayload(
            session_id=record.session_id,
            code=session.code,
            input=record.input_text,
            state=SessionState(**_state_to_dict(session.current_state())),
            history=_serialize_states(session.history),
            finished=session.is_finished(),
            history_size=len(session.history),
            breakpoints=session.list_breakpoints(),
            hit_breakpoint=session.hit_breakpoint,
        )

    def _build_step_response(
        record: SessionRecord, states: List[ExecutionState]
    ) -> StepResponse:
        session: DebugSession = record.session
        return StepResponse(
            session_id=record.session_id,
            code=session.code,
            states=_serialize_states(states),
            history=_serialize_states(session.history),
            finished=session.is_finished(),
            history_size=len(session.history),
            breakpoints=session.list_breakpoints(),
            hit_breakpoint=session.hit_breakpoint,
        )

    @app.post("/api/session", response_model=SessionPayload, status_code=status.HTTP_201_CREATED)
    def create_session(payload: SessionConfiguration) -> SessionPayload:
        try:
            program = Program.from_source(payload.code)
        except ProgramError as exc:
            logger.debug("rejected program: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            ) from exc

        record = session_store.create_session(
            program=program,
            input_template=_to_input_bytes(payload.input),
            input_text=payload.input,
            tape_window=payload.tape_window,
            history_limit=payload.history_limit,
            tape_length=payload.tape_length,
        )
        return _build_payload(record)

    @app.get("/api/session/{session_id}", response_model=SessionPayload)
    def get_session(session_id: str) -> SessionPayload:
        return _build_payload(_get_record(session_id))

    @app.post("/api/session/{session_id}/reset", response_model=SessionPayload)
    def reset_session(session_id: str) -> SessionPayload:
        try:
            record = session_store.reset(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        return _build_payload(record)

    @app.post("/api/session/{session_id}/step", response_model=StepResponse)
    def step_session(session_id: str, payload: StepRequest) -> StepResponse:
        record = _get_record(session_id)
        states = list(record.session.step_forward(payload.count))
        return _build_step_response(record, states)

    @app.post("/api/session/{session_id}/run", response_model=StepResponse)
    def run_session(session_id: str, payload: RunRequest) -> StepResponse:
        record = _get_record(session_id)
        session = record.session
        saved = None
        if payload.ignore_breakpoints:
            saved = (set(session.breakpoints), set(session.watched))
            session.clear_breakpoints()

        try:
            states = list(session.run_until_break(payload.limit))
        finally:
            if saved is not None:
                session.breakpoints, session.watched = saved

        return _build_step_response(record, states)

    @app.post("/api/session/{session_id}/breakpoints", response_model=SessionPayload)
    def add_breakpoint(session_id: str, payload: BreakpointRequest) -> SessionPayload:
        record = _get_record(session_id)
        record.session.add_breakpoint(payload.pc)
        return _build_payload(record)

    @app.delete("/api/session/{session_id}/breakpoints/{pc}", response_model=SessionPayload)
    def remove_breakpoint(session_id: str, pc: int) -> SessionPayload:
        record = _get_record(session_id)
        if not record.session.remove_breakpoint(pc):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Breakpoint not found at pc={pc}",
            )
        return _build_payload(record)

    @app.delete("/api/session/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_session(session_id: str) -> Response:
        if not session_store.remove(session_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown session id: {session_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


__all__ = ["create_app"]
