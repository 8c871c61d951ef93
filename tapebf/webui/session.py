from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List

from tapebf.debugger import DebugSession
from tapebf.engine import DEFAULT_TAPE_LENGTH
from tapebf.program import Program

logger = logging.getLogger(__name__)


@dataclass
class SessionRecord:
    session_id: str
    session: DebugSession
    input_text: str = ""


class SessionStore:
    """Thread-safe registry for DebugSession instances."""

    def __init__(self) -> None:
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.RLock()

    def create_session(
        self,
        *,
        program: Program,
        input_template: List[int],
        input_text: str = "",
        tape_window: int = 10,
        history_limit: int = 200,
        tape_length: int = DEFAULT_TAPE_LENGTH,
    ) -> SessionRecord:
        session = DebugSession(
            program=program,
            input_template=input_template,
            tape_window=tape_window,
            history_limit=history_limit,
            tape_length=tape_length,
        )
        record = SessionRecord(
            session_id=uuid.uuid4().hex,
            session=session,
            input_text=input_text,
        )
        with self._lock:
            self._sessions[record.session_id] = record
        logger.debug("created session %s (%d instructions)", record.session_id, len(program))
        return record

    def get(self, session_id: str) -> SessionRecord:
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError as exc:
                raise KeyError(f"Unknown session id: {session_id}") from exc

    def reset(self, session_id: str) -> SessionRecord:
        record = self.get(session_id)
        record.session.clear_breakpoints()
        record.session.restart()
        return record

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = ["SessionRecord", "SessionStore"]
