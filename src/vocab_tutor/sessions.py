"""Learning session tracking."""
import logging

from vocab_tutor.clock import SystemClock
from vocab_tutor.db import get_connection
from vocab_tutor.models import LearningSession

logger = logging.getLogger(__name__)

SESSION_TYPES = ("video_learning", "vocabulary_review", "note_review")
COUNTERS = ("words_learned", "notes_taken", "translations_requested")


class SessionNotFound(LookupError):
    pass


class InvalidSession(ValueError):
    pass


class SessionTracker:
    def __init__(self, db_path: str, clock=None):
        self.db_path = db_path
        self.clock = clock or SystemClock()

    def start_session(self, session_type: str, video_id: str | None = None) -> LearningSession:
        if session_type not in SESSION_TYPES:
            raise InvalidSession(f"unknown session type: {session_type!r}")
        conn = get_connection(self.db_path)
        cur = conn.execute(
            "INSERT INTO learning_sessions (session_type, video_id, started_at) VALUES (?, ?, ?)",
            (session_type, video_id, self.clock.now().isoformat()),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM learning_sessions WHERE id = ?", (cur.lastrowid,)).fetchone()
        conn.close()
        logger.info("started %s session %d", session_type, row["id"])
        return LearningSession.from_row(row)

    def get_session(self, session_id: int) -> LearningSession:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT * FROM learning_sessions WHERE id = ?", (session_id,)).fetchone()
        conn.close()
        if row is None:
            raise SessionNotFound(f"session {session_id} not found")
        return LearningSession.from_row(row)

    def get_active_session(self) -> LearningSession | None:
        conn = get_connection(self.db_path)
        row = conn.execute(
            """SELECT * FROM learning_sessions WHERE ended_at IS NULL
            ORDER BY started_at DESC, id DESC LIMIT 1"""
        ).fetchone()
        conn.close()
        return LearningSession.from_row(row) if row else None

    def increment(self, session_id: int, counter: str, by: int = 1) -> LearningSession:
        if counter not in COUNTERS:
            raise InvalidSession(f"unknown counter: {counter!r}")
        if by < 0:
            raise InvalidSession("counters only move forward")
        conn = get_connection(self.db_path)
        cur = conn.execute(
            f"UPDATE learning_sessions SET {counter} = {counter} + ? WHERE id = ?",
            (by, session_id),
        )
        conn.commit()
        conn.close()
        if cur.rowcount == 0:
            raise SessionNotFound(f"session {session_id} not found")
        return self.get_session(session_id)

    def end_session(self, session_id: int) -> LearningSession:
        session = self.get_session(session_id)
        if not session.is_active:
            raise InvalidSession(f"session {session_id} already ended")
        ended = self.clock.now()
        duration = max(0, int((ended - session.started_at).total_seconds()))
        conn = get_connection(self.db_path)
        conn.execute(
            "UPDATE learning_sessions SET ended_at = ?, duration_seconds = ? WHERE id = ?",
            (ended.isoformat(), duration, session_id),
        )
        conn.commit()
        conn.close()
        logger.info("ended session %d after %ds", session_id, duration)
        return self.get_session(session_id)

    def list_sessions(self, session_type: str | None = None, limit: int = 20, offset: int = 0) -> list:
        query = "SELECT * FROM learning_sessions"
        params: list = []
        if session_type:
            query += " WHERE session_type = ?"
            params.append(session_type)
        query += " ORDER BY started_at DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection(self.db_path)
        rows = conn.execute(query, params).fetchall()
        conn.close()
        return [LearningSession.from_row(r) for r in rows]
