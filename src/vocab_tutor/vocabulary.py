"""Vocabulary storage with spaced repetition scheduling."""
import logging
import sqlite3

from vocab_tutor.clock import SystemClock
from vocab_tutor.db import get_connection, like_pattern
from vocab_tutor.models import EntryPage, VocabularyEntry
from vocab_tutor.scheduler import (
    ReviewOutcome, initial_state, next_state, parse_difficulty, parse_outcome,
)
from vocab_tutor.sessions import SessionTracker

logger = logging.getLogger(__name__)

MAX_WORD_LENGTH = 100
MAX_DEFINITION_LENGTH = 500
MAX_CONTEXT_LENGTH = 500
MAX_PART_OF_SPEECH_LENGTH = 50
MAX_PAGE_SIZE = 100

SORT_COLUMNS = ("learned_at", "next_review_at", "word", "success_rate")


class VocabularyError(Exception):
    """Base class for vocabulary store errors."""


class InvalidEntry(VocabularyError, ValueError):
    pass


class DuplicateEntry(VocabularyError):
    pass


class EntryNotFound(VocabularyError, LookupError):
    pass


class StaleEntry(VocabularyError):
    """The entry changed between read and write."""


def _clean_text(value, name: str, max_length: int, required: bool = False) -> str | None:
    if value is None:
        if required:
            raise InvalidEntry(f"{name} is required")
        return None
    if not isinstance(value, str):
        raise InvalidEntry(f"{name} must be a string")
    value = value.strip()
    if not value:
        if required:
            raise InvalidEntry(f"{name} must not be empty")
        return None
    if len(value) > max_length:
        raise InvalidEntry(f"{name} is longer than {max_length} characters")
    return value


class VocabularyStore:
    """Vocabulary entries in SQLite, scheduled by the review scheduler."""

    def __init__(self, db_path: str, clock=None):
        self.db_path = db_path
        self.clock = clock or SystemClock()
        self.sessions = SessionTracker(db_path, self.clock)

    def _is_duplicate(self, conn, word: str, context: str | None) -> bool:
        row = conn.execute(
            "SELECT id FROM vocabulary_entries WHERE word = ? COLLATE NOCASE AND context IS ?",
            (word, context),
        ).fetchone()
        return row is not None

    def add_word(
        self,
        word: str,
        definition: str,
        difficulty="intermediate",
        context: str | None = None,
        part_of_speech: str | None = None,
        video_id: str | None = None,
        timestamp: float | None = None,
    ) -> VocabularyEntry:
        word = _clean_text(word, "word", MAX_WORD_LENGTH, required=True)
        definition = _clean_text(definition, "definition", MAX_DEFINITION_LENGTH, required=True)
        context = _clean_text(context, "context", MAX_CONTEXT_LENGTH)
        part_of_speech = _clean_text(part_of_speech, "part_of_speech", MAX_PART_OF_SPEECH_LENGTH)
        if timestamp is not None and timestamp < 0:
            raise InvalidEntry("timestamp must be >= 0")

        now = self.clock.now()
        state = initial_state(difficulty, now)

        conn = get_connection(self.db_path)
        try:
            if self._is_duplicate(conn, word, context):
                raise DuplicateEntry(f"{word!r} is already in your vocabulary")
            try:
                cur = conn.execute(
                    """INSERT INTO vocabulary_entries
                    (word, definition, context, part_of_speech, video_id, timestamp, difficulty,
                     interval, repetition_count, ease_factor, next_review_at, reviewed_at,
                     learned_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        word, definition, context, part_of_speech, video_id, timestamp,
                        state.difficulty.value, state.interval, state.repetition_count,
                        state.ease_factor, state.next_review_at.isoformat(),
                        state.reviewed_at.isoformat(), now.isoformat(), now.isoformat(),
                    ),
                )
            except sqlite3.IntegrityError:
                raise DuplicateEntry(f"{word!r} is already in your vocabulary") from None
            conn.commit()
            entry_id = cur.lastrowid
        finally:
            conn.close()

        active = self.sessions.get_active_session()
        if active:
            self.sessions.increment(active.id, "words_learned")
        logger.info("added %r (%s), first review %s", word, state.difficulty.value, state.next_review_at.date())
        return self.get_entry(entry_id)

    def get_entry(self, entry_id: int) -> VocabularyEntry:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT * FROM vocabulary_entries WHERE id = ?", (entry_id,)).fetchone()
        conn.close()
        if row is None:
            raise EntryNotFound(f"vocabulary entry {entry_id} not found")
        return VocabularyEntry.from_row(row)

    def record_review(self, entry_id: int, outcome, expected_version: int | None = None) -> VocabularyEntry:
        """Apply a review outcome and persist the next review state.

        ``expected_version`` lets a caller that displayed an entry earlier
        refuse to overwrite a review recorded since.
        """
        entry = self.get_entry(entry_id)
        if expected_version is not None and entry.version != expected_version:
            raise StaleEntry(f"entry {entry_id} is at version {entry.version}, not {expected_version}")

        result = parse_outcome(outcome)
        now = self.clock.now()
        state = next_state(entry.review_state(), result, now)
        review_count = entry.review_count + 1
        success_rate = (entry.review_count * entry.success_rate + (1 if result.success else 0)) / review_count

        conn = get_connection(self.db_path)
        try:
            cur = conn.execute(
                """UPDATE vocabulary_entries SET interval=?, repetition_count=?, ease_factor=?,
                next_review_at=?, reviewed_at=?, review_count=?, success_rate=?, updated_at=?,
                version = version + 1
                WHERE id=? AND version=?""",
                (
                    state.interval, state.repetition_count, state.ease_factor,
                    state.next_review_at.isoformat(), state.reviewed_at.isoformat(),
                    review_count, success_rate, now.isoformat(), entry_id, entry.version,
                ),
            )
            if cur.rowcount == 0:
                conn.rollback()
                logger.warning("lost review race on entry %d", entry_id)
                raise StaleEntry(f"entry {entry_id} was changed by another review")
            conn.execute(
                """INSERT INTO review_log
                (entry_id, success, quality_score, response_seconds, interval, ease_factor, reviewed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry_id, int(result.success), result.quality_score, result.response_seconds,
                    state.interval, state.ease_factor, now.isoformat(),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(
            "reviewed %r: %s, next in %d day(s)",
            entry.word, "recalled" if result.success else "forgotten", state.interval,
        )
        return self.get_entry(entry_id)

    def record_rating(self, entry_id: int, rating: int, response_seconds: float | None = None) -> VocabularyEntry:
        """Record a 0-5 self rating; 3 and above counts as recalled."""
        outcome = ReviewOutcome(success=rating >= 3, quality_score=rating, response_seconds=response_seconds)
        return self.record_review(entry_id, outcome)

    def update_definition(self, entry_id: int, definition: str) -> VocabularyEntry:
        definition = _clean_text(definition, "definition", MAX_DEFINITION_LENGTH, required=True)
        conn = get_connection(self.db_path)
        cur = conn.execute(
            "UPDATE vocabulary_entries SET definition=?, updated_at=?, version = version + 1 WHERE id=?",
            (definition, self.clock.now().isoformat(), entry_id),
        )
        conn.commit()
        conn.close()
        if cur.rowcount == 0:
            raise EntryNotFound(f"vocabulary entry {entry_id} not found")
        return self.get_entry(entry_id)

    def delete_entry(self, entry_id: int) -> None:
        conn = get_connection(self.db_path)
        cur = conn.execute("DELETE FROM vocabulary_entries WHERE id = ?", (entry_id,))
        conn.commit()
        conn.close()
        if cur.rowcount == 0:
            raise EntryNotFound(f"vocabulary entry {entry_id} not found")
        logger.info("deleted entry %d", entry_id)

    def list_entries(
        self,
        difficulty=None,
        video_id: str | None = None,
        search: str | None = None,
        due_only: bool = False,
        sort_by: str = "learned_at",
        order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> EntryPage:
        if sort_by not in SORT_COLUMNS:
            raise InvalidEntry(f"cannot sort by {sort_by!r}")
        if order not in ("asc", "desc"):
            raise InvalidEntry(f"order must be 'asc' or 'desc', got {order!r}")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidEntry(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise InvalidEntry("offset must be >= 0")

        where = []
        params: list = []
        if difficulty is not None:
            where.append("difficulty = ?")
            params.append(parse_difficulty(difficulty).value)
        if video_id:
            where.append("video_id = ?")
            params.append(video_id)
        if search:
            where.append("(word LIKE ? ESCAPE '\\' OR definition LIKE ? ESCAPE '\\')")
            params.extend([like_pattern(search)] * 2)
        if due_only:
            where.append("substr(next_review_at, 1, 10) <= ?")
            params.append(self.clock.now().date().isoformat())
        clause = f" WHERE {' AND '.join(where)}" if where else ""

        conn = get_connection(self.db_path)
        total = conn.execute(f"SELECT COUNT(*) FROM vocabulary_entries{clause}", params).fetchone()[0]
        rows = conn.execute(
            f"SELECT * FROM vocabulary_entries{clause} ORDER BY {sort_by} {order.upper()}, id LIMIT ? OFFSET ?",
            params + [limit, offset],
        ).fetchall()
        conn.close()
        return EntryPage(
            entries=[VocabularyEntry.from_row(r) for r in rows],
            total=total,
            has_more=offset + len(rows) < total,
        )

    def get_due_entries(self, limit: int = 15) -> list:
        today = self.clock.now().date().isoformat()
        conn = get_connection(self.db_path)
        rows = conn.execute(
            """SELECT * FROM vocabulary_entries
            WHERE substr(next_review_at, 1, 10) <= ?
            ORDER BY next_review_at ASC, id
            LIMIT ?""",
            (today, limit),
        ).fetchall()
        conn.close()
        return [VocabularyEntry.from_row(r) for r in rows]

    def all_entries(self) -> list:
        conn = get_connection(self.db_path)
        rows = conn.execute("SELECT * FROM vocabulary_entries ORDER BY id").fetchall()
        conn.close()
        return [VocabularyEntry.from_row(r) for r in rows]
