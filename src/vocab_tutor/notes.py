"""Timestamped notes taken while watching a video."""
import json
import logging
import math
import re

from vocab_tutor.clock import SystemClock
from vocab_tutor.db import get_connection, like_pattern
from vocab_tutor.models import NotePage, VideoNote
from vocab_tutor.sessions import SessionTracker

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 5000
MAX_VIDEO_ID_LENGTH = 100
MAX_TAGS = 10
MAX_TAG_LENGTH = 50
MAX_SEARCH_LENGTH = 100
MAX_PAGE_SIZE = 100

NOTE_FORMATS = ("plain", "markdown")
SORT_COLUMNS = ("created_at", "updated_at", "timestamp")

_UNSAFE_TAG_CHARS = re.compile(r"[<>\"']")


class NoteError(Exception):
    """Base class for note store errors."""


class InvalidNote(NoteError, ValueError):
    pass


class NoteNotFound(NoteError, LookupError):
    pass


def sanitize_tags(tags) -> list[str]:
    """Validate raw tags and return them lowercased, stripped and de-duplicated.

    Quote and angle-bracket characters are removed and tags left empty are
    dropped.
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        raise InvalidNote("tags must be a list of strings")
    tags = list(tags)
    if not all(isinstance(t, str) for t in tags):
        raise InvalidNote("tags must be a list of strings")
    if len(tags) > MAX_TAGS:
        raise InvalidNote(f"at most {MAX_TAGS} tags are allowed")
    cleaned = []
    for tag in tags:
        if len(tag) > MAX_TAG_LENGTH:
            raise InvalidNote(f"tag {tag[:20]!r}... is longer than {MAX_TAG_LENGTH} characters")
        tag = _UNSAFE_TAG_CHARS.sub("", tag.strip().lower()).strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def _check_content(content) -> str:
    if not isinstance(content, str):
        raise InvalidNote("content must be a string")
    content = content.strip()
    if not content:
        raise InvalidNote("content must not be empty")
    if len(content) > MAX_CONTENT_LENGTH:
        raise InvalidNote(f"content is longer than {MAX_CONTENT_LENGTH} characters")
    return content


def _check_format(note_format) -> str:
    if note_format not in NOTE_FORMATS:
        raise InvalidNote(f"format must be one of {', '.join(NOTE_FORMATS)}, got {note_format!r}")
    return note_format


def _check_private(is_private) -> bool:
    if not isinstance(is_private, bool):
        raise InvalidNote(f"is_private must be a boolean, got {is_private!r}")
    return is_private


class NoteStore:
    """Video notes in SQLite. New notes count toward the active learning session."""

    def __init__(self, db_path: str, clock=None):
        self.db_path = db_path
        self.clock = clock or SystemClock()
        self.sessions = SessionTracker(db_path, self.clock)

    def add_note(
        self,
        video_id: str,
        content: str,
        timestamp: float,
        tags=None,
        is_private: bool = True,
        note_format: str = "plain",
    ) -> VideoNote:
        if not isinstance(video_id, str) or not video_id.strip():
            raise InvalidNote("video_id is required")
        video_id = video_id.strip()
        if len(video_id) > MAX_VIDEO_ID_LENGTH:
            raise InvalidNote(f"video_id is longer than {MAX_VIDEO_ID_LENGTH} characters")
        content = _check_content(content)
        if (
            isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))
            or not math.isfinite(timestamp) or timestamp < 0
        ):
            raise InvalidNote(f"timestamp must be a number >= 0, got {timestamp!r}")
        tags = sanitize_tags(tags)
        is_private = _check_private(is_private)
        note_format = _check_format(note_format)

        now = self.clock.now().isoformat()
        conn = get_connection(self.db_path)
        cur = conn.execute(
            """INSERT INTO video_notes
            (video_id, content, timestamp, tags, is_private, format, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (video_id, content, timestamp, json.dumps(tags), int(is_private), note_format, now, now),
        )
        conn.commit()
        conn.close()

        active = self.sessions.get_active_session()
        if active:
            self.sessions.increment(active.id, "notes_taken")
        logger.info("added note %d on %s at %.1fs", cur.lastrowid, video_id, timestamp)
        return self.get_note(cur.lastrowid)

    def get_note(self, note_id: int) -> VideoNote:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT * FROM video_notes WHERE id = ?", (note_id,)).fetchone()
        conn.close()
        if row is None:
            raise NoteNotFound(f"note {note_id} not found")
        return VideoNote.from_row(row)

    def update_note(
        self,
        note_id: int,
        content: str | None = None,
        tags=None,
        is_private: bool | None = None,
        note_format: str | None = None,
    ) -> VideoNote:
        """Change the given fields of a note; fields left as None keep their value."""
        updates = {}
        if content is not None:
            updates["content"] = _check_content(content)
        if tags is not None:
            updates["tags"] = json.dumps(sanitize_tags(tags))
        if is_private is not None:
            updates["is_private"] = int(_check_private(is_private))
        if note_format is not None:
            updates["format"] = _check_format(note_format)
        if not updates:
            raise InvalidNote("nothing to update")
        updates["updated_at"] = self.clock.now().isoformat()

        assignments = ", ".join(f"{column} = ?" for column in updates)
        conn = get_connection(self.db_path)
        cur = conn.execute(
            f"UPDATE video_notes SET {assignments} WHERE id = ?",
            list(updates.values()) + [note_id],
        )
        conn.commit()
        conn.close()
        if cur.rowcount == 0:
            raise NoteNotFound(f"note {note_id} not found")
        logger.info("updated note %d (%s)", note_id, ", ".join(c for c in updates if c != "updated_at"))
        return self.get_note(note_id)

    def list_notes(
        self,
        video_id: str | None = None,
        tags=None,
        search: str | None = None,
        is_private: bool | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> NotePage:
        """Page through notes.

        A note matches ``tags`` when it carries any one of them. The page also
        lists every tag in use so a caller can offer them as filters.
        """
        if sort_by not in SORT_COLUMNS:
            raise InvalidNote(f"cannot sort by {sort_by!r}")
        if order not in ("asc", "desc"):
            raise InvalidNote(f"order must be 'asc' or 'desc', got {order!r}")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidNote(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise InvalidNote("offset must be >= 0")
        if search and len(search) > MAX_SEARCH_LENGTH:
            raise InvalidNote(f"search is longer than {MAX_SEARCH_LENGTH} characters")

        where = []
        params: list = []
        if video_id:
            where.append("video_id = ?")
            params.append(video_id)
        wanted = sanitize_tags(tags)
        if wanted:
            marks = ", ".join("?" for _ in wanted)
            where.append(f"EXISTS (SELECT 1 FROM json_each(video_notes.tags) WHERE value IN ({marks}))")
            params.extend(wanted)
        if search:
            where.append("content LIKE ? ESCAPE '\\'")
            params.append(like_pattern(search))
        if is_private is not None:
            where.append("is_private = ?")
            params.append(int(_check_private(is_private)))
        clause = f" WHERE {' AND '.join(where)}" if where else ""

        conn = get_connection(self.db_path)
        total = conn.execute(f"SELECT COUNT(*) FROM video_notes{clause}", params).fetchone()[0]
        rows = conn.execute(
            f"SELECT * FROM video_notes{clause} ORDER BY {sort_by} {order.upper()}, id LIMIT ? OFFSET ?",
            params + [limit, offset],
        ).fetchall()
        available = conn.execute(
            "SELECT DISTINCT value FROM video_notes, json_each(video_notes.tags) ORDER BY value"
        ).fetchall()
        conn.close()
        return NotePage(
            notes=[VideoNote.from_row(r) for r in rows],
            total=total,
            has_more=offset + len(rows) < total,
            available_tags=[r[0] for r in available],
        )
