"""Database initialization and connection management."""
import os
import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = os.environ.get(
    "VOCAB_TUTOR_DB", str(Path.home() / ".vocab_tutor" / "vocab.db")
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS vocabulary_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    word TEXT NOT NULL,
    definition TEXT NOT NULL,
    context TEXT,
    part_of_speech TEXT,
    video_id TEXT,
    timestamp REAL,
    difficulty TEXT NOT NULL DEFAULT 'intermediate',
    interval INTEGER NOT NULL,
    repetition_count INTEGER NOT NULL DEFAULT 0,
    ease_factor REAL NOT NULL DEFAULT 2.5,
    next_review_at TEXT NOT NULL,
    reviewed_at TEXT NOT NULL,
    review_count INTEGER NOT NULL DEFAULT 0,
    success_rate REAL NOT NULL DEFAULT 0,
    learned_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_vocabulary_next_review
    ON vocabulary_entries (next_review_at);

-- One entry per word and context; a missing context counts as its own value.
CREATE UNIQUE INDEX IF NOT EXISTS idx_vocabulary_word_context
    ON vocabulary_entries (word COLLATE NOCASE, COALESCE(context, ''));

CREATE TABLE IF NOT EXISTS review_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id INTEGER NOT NULL REFERENCES vocabulary_entries(id) ON DELETE CASCADE,
    success INTEGER NOT NULL,
    quality_score INTEGER,
    response_seconds REAL,
    interval INTEGER NOT NULL,
    ease_factor REAL NOT NULL,
    reviewed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS learning_sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_type TEXT NOT NULL,
    video_id TEXT,
    started_at TEXT NOT NULL,
    ended_at TEXT,
    duration_seconds INTEGER,
    words_learned INTEGER NOT NULL DEFAULT 0,
    notes_taken INTEGER NOT NULL DEFAULT 0,
    translations_requested INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS video_notes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    video_id TEXT NOT NULL,
    content TEXT NOT NULL,
    timestamp REAL NOT NULL,
    tags TEXT NOT NULL DEFAULT '[]',
    is_private INTEGER NOT NULL DEFAULT 1,
    format TEXT NOT NULL DEFAULT 'plain',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_video_notes_video
    ON video_notes (video_id, timestamp);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def like_pattern(text: str) -> str:
    """Substring pattern for ``LIKE ? ESCAPE '\\'`` that matches ``text`` literally."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
