"""Data classes for the vocabulary domain model."""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from vocab_tutor.scheduler import CorruptState, Difficulty, ReviewState


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class VocabularyEntry:
    id: int
    word: str
    definition: str
    difficulty: str
    interval: int
    repetition_count: int
    ease_factor: float
    next_review_at: datetime
    reviewed_at: datetime
    learned_at: datetime
    updated_at: datetime
    context: Optional[str] = None
    part_of_speech: Optional[str] = None
    video_id: Optional[str] = None
    timestamp: Optional[float] = None
    review_count: int = 0
    success_rate: float = 0.0
    version: int = 1

    @classmethod
    def from_row(cls, row) -> "VocabularyEntry":
        return cls(
            id=row["id"],
            word=row["word"],
            definition=row["definition"],
            difficulty=row["difficulty"],
            interval=row["interval"],
            repetition_count=row["repetition_count"],
            ease_factor=row["ease_factor"],
            next_review_at=_parse_dt(row["next_review_at"]),
            reviewed_at=_parse_dt(row["reviewed_at"]),
            learned_at=_parse_dt(row["learned_at"]),
            updated_at=_parse_dt(row["updated_at"]),
            context=row["context"],
            part_of_speech=row["part_of_speech"],
            video_id=row["video_id"],
            timestamp=row["timestamp"],
            review_count=row["review_count"],
            success_rate=row["success_rate"],
            version=row["version"],
        )

    def review_state(self) -> ReviewState:
        """Scheduling fields of this entry as a ReviewState."""
        try:
            tier = Difficulty(self.difficulty)
        except ValueError:
            raise CorruptState(f"entry {self.id} has unknown difficulty {self.difficulty!r}") from None
        return ReviewState(
            interval=self.interval,
            repetition_count=self.repetition_count,
            ease_factor=self.ease_factor,
            next_review_at=self.next_review_at,
            reviewed_at=self.reviewed_at,
            difficulty=tier,
        )


@dataclass
class EntryPage:
    entries: list = field(default_factory=list)
    total: int = 0
    has_more: bool = False


@dataclass
class LearningSession:
    id: int
    session_type: str
    started_at: datetime
    video_id: Optional[str] = None
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    words_learned: int = 0
    notes_taken: int = 0
    translations_requested: int = 0

    @property
    def is_active(self) -> bool:
        return self.ended_at is None

    @classmethod
    def from_row(cls, row) -> "LearningSession":
        return cls(
            id=row["id"],
            session_type=row["session_type"],
            started_at=_parse_dt(row["started_at"]),
            video_id=row["video_id"],
            ended_at=_parse_dt(row["ended_at"]),
            duration_seconds=row["duration_seconds"],
            words_learned=row["words_learned"],
            notes_taken=row["notes_taken"],
            translations_requested=row["translations_requested"],
        )


@dataclass
class VideoNote:
    id: int
    video_id: str
    content: str
    timestamp: float
    created_at: datetime
    updated_at: datetime
    tags: list = field(default_factory=list)
    is_private: bool = True
    format: str = "plain"

    @classmethod
    def from_row(cls, row) -> "VideoNote":
        return cls(
            id=row["id"],
            video_id=row["video_id"],
            content=row["content"],
            timestamp=row["timestamp"],
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
            tags=json.loads(row["tags"] or "[]"),
            is_private=bool(row["is_private"]),
            format=row["format"],
        )


@dataclass
class NotePage:
    notes: list = field(default_factory=list)
    total: int = 0
    has_more: bool = False
    available_tags: list = field(default_factory=list)
