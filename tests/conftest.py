from datetime import datetime, timezone

import pytest

from vocab_tutor.clock import FixedClock
from vocab_tutor.db import init_db
from vocab_tutor.vocabulary import VocabularyStore


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_vocab.db")
    return db_path


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(tmp_db, clock):
    init_db(tmp_db)
    return VocabularyStore(tmp_db, clock)
