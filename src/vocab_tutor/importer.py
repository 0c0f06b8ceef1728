"""Bulk import of word lists from text, CSV, JSON and YAML files."""
import csv
import json
import logging
from pathlib import Path

from vocab_tutor.scheduler import SchedulerError
from vocab_tutor.vocabulary import DuplicateEntry, InvalidEntry, VocabularyStore

logger = logging.getLogger(__name__)

FIELDS = ("word", "definition", "difficulty", "context", "part_of_speech")
SEPARATORS = (" - ", ":", "\t", "=")


def _parse_line(line: str) -> dict | None:
    for sep in SEPARATORS:
        if sep in line:
            word, definition = line.split(sep, 1)
            return {"word": word.strip(), "definition": definition.strip()}
    return None


def _rows_from_records(data) -> list[dict]:
    if isinstance(data, dict):
        # {"word": "definition", ...}
        return [{"word": k, "definition": v} for k, v in data.items()]
    if not isinstance(data, list):
        raise ValueError("expected a list of words or a word -> definition mapping")
    rows = []
    for item in data:
        if isinstance(item, dict):
            rows.append({k: item.get(k) for k in FIELDS if item.get(k) is not None})
        else:
            rows.append({})
    return rows


def parse_word_file(file_path: str) -> list[dict]:
    """Read rows of word data from a file, chosen by its suffix."""
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".csv":
        with path.open(newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            return [
                {k: (row.get(k) or "").strip() for k in FIELDS if (row.get(k) or "").strip()}
                for row in reader
            ]
    elif suffix == ".json":
        return _rows_from_records(json.loads(path.read_text(encoding="utf-8")))
    elif suffix in (".yaml", ".yml"):
        import yaml
        return _rows_from_records(yaml.safe_load(path.read_text(encoding="utf-8")) or [])
    else:
        # Plain text, one "word - definition" per line
        rows = []
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            rows.append(_parse_line(line) or {"word": line})
        return rows


def import_file(store: VocabularyStore, file_path: str, difficulty: str = "intermediate") -> dict:
    """Add every word in a file. Rows without their own difficulty use ``difficulty``."""
    rows = parse_word_file(file_path)
    added = duplicates = invalid = 0
    for row in rows:
        try:
            store.add_word(
                row.get("word"),
                row.get("definition"),
                difficulty=row.get("difficulty") or difficulty,
                context=row.get("context"),
                part_of_speech=row.get("part_of_speech"),
            )
            added += 1
        except DuplicateEntry:
            duplicates += 1
        except (InvalidEntry, SchedulerError) as e:
            logger.warning("skipping %r: %s", row.get("word"), e)
            invalid += 1
    logger.info("imported %s: %d added, %d duplicate, %d invalid", file_path, added, duplicates, invalid)
    return {
        "filename": Path(file_path).name,
        "added": added,
        "duplicates": duplicates,
        "invalid": invalid,
    }
