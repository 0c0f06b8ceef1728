"""Learning analytics: review statistics, schedules and streaks."""
from datetime import date, datetime, timedelta, tzinfo

from vocab_tutor.clock import as_utc
from vocab_tutor.db import get_connection
from vocab_tutor.scheduler import Difficulty

DEFAULT_REVIEW_HOUR = 9
MASTERED_SUCCESS_RATE = 0.9
STRUGGLING_SUCCESS_RATE = 0.6


def is_due(next_review_at: datetime | None, now: datetime) -> bool:
    """An entry is due once its review day has arrived, whatever the hour."""
    if next_review_at is None:
        return False
    return as_utc(next_review_at).date() <= as_utc(now).date()


def get_vocabulary_stats(db_path: str, now: datetime) -> dict:
    today = as_utc(now).date().isoformat()
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT COUNT(*) as total,
            SUM(CASE WHEN review_count > 0 THEN 1 ELSE 0 END) as reviewed,
            SUM(CASE WHEN substr(next_review_at, 1, 10) <= ? THEN 1 ELSE 0 END) as due,
            SUM(CASE WHEN success_rate > ? THEN 1 ELSE 0 END) as mastered,
            AVG(success_rate) as avg_success
        FROM vocabulary_entries""",
        (today, MASTERED_SUCCESS_RATE),
    ).fetchone()
    by_difficulty = {d.value: 0 for d in Difficulty}
    for r in conn.execute("SELECT difficulty, COUNT(*) as n FROM vocabulary_entries GROUP BY difficulty"):
        by_difficulty[r["difficulty"]] = r["n"]
    conn.close()
    return {
        "total": row["total"],
        "by_difficulty": by_difficulty,
        "reviewed": row["reviewed"] or 0,
        "due_for_review": row["due"] or 0,
        "mastered": row["mastered"] or 0,
        "average_success_rate": round(row["avg_success"], 3) if row["avg_success"] else 0.0,
    }


def get_upcoming_reviews(db_path: str, now: datetime, days: int = 7) -> dict[str, list[dict]]:
    """Entries due on each of the next ``days`` days, keyed by ISO date.

    Overdue entries are listed under today.
    """
    today = as_utc(now).date()
    schedule = {(today + timedelta(days=i)).isoformat(): [] for i in range(days)}
    if not schedule:
        return schedule
    last = (today + timedelta(days=days - 1)).isoformat()
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT id, word, difficulty, next_review_at FROM vocabulary_entries
        WHERE substr(next_review_at, 1, 10) <= ?
        ORDER BY next_review_at, id""",
        (last,),
    ).fetchall()
    conn.close()
    for r in rows:
        key = max(r["next_review_at"][:10], today.isoformat())
        schedule[key].append({"id": r["id"], "word": r["word"], "difficulty": r["difficulty"]})
    return schedule


def calc_optimal_review_hour(history: list[dict], tz: tzinfo | None = None) -> int:
    """Hour of day (0-23) with the best average success rate.

    ``history`` items carry a ``started_at`` datetime or ISO string and an
    optional ``success_rate``. Naive times are read as UTC. Hours are
    counted on the wall clock of ``tz``, the machine's local zone by default.
    """
    if not history:
        return DEFAULT_REVIEW_HOUR
    hours: dict[int, list[float]] = {}
    for item in history:
        started = item["started_at"]
        if isinstance(started, str):
            started = datetime.fromisoformat(started)
        local = as_utc(started).astimezone(tz)
        hours.setdefault(local.hour, []).append(item.get("success_rate") or 0.0)
    best_hour, best_avg = DEFAULT_REVIEW_HOUR, 0.0
    for hour, rates in hours.items():
        avg = sum(rates) / len(rates)
        if avg > best_avg:
            best_hour, best_avg = hour, avg
    return best_hour


def get_optimal_review_hour(db_path: str, tz: tzinfo | None = None) -> int:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT reviewed_at, success FROM review_log").fetchall()
    conn.close()
    return calc_optimal_review_hour(
        [{"started_at": r["reviewed_at"], "success_rate": float(r["success"])} for r in rows],
        tz,
    )


def _activity_days(db_path: str) -> set[date]:
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT substr(started_at, 1, 10) as day FROM learning_sessions
        UNION SELECT substr(reviewed_at, 1, 10) FROM review_log"""
    ).fetchall()
    conn.close()
    return {date.fromisoformat(r["day"]) for r in rows}


def get_learning_streak(db_path: str, now: datetime) -> int:
    """Consecutive active days ending today, or yesterday if today is still empty."""
    days = _activity_days(db_path)
    day = as_utc(now).date()
    if day not in days:
        day -= timedelta(days=1)
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def get_overview(db_path: str, now: datetime) -> dict:
    conn = get_connection(db_path)
    sessions = conn.execute(
        """SELECT COUNT(DISTINCT video_id) as videos,
            COALESCE(SUM(notes_taken), 0) as notes,
            COALESCE(SUM(duration_seconds), 0) as seconds,
            AVG(duration_seconds) as avg_seconds,
            MAX(COALESCE(ended_at, started_at)) as last_session
        FROM learning_sessions"""
    ).fetchone()
    words = conn.execute("SELECT COUNT(*) FROM vocabulary_entries").fetchone()[0]
    last_review = conn.execute("SELECT MAX(reviewed_at) FROM review_log").fetchone()[0]
    conn.close()
    last_activity = max(filter(None, [sessions["last_session"], last_review]), default=None)
    return {
        "total_videos_watched": sessions["videos"],
        "total_words_learned": words,
        "total_notes_taken": sessions["notes"],
        "total_learning_time": sessions["seconds"],
        "learning_streak": get_learning_streak(db_path, now),
        "average_session_time": round(sessions["avg_seconds"]) if sessions["avg_seconds"] else 0,
        "last_activity_at": last_activity,
    }


def get_struggling_words(db_path: str, limit: int = 5, threshold: float = STRUGGLING_SUCCESS_RATE) -> list[dict]:
    """Reviewed words with a success rate below ``threshold`` (worst first)."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT id, word, definition, review_count, success_rate FROM vocabulary_entries
        WHERE review_count > 0 AND success_rate < ?
        ORDER BY success_rate ASC, review_count DESC
        LIMIT ?""",
        (threshold, limit),
    ).fetchall()
    conn.close()
    return [
        {
            "id": r["id"],
            "word": r["word"],
            "definition": r["definition"],
            "review_count": r["review_count"],
            "success_rate": round(r["success_rate"] * 100, 1),
        }
        for r in rows
    ]


def get_recommendations(db_path: str, now: datetime, tz: tzinfo | None = None) -> list[dict]:
    recommendations = []
    stats = get_vocabulary_stats(db_path, now)
    if stats["due_for_review"]:
        recommendations.append({
            "type": "vocabulary_review",
            "message": f"{stats['due_for_review']} word(s) are due for review",
            "action": "review",
        })
    struggling = get_struggling_words(db_path, limit=3)
    if struggling:
        words = ", ".join(w["word"] for w in struggling)
        recommendations.append({
            "type": "vocabulary_review",
            "message": f"Spend extra time on: {words}",
            "action": "review",
        })
    if stats["total"] == 0:
        recommendations.append({
            "type": "content_suggestion",
            "message": "Add your first words to start building a review schedule",
            "action": "add",
        })
    if get_learning_streak(db_path, now) == 0 and stats["reviewed"]:
        hour = get_optimal_review_hour(db_path, tz)
        recommendations.append({
            "type": "learning_pattern",
            "message": f"You recall best around {hour:02d}:00. Try reviewing then.",
        })
    return recommendations
