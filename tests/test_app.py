import pytest
from unittest.mock import patch

from vocab_tutor.app import (
    SessionExitRequested, cmd_add, cmd_list, cmd_note, cmd_notes, cmd_schedule, cmd_stats, run_review_session,
    session_int_prompt, session_prompt,
)
from vocab_tutor.notes import NoteStore


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("vocab_tutor.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("vocab_tutor.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("vocab_tutor.app.Prompt.ask", return_value="hello"):
        result = session_prompt("test prompt")
        assert result == "hello"


def test_session_int_prompt_raises_on_q():
    with patch("vocab_tutor.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_int_prompt("rate", choices=["0", "1", "2", "3", "4", "5"])


def test_session_int_prompt_returns_normal_input():
    with patch("vocab_tutor.app.Prompt.ask", return_value="3"):
        result = session_int_prompt("rate", choices=["0", "1", "2", "3", "4", "5"])
        assert result == 3


def test_session_int_prompt_retries_invalid_choice():
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["9", "x", "4"]):
        assert session_int_prompt("rate", choices=["0", "1", "2", "3", "4", "5"]) == 4


def test_run_review_session_records_ratings(store, clock):
    store.add_word("apple", "a fruit", difficulty="beginner")
    store.add_word("banana", "a yellow fruit", difficulty="beginner")
    clock.advance(days=1)
    entries = store.get_due_entries()
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["", "5", "", "1"]):
        recalled, reviewed = run_review_session(store, entries)
    assert (recalled, reviewed) == (1, 2)
    assert store.get_entry(entries[0].id).repetition_count == 1
    assert store.get_entry(entries[1].id).review_count == 1
    assert store.get_entry(entries[1].id).repetition_count == 0
    sessions = store.sessions.list_sessions()
    assert sessions[0].session_type == "vocabulary_review"
    assert not sessions[0].is_active


def test_run_review_session_exits_on_q(store, clock):
    store.add_word("apple", "a fruit", difficulty="beginner")
    store.add_word("banana", "a yellow fruit", difficulty="beginner")
    clock.advance(days=1)
    entries = store.get_due_entries()
    # Word 1: reveal, rate 4. Word 2: 'q' on reveal.
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["", "4", "q"]):
        with pytest.raises(SessionExitRequested):
            run_review_session(store, entries)
    assert store.get_entry(entries[0].id).review_count == 1
    assert store.get_entry(entries[1].id).review_count == 0
    assert store.sessions.get_active_session() is None


def test_run_review_session_nothing_due(store):
    assert run_review_session(store, []) == (0, 0)
    assert store.sessions.list_sessions() == []


def test_cmd_add(store):
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["lucid", "clear", "advanced", ""]):
        cmd_add(store)
    entry = store.get_entry(1)
    assert entry.word == "lucid"
    assert entry.difficulty == "advanced"
    assert entry.context is None


def test_reporting_commands_run(store, clock):
    store.add_word("apple", "a fruit", difficulty="beginner")
    store.record_review(1, {"success": False})
    with patch("vocab_tutor.app.Prompt.ask", return_value=""):
        cmd_list(store)
    cmd_stats(store)
    cmd_schedule(store)


def test_cmd_note_saves_note_in_active_session(store):
    session = store.sessions.start_session("video_learning", video_id="vid-1")
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["vid-1", "95", "'went' is past of 'go'", "Verbs, grammar"]):
        cmd_note(store)
    note = NoteStore(store.db_path, store.clock).get_note(1)
    assert note.video_id == "vid-1"
    assert note.timestamp == 95
    assert note.tags == ["verbs", "grammar"]
    assert store.sessions.get_session(session.id).notes_taken == 1


def test_cmd_note_rejects_bad_position(store):
    with patch("vocab_tutor.app.Prompt.ask", side_effect=["vid-1", "1:35"]):
        cmd_note(store)
    assert NoteStore(store.db_path, store.clock).list_notes().total == 0


def test_cmd_notes_lists_matches(store):
    notes = NoteStore(store.db_path, store.clock)
    notes.add_note("vid-1", "greetings", 5, tags=["intro"])
    with patch("vocab_tutor.app.Prompt.ask", return_value="greet"):
        cmd_notes(store)
    with patch("vocab_tutor.app.Prompt.ask", return_value="nothing like this"):
        cmd_notes(store)
