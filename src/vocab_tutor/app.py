"""Interactive CLI application."""
import logging
import os
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from vocab_tutor.analytics import (
    get_overview, get_recommendations, get_struggling_words, get_upcoming_reviews, is_due,
    get_vocabulary_stats,
)
from vocab_tutor.db import DEFAULT_DB_PATH, init_db
from vocab_tutor.importer import import_file
from vocab_tutor.notes import NoteError, NoteStore
from vocab_tutor.scheduler import Difficulty, SchedulerError
from vocab_tutor.vocabulary import VocabularyError, VocabularyStore

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")
DIFFICULTY_COLORS = {"beginner": "green", "intermediate": "yellow", "advanced": "red"}


class SessionExitRequested(Exception):
    """Raised when the user leaves a review session early."""


def configure_logging(level: str | None = None) -> None:
    level = level or os.environ.get("VOCAB_TUTOR_LOG_LEVEL", "WARNING")
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    # Plain prompt so "q" and "menu" are not rejected as invalid choices
    while True:
        answer = session_prompt(prompt)
        if answer.strip() in choices:
            return int(answer)
        console.print(f"[red]Please enter one of: {', '.join(choices)}[/red]")


def show_welcome():
    console.print(Panel(
        "[bold]Vocabulary Tutor[/bold]\n[dim]Spaced repetition review[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("add", "Log a new word"),
        ("review", "Review due words"),
        ("list", "Browse your vocabulary"),
        ("stats", "Learning analytics"),
        ("schedule", "Upcoming reviews"),
        ("import", "Import a word list"),
        ("note", "Take a note on a video"),
        ("notes", "Browse your notes"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def run_review_session(store: VocabularyStore, entries: list) -> tuple[int, int]:
    """Drill ``entries``; returns (recalled, reviewed)."""
    if not entries:
        console.print("[yellow]Nothing due right now![/yellow]")
        return 0, 0
    session = store.sessions.start_session("vocabulary_review")
    recalled = reviewed = 0
    console.print(f"\n[bold]Review Session[/bold] - {len(entries)} words [dim](q to stop)[/dim]\n")
    try:
        for i, entry in enumerate(entries, 1):
            console.print(Panel(entry.word, title=f"Word {i}/{len(entries)}", border_style="cyan"))
            started = time.monotonic()
            session_prompt("[dim]Press Enter to reveal the definition[/dim]", default="", show_default=False)
            elapsed = time.monotonic() - started
            console.print(Panel(entry.definition, border_style="green"))
            rating = session_int_prompt(
                "Rate yourself (0=forgot, 3=hard, 4=good, 5=easy)", choices=["0", "1", "2", "3", "4", "5"],
            )
            updated = store.record_rating(entry.id, rating, response_seconds=round(elapsed, 1))
            reviewed += 1
            if rating >= 3:
                recalled += 1
            console.print(f"[dim]Next review in {updated.interval} day(s)[/dim]\n")
    finally:
        store.sessions.end_session(session.id)
    console.print(f"[bold]Recalled {recalled}/{reviewed}[/bold]\n")
    return recalled, reviewed


def cmd_add(store: VocabularyStore):
    word = Prompt.ask("Word")
    definition = Prompt.ask("Definition")
    difficulty = Prompt.ask("Difficulty", choices=[d.value for d in Difficulty], default="intermediate")
    context = Prompt.ask("Example sentence [dim](optional)[/dim]", default="", show_default=False)
    entry = store.add_word(word, definition, difficulty=difficulty, context=context or None)
    console.print(
        f"[green]Added {entry.word}[/green] - first review on {entry.next_review_at.date().isoformat()}"
    )


def cmd_review(store: VocabularyStore):
    entries = store.get_due_entries(limit=15)
    try:
        run_review_session(store, entries)
    except SessionExitRequested:
        console.print("[dim]Review stopped. Progress saved.[/dim]")


def cmd_list(store: VocabularyStore):
    search = Prompt.ask("Search [dim](blank for all)[/dim]", default="", show_default=False)
    page = store.list_entries(search=search or None, sort_by="word", order="asc", limit=50)
    now = store.clock.now()
    if not page.entries:
        console.print("[yellow]No words found.[/yellow]")
        return
    table = Table(title=f"Vocabulary ({page.total})")
    table.add_column("Word", style="cyan")
    table.add_column("Definition")
    table.add_column("Level")
    table.add_column("Next Review", justify="right")
    table.add_column("Success", justify="right")
    for e in page.entries:
        color = DIFFICULTY_COLORS.get(e.difficulty, "white")
        table.add_row(
            e.word,
            e.definition,
            f"[{color}]{e.difficulty}[/{color}]",
            "[bold]due[/bold]" if is_due(e.next_review_at, now) else e.next_review_at.date().isoformat(),
            f"{e.success_rate * 100:.0f}%" if e.review_count else "-",
        )
    console.print(table)
    if page.has_more:
        console.print(f"[dim]Showing {len(page.entries)} of {page.total}[/dim]")


def cmd_stats(store: VocabularyStore):
    now = store.clock.now()
    stats = get_vocabulary_stats(store.db_path, now)
    overview = get_overview(store.db_path, now)
    console.print(Panel(
        f"Words: [bold]{stats['total']}[/bold]  |  Due: [bold]{stats['due_for_review']}[/bold]  |  "
        f"Mastered: [bold]{stats['mastered']}[/bold]  |  Streak: [bold]{overview['learning_streak']}[/bold] day(s)",
        title="Learning Analytics", border_style="blue",
    ))
    table = Table(title="By Difficulty")
    table.add_column("Level")
    table.add_column("Words", justify="right")
    for level, count in stats["by_difficulty"].items():
        color = DIFFICULTY_COLORS.get(level, "white")
        table.add_row(f"[{color}]{level}[/{color}]", str(count))
    console.print(table)
    console.print(
        f"\n  Average success: [bold]{stats['average_success_rate'] * 100:.0f}%[/bold]  |  "
        f"Study time: [bold]{overview['total_learning_time'] // 60}[/bold] min"
    )

    struggling = get_struggling_words(store.db_path)
    if struggling:
        console.print("\n[bold]Struggling words:[/bold]")
        for w in struggling:
            console.print(f"  [red]{w['success_rate']}%[/red] {w['word']} ({w['review_count']} reviews)")
    for rec in get_recommendations(store.db_path, now):
        console.print(f"\n  [yellow]Recommendation: {rec['message']}[/yellow]")


def cmd_schedule(store: VocabularyStore):
    schedule = get_upcoming_reviews(store.db_path, store.clock.now(), days=7)
    table = Table(title="Next 7 Days")
    table.add_column("Date")
    table.add_column("Words", justify="right")
    table.add_column("")
    for day, entries in schedule.items():
        preview = ", ".join(e["word"] for e in entries[:5])
        if len(entries) > 5:
            preview += ", ..."
        table.add_row(day, str(len(entries)), f"[dim]{preview}[/dim]")
    console.print(table)


def cmd_import(store: VocabularyStore):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    difficulty = Prompt.ask("Default difficulty", choices=[d.value for d in Difficulty], default="intermediate")
    result = import_file(store, file_path, difficulty=difficulty)
    console.print(
        f"[green]Imported {result['filename']}: {result['added']} added[/green]"
        f" [dim]({result['duplicates']} duplicate, {result['invalid']} skipped)[/dim]"
    )


def cmd_note(store: VocabularyStore):
    notes = NoteStore(store.db_path, store.clock)
    video_id = Prompt.ask("Video")
    position = Prompt.ask("Position in seconds", default="0")
    try:
        timestamp = float(position)
    except ValueError:
        console.print(f"[red]Not a number of seconds: {position}[/red]")
        return
    content = Prompt.ask("Note")
    tags = Prompt.ask("Tags [dim](comma separated, optional)[/dim]", default="", show_default=False)
    note = notes.add_note(video_id, content, timestamp, tags=[t for t in tags.split(",") if t.strip()])
    label = f" [dim]({', '.join(note.tags)})[/dim]" if note.tags else ""
    console.print(f"[green]Saved note {note.id}[/green] at {note.timestamp:.0f}s{label}")


def cmd_notes(store: VocabularyStore):
    notes = NoteStore(store.db_path, store.clock)
    search = Prompt.ask("Search [dim](blank for all)[/dim]", default="", show_default=False)
    page = notes.list_notes(search=search or None, limit=50)
    if not page.notes:
        console.print("[yellow]No notes found.[/yellow]")
        return
    table = Table(title=f"Notes ({page.total})")
    table.add_column("Video", style="cyan")
    table.add_column("At", justify="right")
    table.add_column("Note")
    table.add_column("Tags", style="dim")
    for n in page.notes:
        table.add_row(n.video_id, f"{n.timestamp:.0f}s", n.content, ", ".join(n.tags))
    console.print(table)
    if page.available_tags:
        console.print(f"[dim]Tags in use: {', '.join(page.available_tags)}[/dim]")


COMMANDS = {
    "add": cmd_add,
    "review": cmd_review,
    "list": cmd_list,
    "stats": cmd_stats,
    "schedule": cmd_schedule,
    "import": cmd_import,
    "note": cmd_note,
    "notes": cmd_notes,
}


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    store = VocabularyStore(db_path)

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="review").strip().lower()
        try:
            if choice in ("quit", "exit", "q"):
                console.print("[dim]See you at your next review![/dim]")
                break
            command = COMMANDS.get(choice)
            if command is None:
                console.print("[red]Unknown command. Try again.[/red]")
                continue
            command(store)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except (VocabularyError, NoteError, SchedulerError) as e:
            console.print(f"[red]{e}[/red]")
        except Exception:
            logger.exception("command %r failed", choice)


if __name__ == "__main__":
    main()
