"""Command-line interface for chapterly.

Built with Typer for commands and Rich for output.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .api import CatalogError, GoogleBooksClient
from .config import get_config
from .db import SqlStore, get_db
from .db.schemas import LibraryEntry, ReadingStatus
from .errors import (
    ChapterlyError,
    DuplicateEntry,
    IncompleteSession,
)
from .library import LibraryLedger
from .profile import ProfileManager, compute_stats, format_minutes
from .reading import ReadingFlow, ReadingTimer, SessionRecorder, SessionSummary
from .streaks import StreakEngine

# Create the main app
app = typer.Typer(
    name="chapterly",
    help="Track your reading habit: library, sessions and daily streaks.",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()

STATUS_STYLES = {
    ReadingStatus.READING: "yellow",
    ReadingStatus.READ: "green",
    ReadingStatus.WANT_TO_READ: "blue",
}


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


@dataclass
class Services:
    """Components wired for the configured user."""

    store: SqlStore
    profile: ProfileManager
    ledger: LibraryLedger
    recorder: SessionRecorder
    streaks: StreakEngine
    timer: ReadingTimer

    def flow(self) -> ReadingFlow:
        return ReadingFlow(self.ledger, self.recorder, self.streaks, self.profile.daily_goal)


def get_services() -> Services:
    """Build the store and components for the signed-in user."""
    config = get_config()
    if not config.is_signed_in():
        print_error("Not signed in. Set CHAPTERLY_USER_ID to your user id.")
        raise typer.Exit(1)

    store = get_db(str(config.db_path), config.user_id)
    user_id = store.current_user_id()

    ledger = LibraryLedger(store, user_id)
    ledger.refresh()
    streaks = StreakEngine(store, user_id)
    streaks.refresh()

    return Services(
        store=store,
        profile=ProfileManager(store, user_id, default_goal=config.default_daily_goal),
        ledger=ledger,
        recorder=SessionRecorder(store, user_id),
        streaks=streaks,
        timer=ReadingTimer(config.db_path.parent / "active_session.json"),
    )


def find_entry(ledger: LibraryLedger, query: str) -> LibraryEntry:
    """Resolve a title fragment or entry id to a single library entry."""
    entry = ledger.get_entry(query)
    if entry:
        return entry

    needle = query.lower()
    matches = [e for e in ledger.entries if needle in e.title.lower()]
    if not matches:
        print_error(f"No book in your library matches: {query}")
        raise typer.Exit(1)
    if len(matches) == 1:
        return matches[0]

    console.print("\n[bold]Multiple books found:[/bold]")
    for i, e in enumerate(matches, 1):
        console.print(f"  {i}. {e.title} by {e.author}")
    choice = typer.prompt("Select book number", type=int, default=1)
    if not 1 <= choice <= len(matches):
        print_error("Invalid selection")
        raise typer.Exit(1)
    return matches[choice - 1]


def format_library_table(entries: list[LibraryEntry], title: str = "Library") -> Table:
    """Create a rich table for displaying library entries."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Status")
    table.add_column("Page", justify="right")
    table.add_column("Progress", justify="right")

    for entry in entries:
        style = STATUS_STYLES.get(entry.status, "white")
        table.add_row(
            entry.title,
            entry.author,
            f"[{style}]{entry.status.value}[/{style}]",
            f"{entry.current_page}/{entry.total_pages}",
            f"{entry.progress}%",
        )

    return table


def show_summary(summary: SessionSummary, daily_goal: int) -> None:
    """Print what a saved session changed."""
    lines = [
        f"[bold]{summary.book_title}[/bold]",
        f"Read for {summary.minutes} minutes, pages {summary.starting_page} -> {summary.ending_page}",
        f"Progress: {summary.progress}% ({summary.status.value})",
        f"Today: {summary.today_minutes} / {daily_goal} minutes",
        f"Current streak: {summary.current_streak} day(s)",
    ]
    if summary.finished_book:
        lines.append("[bold green]Finished the book![/bold green]")
    console.print(Panel("\n".join(lines), title="Session Saved", border_style="green"))


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Track your reading habit: library, sessions and daily streaks."""
    level = "DEBUG" if verbose else get_config().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def version() -> None:
    """Show the chapterly version."""
    console.print(f"chapterly {__version__}")


# ============================================================================
# Catalog and Library Commands
# ============================================================================


@app.command()
def search(
    query: str = typer.Argument(..., help="Title, author or ISBN to search for"),
    limit: int = typer.Option(10, "--limit", "-l", help="Max search results"),
) -> None:
    """Search the book catalog."""
    config = get_config()
    client = GoogleBooksClient(
        timeout=config.catalog_timeout,
        max_results=config.catalog_max_results,
        api_key=config.google_books_api_key,
    )

    try:
        results = client.search(query, limit=limit)
    except CatalogError as e:
        print_error(f"Catalog error: {e}")
        raise typer.Exit(1)

    if not results:
        print_warning(f"No books found for: {query}")
        return

    table = Table(title=f"Results for '{query}'", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Pages", justify="right")
    table.add_column("Published")
    for i, book in enumerate(results, 1):
        table.add_row(str(i), book.title, book.author, str(book.total_pages), book.published_date or "-")
    console.print(table)


@app.command()
def add(
    query: str = typer.Argument(..., help="Book title to search for"),
    status: ReadingStatus = typer.Option(
        ReadingStatus.WANT_TO_READ, "--status", "-s", help="Initial status"
    ),
    pick: Optional[int] = typer.Option(None, "--pick", "-p", help="Result number to add"),
    limit: int = typer.Option(5, "--limit", "-l", help="Max search results"),
) -> None:
    """Search the catalog and add a book to your library."""
    services = get_services()
    config = get_config()
    client = GoogleBooksClient(
        timeout=config.catalog_timeout,
        max_results=config.catalog_max_results,
        api_key=config.google_books_api_key,
    )

    try:
        results = client.search(query, limit=limit)
    except CatalogError as e:
        print_error(f"Catalog error: {e}")
        raise typer.Exit(1)

    if not results:
        print_error(f"No books found for: {query}")
        raise typer.Exit(1)

    if pick is None:
        if len(results) == 1:
            pick = 1
        else:
            console.print("\n[bold]Search results:[/bold]")
            for i, book in enumerate(results, 1):
                console.print(f"  {i}. {book.title} by {book.author} ({book.total_pages} pages)")
            pick = typer.prompt("Select book number", type=int, default=1)

    if not 1 <= pick <= len(results):
        print_error("Invalid selection")
        raise typer.Exit(1)

    try:
        entry = services.ledger.add_book(results[pick - 1], status)
    except DuplicateEntry as e:
        print_warning(e.message)
        raise typer.Exit(1)
    except ChapterlyError as e:
        print_error(f"Failed to add book to library: {e.message}")
        raise typer.Exit(1)

    console.print(f"[green]Added:[/green] {entry.title} by {entry.author} ({entry.status.value})")


@app.command("list")
def list_books(
    status: Optional[ReadingStatus] = typer.Option(None, "--status", "-s", help="Filter by status"),
) -> None:
    """List the books in your library."""
    services = get_services()
    if status:
        entries = services.ledger.list_by_status(status)
        title = f"Library: {status.value}"
    else:
        entries = services.ledger.entries
        title = "Library"

    if not entries:
        print_info("No books found.")
        return

    console.print(format_library_table(entries, title))


@app.command()
def progress(
    book: str = typer.Argument(..., help="Title fragment or entry id"),
    page: int = typer.Argument(..., help="Page you are on"),
) -> None:
    """Update the page you are on."""
    services = get_services()
    entry = find_entry(services.ledger, book)

    try:
        entry = services.ledger.update_progress(entry.id, page)
    except ChapterlyError as e:
        print_error(e.message)
        raise typer.Exit(1)

    console.print(
        f"[green]{entry.title}:[/green] page {entry.current_page}/{entry.total_pages} "
        f"({entry.progress}%, {entry.status.value})"
    )
    if entry.is_finished:
        print_success(f"Finished {entry.title}!")
    else:
        print_info(f"{entry.pages_remaining} pages to go")


@app.command()
def status(
    book: str = typer.Argument(..., help="Title fragment or entry id"),
    new_status: ReadingStatus = typer.Argument(..., help="New reading status"),
) -> None:
    """Change a book's reading status."""
    services = get_services()
    entry = find_entry(services.ledger, book)

    try:
        entry = services.ledger.update_status(entry.id, new_status)
    except ChapterlyError as e:
        print_error(f"Failed to update book status: {e.message}")
        raise typer.Exit(1)

    print_success(f"{entry.title} is now {entry.status.value}")


@app.command()
def remove(
    book: str = typer.Argument(..., help="Title fragment or entry id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Remove a book from your library. Its reading sessions are kept."""
    services = get_services()
    entry = find_entry(services.ledger, book)

    if not yes and not typer.confirm(f"Remove '{entry.title}' from your library?"):
        print_info("Cancelled.")
        return

    try:
        services.ledger.remove_book(entry.id)
    except ChapterlyError as e:
        print_error(f"Failed to remove book: {e.message}")
        raise typer.Exit(1)

    print_success(f"Removed {entry.title}")


# ============================================================================
# Reading Session Commands
# ============================================================================


def _save_session(
    services: Services,
    save: Callable[[], SessionSummary],
    clear_timer: Optional[Callable[[], None]] = None,
) -> None:
    """Run a session save and report the outcome.

    ``clear_timer`` runs once anything was written, even if the save was
    only partial; when nothing was written the timer keeps running.
    """
    try:
        summary = save()
    except IncompleteSession as e:
        if clear_timer:
            clear_timer()
        print_error(f"{e.message}. Saved so far: {', '.join(e.completed) or 'nothing'}")
        raise typer.Exit(1)
    except ChapterlyError as e:
        print_error(e.message)
        if clear_timer:
            print_info("Nothing was saved; the reading session is still running.")
        raise typer.Exit(1)
    if clear_timer:
        clear_timer()
    show_summary(summary, services.profile.daily_goal)


@app.command()
def read(
    book: Optional[str] = typer.Argument(None, help="Book to start reading"),
    start: bool = typer.Option(False, "--start", "-s", help="Start a reading session"),
    stop: bool = typer.Option(False, "--stop", "-x", help="Stop the current session"),
    cancel: bool = typer.Option(False, "--cancel", "-c", help="Discard the current session"),
    page: Optional[int] = typer.Option(None, "--page", "-p", help="Page reached when stopping"),
) -> None:
    """Time a reading session.

    Examples:
      chapterly read "Dune" --start       # Start timing from your current page
      chapterly read --stop --page 75     # Stop at page 75 and save
      chapterly read                      # Show the running session
    """
    services = get_services()
    timer = services.timer

    if cancel:
        if timer.cancel():
            print_success("Reading session cancelled.")
        else:
            print_warning("No active session to cancel.")
        return

    if stop:
        active = timer.active
        if not active:
            print_warning("No active session to stop.")
            return
        if page is None:
            print_error("Use --page to say which page you reached.")
            raise typer.Exit(1)
        # The timer is only cleared once the session is saved
        finished = timer.snapshot(page)
        _save_session(
            services, lambda: services.flow().complete(finished), clear_timer=timer.clear
        )
        return

    if start:
        if not book:
            print_error("Name the book to start reading.")
            raise typer.Exit(1)
        entry = find_entry(services.ledger, book)
        try:
            active = timer.start(entry)
        except ValueError as e:
            print_error(str(e))
            raise typer.Exit(1)
        console.print(
            f"[green]Started reading[/green] {active.book_title} from page {active.starting_page}"
        )
        return

    active = timer.active
    if not active:
        print_info("No active reading session.")
        print_info("Use 'chapterly read \"Book Title\" --start' to begin.")
        return

    table = Table(title="Active Reading Session", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Book", active.book_title)
    table.add_row("Started", active.start_time.strftime("%H:%M"))
    table.add_row("Duration", f"{timer.elapsed_minutes()} minutes")
    table.add_row("Start Page", str(active.starting_page))
    console.print(table)


@app.command("log-session")
def log_session(
    book: str = typer.Argument(..., help="Title fragment or entry id"),
    minutes: int = typer.Option(..., "--minutes", "-m", min=0, help="Minutes read"),
    end_page: int = typer.Option(..., "--end-page", "-e", help="Page reached"),
    start_page: Optional[int] = typer.Option(
        None, "--start-page", "-s", help="Page started from (default: current page)"
    ),
) -> None:
    """Log a session that just ended without using the timer."""
    services = get_services()
    entry = find_entry(services.ledger, book)
    end_time = services.recorder.clock()
    start_time = end_time - timedelta(minutes=minutes)

    _save_session(
        services,
        lambda: services.flow().complete_session(
            entry.id, start_time, end_time, end_page, starting_page=start_page
        ),
    )


# ============================================================================
# Streak and Goal Commands
# ============================================================================


@app.command()
def streak() -> None:
    """Show your current streak and today's progress."""
    services = get_services()
    goal = services.profile.daily_goal
    today = services.recorder.minutes_today()
    current = services.streaks.current_streak()

    remaining = goal - today
    goal_line = (
        f"{remaining} minutes remaining" if remaining > 0 else "[green]Daily goal reached![/green]"
    )
    console.print(Panel(
        f"[bold]{current}[/bold] day streak\n"
        f"Today: {today} / {goal} minutes\n"
        f"{goal_line}",
        title="Reading Streak",
        border_style="magenta",
    ))


@app.command()
def week() -> None:
    """Show the last 7 days."""
    services = get_services()

    table = Table(title="This Week", show_header=True, header_style="bold magenta")
    table.add_column("Day", justify="center")
    table.add_column("Date")
    table.add_column("Minutes", justify="right")
    table.add_column("Goal", justify="center")
    for day in services.streaks.weekly_view():
        table.add_row(
            day.day_label,
            day.date.isoformat(),
            str(day.minutes_read),
            "[green]✓[/green]" if day.goal_reached else "[dim]·[/dim]",
        )
    console.print(table)
    console.print(
        f"Total: {services.streaks.weekly_minutes()} minutes "
        f"(sessions in the last 7 days: {services.recorder.minutes_this_week()} minutes)"
    )


@app.command()
def goal(
    minutes: Optional[int] = typer.Argument(None, help="New daily goal in minutes"),
) -> None:
    """Show or change your daily reading goal."""
    services = get_services()

    if minutes is None:
        console.print(f"Daily goal: {services.profile.daily_goal} minutes")
        return

    try:
        profile = services.profile.set_daily_goal(minutes)
    except ChapterlyError as e:
        print_error(e.message)
        raise typer.Exit(1)

    print_success(f"Daily goal set to {profile.daily_goal_minutes} minutes")


@app.command()
def stats() -> None:
    """Show your reading statistics."""
    services = get_services()
    result = compute_stats(
        services.ledger.entries,
        current_streak=services.streaks.current_streak(),
        weekly_minutes=services.streaks.weekly_minutes(),
        daily_goal=services.profile.daily_goal,
    )

    table = Table(title="Reading Statistics", show_header=False)
    table.add_column("Stat", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Books Read", str(result.books_read))
    table.add_row("Level", str(result.level))
    table.add_row("Current Streak", f"{result.current_streak} days")
    table.add_row("This Week", format_minutes(result.weekly_minutes))
    table.add_row("Daily Average", f"{result.average_daily_minutes} min")
    console.print(table)

    console.print(
        f"Weekly goal: {result.weekly_minutes} / {result.weekly_goal} minutes "
        f"({result.weekly_percent}%)"
    )
    if result.weekly_remaining:
        print_info(f"{result.weekly_remaining} minutes to reach weekly goal")
    else:
        print_success("Weekly goal reached!")
