"""
JobTrack CLI

Interactive command-line job table on top of the JobTrack API.
Run with: python -m jobtrack.examples.cli_demo

Start the API first:
    uvicorn jobtrack.api.routes:app

Commands:
    register <email> <password> [name]
    login <email> <password>
    logout
    list                          show the filtered table
    filter <field> <value>        e.g. filter company acme, filter status active
    clear                         remove all filters
    options <field>               distinct values of a field
    draft <field> <value>         fill the add-new row
    add                           submit the add-new row
    edit <n> <field> <value>      change one cell of row n
    delete <n>                    ask to delete row n (confirm with y)
    quit
"""

import logging
import shlex
from typing import Callable, List

from jobtrack.client.api_client import JobTrackerClient
from jobtrack.client.board import JobBoard
from jobtrack.core.errors import JobTrackError, ValidationError
from jobtrack.core.schemas import FIELD_LABELS, JOB_FIELDS, JobRecord, status_label
from jobtrack.services.filters import unique_options

COLUMNS = [
    ("position", 24), ("company", 18), ("phase", 12), ("cl", 5),
    ("status", 9), ("note", 20), ("appliedDate", 12),
]


def format_cell(job: JobRecord, name: str) -> str:
    """Display form of one cell. Booleans convert to labels only here."""
    value = job.get(name)
    if name == "status":
        return status_label(value)
    if name == "cl":
        return "yes" if value else "no"
    return str(value or "")


def render_table(board: JobBoard) -> str:
    """Render the filtered view as a fixed-width table."""
    header = "  # " + " ".join(FIELD_LABELS[name].ljust(width) for name, width in COLUMNS)
    lines = [header, "-" * len(header)]

    jobs = board.filtered_jobs()
    if not jobs:
        lines.append("  No jobs found. Add a new job with 'draft' and 'add'!")

    for index, job in enumerate(jobs, start=1):
        cells = []
        for name, width in COLUMNS:
            text = format_cell(job, name)
            if board.state.is_unsaved(job.id, name):
                text = "*" + text
            cells.append(text[:width].ljust(width))
        lines.append(f"{index:>3} " + " ".join(cells))

    active = board.state.filters.active()
    if active:
        lines.append("Filters: " + ", ".join(f"{k}={v}" for k, v in active.items()))

    draft = board.state.draft
    if not draft.is_empty() or board.state.draft_errors:
        lines.append("New: " + ", ".join(
            f"{name}={draft.model_dump(by_alias=True)[name]}" for name in JOB_FIELDS
        ))
    for name, message in board.state.draft_errors.items():
        lines.append(f"  ! {message}")

    return "\n".join(lines)


def _row(board: JobBoard, number: str) -> JobRecord:
    jobs = board.filtered_jobs()
    index = int(number) - 1
    if index < 0 or index >= len(jobs):
        raise IndexError(f"No row {number}")
    return jobs[index]


def handle_command(board: JobBoard, line: str,
                   confirm: Callable[[str], bool] = None,
                   out: Callable[[str], None] = print) -> bool:
    """
    Execute one command line.

    Returns:
        False when the user asked to quit
    """
    confirm = confirm or (lambda prompt: input(prompt).strip().lower() in ("y", "yes"))

    args: List[str] = shlex.split(line)
    if not args:
        return True

    command, rest = args[0].lower(), args[1:]

    try:
        if command in ("quit", "exit", "q"):
            return False

        elif command == "register":
            user = board.client.register(rest[0], rest[1], " ".join(rest[2:]))
            out(f"Registered {user.email}")
            board.load()

        elif command == "login":
            user = board.client.login(rest[0], rest[1])
            out(f"Welcome back, {user.name or user.email}")
            board.load()
            out(render_table(board))

        elif command == "logout":
            board.logout()
            out("Logged out.")

        elif command == "list":
            out(render_table(board))

        elif command == "filter":
            board.set_filter(rest[0], " ".join(rest[1:]))
            out(render_table(board))

        elif command == "clear":
            board.clear_filters()
            out(render_table(board))

        elif command == "options":
            out(", ".join(unique_options(board.jobs, rest[0])) or "(none)")

        elif command == "draft":
            board.change_draft(rest[0], " ".join(rest[1:]))

        elif command == "add":
            record = board.submit_draft()
            out(f"Added {record.position} @ {record.company}")

        elif command == "edit":
            job = _row(board, rest[0])
            board.edit_field(job.id, rest[1], " ".join(rest[2:]))
            out(render_table(board))

        elif command == "delete":
            job = board.request_delete(_row(board, rest[0]).id)
            if confirm(f"Delete {job.position} at {job.company}? [y/N] "):
                board.confirm_delete()
                out("Deleted.")
            else:
                board.cancel_delete()
                out("Cancelled.")

        else:
            out(f"Unknown command: {command}")

    except ValidationError as e:
        for message in (e.errors or {"": e.message}).values():
            out(f"! {message}")
    except JobTrackError as e:
        out(f"Error: {e.message}")
        if board.state.session_expired:
            out("Session expired. Please log in again.")
    except (IndexError, KeyError, ValueError) as e:
        out(f"Invalid command: {e}")

    return True


def run_interactive_demo():
    """Run the interactive job table."""

    print("\n" + "=" * 60)
    print("           JOBTRACK - Job Applications")
    print("=" * 60)
    print(__doc__.split("Commands:")[1])

    board = JobBoard(JobTrackerClient())

    while True:
        try:
            if not handle_command(board, input("\n> ")):
                print("\nGoodbye!")
                break
        except KeyboardInterrupt:
            print("\n\nInterrupted. Goodbye!")
            break


def main():
    """Main entry point."""
    logging.basicConfig(
        level=logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    run_interactive_demo()


if __name__ == "__main__":
    main()
