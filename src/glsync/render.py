"""Live and static task tables rendered with rich."""

from typing import Optional, Sequence

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.table import Table

from glsync.models.report import SyncReport
from glsync.models.task import Task, TaskAction, TaskStatus, filter_tasks

REFRESH_PER_SECOND = 5
MAX_MESSAGE_LENGTH = 60

ACTION_STYLES = {
    TaskAction.CLONE: "[green]clone[/green]",
    TaskAction.PULL: "[blue]pull[/blue]",
    TaskAction.DELETE: "[red]delete[/red]",
}

STATUS_STYLES = {
    TaskStatus.OPEN: "[dim]open[/dim]",
    TaskStatus.PROGRESSING: "[yellow]progressing[/yellow]",
    TaskStatus.COMPLETED: "[green]completed[/green]",
}


def _shorten(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def build_progress_table(tasks: Sequence[Task]) -> Table:
    """Table of the tasks that are currently progressing."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Repo", style="bold yellow")
    table.add_column("Branch", style="green")
    table.add_column("Action")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Message")

    for task in filter_tasks(tasks, TaskStatus.PROGRESSING):
        progress = task.progress
        table.add_row(
            escape(task.path),
            escape(task.branch),
            ACTION_STYLES[task.action],
            STATUS_STYLES[task.status],
            f"{progress[0]}/{progress[1]}" if progress else "",
            escape(_shorten(task.message)),
        )

    return table


def build_plan_table(tasks: Sequence[Task], title: Optional[str] = "Planned Tasks") -> Table:
    """Table of every task with its action and initial state."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Repo", style="bold")
    table.add_column("Branch", style="green")
    table.add_column("Action")
    table.add_column("Status")
    table.add_column("Message", style="dim")

    for task in tasks:
        table.add_row(
            escape(task.path),
            escape(task.branch),
            ACTION_STYLES[task.action],
            STATUS_STYLES[task.status],
            escape(_shorten(task.message)),
        )

    return table


class TaskTableRenderer:
    """
    Redraws the progressing tasks while a sync runs.

    Task state is polled from rich's refresh thread, so the table shows
    whatever each task's fields held at that instant.
    """

    def __init__(self, tasks: Sequence[Task], console: Optional[Console] = None):
        self.tasks = tasks
        self.console = console or Console()
        self._live = Live(
            console=self.console,
            get_renderable=lambda: build_progress_table(self.tasks),
            refresh_per_second=REFRESH_PER_SECOND,
            transient=True,
        )

    def __enter__(self) -> "TaskTableRenderer":
        self._live.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._live.stop()


def print_report(report: SyncReport, console: Console) -> None:
    """Print failures and a one-line summary of a finished run."""
    if report.failures:
        console.print()
        console.print("[bold red]Errors:[/bold red]")
        for failure in report.failures:
            console.print(
                f"  [red]Failed to {failure.action.value} {escape(failure.path)}:[/red] {escape(failure.error)}",
            )

    console.print()
    summary = (
        f"[bold]Summary:[/bold] {report.total_tasks} task(s)  |  "
        f"Executed: {report.executed}  |  Skipped: {report.skipped}  |  "
        f"Failed: {report.failed}"
    )
    console.print(summary)
