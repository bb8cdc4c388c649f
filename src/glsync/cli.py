"""CLI entry point for glsync."""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from glsync.config import (
    Config,
    ConfigError,
    apply_env_overrides,
    get_default_config_path,
    load_config,
    save_config,
)
from glsync.core.git import GitActions, make_task_worker
from glsync.core.gitlab import GitlabClient, RemoteTreeWalker
from glsync.core.scanner import LocalTreeScanner
from glsync.core.sync import SyncError, SyncService
from glsync.models.task import TaskStatus, filter_tasks
from glsync.render import TaskTableRenderer, build_plan_table, print_report

console = Console()


def setup_logging(verbose: bool) -> None:
    """Route log records through rich so they do not break the live table."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_config(
    config_path: Optional[str],
    url: Optional[str] = None,
    token: Optional[str] = None,
    group: Optional[str] = None,
    local: Optional[str] = None,
    workers: Optional[int] = None,
    concurrency: Optional[int] = None,
) -> Config:
    """
    Resolve the effective configuration.

    File values are overridden by GLS_* environment variables, which are
    overridden by command line flags.

    Raises:
        click.ClickException: If the configuration is incomplete.
    """
    try:
        config = apply_env_overrides(load_config(config_path))
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if url:
        config.gitlab.url = url
    if token:
        config.gitlab.token = token
    if group:
        config.path.gitlab = group
    if local:
        config.path.local = local
    if workers is not None:
        config.sync.workers = workers
    if concurrency is not None:
        config.gitlab.max_concurrency = concurrency

    try:
        config.validate_for_sync()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    return config


@click.group()
@click.version_option(package_name="glsync")
def main() -> None:
    """glsync - mirror a GitLab group tree into a local directory.

    Clones new projects, pulls existing ones and removes local projects
    that no longer exist in the group.
    """


@main.command("sync")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Path to a TOML config file.",
)
@click.option("--url", help="GitLab URL (default: https://gitlab.com).")
@click.option("--token", help="GitLab token for authentication.")
@click.option("-g", "--group", help="GitLab group to clone recursively.")
@click.option("-l", "--local", help="Local path to clone to.")
@click.option(
    "-w",
    "--workers",
    type=click.IntRange(min=1),
    help="Number of clone/pull/delete operations to run in parallel (default: 5).",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    help="Maximum concurrent GitLab API requests (default: 8).",
)
@click.option(
    "-y",
    "--yes",
    is_flag=True,
    help="Delete local projects missing remotely without asking.",
)
@click.option(
    "-n",
    "--dry-run",
    is_flag=True,
    help="Show the planned tasks without executing them.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def sync_command(
    config_path: Optional[str],
    url: Optional[str],
    token: Optional[str],
    group: Optional[str],
    local: Optional[str],
    workers: Optional[int],
    concurrency: Optional[int],
    yes: bool,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Sync the local directory with the GitLab group.

    Every project of the group and its subgroups is cloned into the same
    relative path below the local directory. Projects already present are
    pulled when they are on their default branch and skipped otherwise.

    Example:
        gls sync --group acme/platform --local ~/src/platform
        gls sync -n
        gls sync -y --workers 10
    """
    setup_logging(verbose)
    config = build_config(config_path, url, token, group, local, workers, concurrency)
    group_path = config.path.gitlab
    local_root = str(Path(config.path.local).expanduser())

    with GitlabClient(
        config.gitlab.url,
        config.gitlab.token,
        timeout=config.gitlab.timeout,
        per_page=config.gitlab.per_page,
    ) as client:
        walker = RemoteTreeWalker(
            client,
            max_concurrency=config.gitlab.max_concurrency,
            clone_protocol=config.gitlab.clone_protocol,
        )
        service = SyncService(walker, LocalTreeScanner(local_root), workers=config.sync.workers)

        try:
            with console.status(f"[bold blue]Discovering projects in '{group_path}'...") as status:
                discovery = service.discover(
                    group_path,
                    on_group_visited=lambda path: status.update(f"[bold blue]Walking {path}..."),
                )
        except SyncError as e:
            raise click.ClickException(str(e)) from e

    def confirm_delete(prompt: str) -> bool:
        return click.confirm(prompt, default=False)

    confirm = None
    if config.sync.confirm_delete and not yes and not dry_run:
        confirm = confirm_delete

    tasks = service.plan(discovery, local_root, confirm)

    if dry_run:
        console.print()
        console.print(build_plan_table(tasks))
        console.print()
        console.print("[blue]This is a dry run. No projects were changed.[/blue]")
        return

    open_tasks = filter_tasks(tasks, TaskStatus.OPEN)
    if not open_tasks:
        console.print("[green]Nothing to do.[/green]")
        return

    work = make_task_worker(GitActions())
    with TaskTableRenderer(tasks, console):
        service.execute(tasks, work)

    report = service.build_report(tasks, executed=len(open_tasks))
    print_report(report, console)

    if report.has_failures:
        raise SystemExit(1)


@main.command("init")
@click.option(
    "-p",
    "--path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the config file.",
)
@click.option("-f", "--force", is_flag=True, help="Overwrite an existing file.")
def init_command(path: Optional[Path], force: bool) -> None:
    """Write a default configuration file.

    Example:
        gls init
        gls init --path ./.glsync.toml
    """
    target = path or get_default_config_path()

    if target.exists() and not force:
        raise click.ClickException(f"Config file already exists: {target} (use --force)")

    save_config(Config(), target)
    console.print(f"[bold green]Config written:[/bold green] {target}")
    console.print("[dim]Set gitlab.token, path.gitlab and path.local before syncing.[/dim]")


if __name__ == "__main__":
    main()
