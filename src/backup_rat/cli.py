"""Command-line interface for the backup application."""

import sys
from pathlib import Path

import click
from click.shell_completion import get_completion_class
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from . import __version__
from .config.settings import APP_NAME, BackupConfig, BackupTarget, default_config_path, load_config
from .sync.backup_manager import BackupManager
from .utils.file_utils import FileHelper
from .utils.logging import setup_logging

BANNER = r"""
    /¯¯\          /¯¯\
    \_\ \_------_/ /_/
      \_ ___  ___ _/
  /|____\|_|  |_|/____|\
 /       \      /       \
 \  ______\    /______  /
  \|      =\  /=      |/
            ¯¯
     BACKING UP DATA.
     PLEASE STAND-BY.
"""

COMPLETION_SHELLS = ['bash', 'zsh', 'fish']


class AppContext:
    """State shared by every command."""

    def __init__(self, config_path: Path, config: BackupConfig, verbose: bool):
        self.config_path = config_path
        self.config = config
        self.verbose = verbose
        self.console = Console(no_color=not config.color, highlight=False)


def _setup(ctx: click.Context) -> AppContext:
    app = ctx.obj
    setup_logging(
        log_level="DEBUG" if app.verbose else "INFO",
        log_file=Path(app.config.runtime_folder) / 'backup.log',
        log_to_console=app.verbose,
    )
    return app


@click.group()
@click.version_option(version=__version__, prog_name=APP_NAME)
@click.option('--config', '-c', 'config_path',
              type=click.Path(dir_okay=False, path_type=Path),
              default=None,
              help='Path to configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Log debug messages to the console')
@click.pass_context
def cli(ctx: click.Context, config_path: Path, verbose: bool):
    """Backup Rat

    A versatile backup program.
    """
    config_path = config_path or default_config_path()
    config = load_config(config_path)
    ctx.obj = AppContext(config_path, config, verbose or config.verbose)


def _display_results(console: Console, results, title: str):
    """Display target results in a table."""
    table = Table(title=title)
    table.add_column("Target", style="cyan")
    table.add_column("Status", style="magenta")
    table.add_column("Files Copied", justify="right", style="green")
    table.add_column("Data Copied", justify="right")
    table.add_column("Failed", justify="right", style="yellow")
    table.add_column("Duration", justify="right")

    for result in results:
        status_style = "green" if result['status'] == 'completed' else "red"
        table.add_row(
            result['target'],
            f"[{status_style}]{result['status']}[/{status_style}]",
            str(result['files_copied']),
            FileHelper.format_file_size(result['bytes_copied']),
            str(len(result['failures'])),
            f"{result['duration']:.1f}s",
        )

    console.print(table)

    for result in results:
        for error in result['errors']:
            console.print(f"Error ({result['target']}): {error}", style="red")


def _report_backup(app: AppContext, backup_manager: BackupManager, results) -> bool:
    """Report a backup run. Returns whether anything was backed up."""
    if not results:
        app.console.print("No targets!", style="yellow bold")
        return False

    _display_results(app.console, results, "Backup Results")
    summary = backup_manager.get_backup_summary(results)

    if summary['did_backup']:
        app.console.print("\nDone.", style="green bold")
    else:
        app.console.print("\nNothing was backed up.", style="red bold")
    return summary['did_backup']


@cli.command()
@click.argument('target', required=False)
@click.pass_context
def backup(ctx: click.Context, target: str):
    """Back up TARGET (all non-optional targets when omitted)."""
    app = _setup(ctx)
    if app.config.fancy_text:
        app.console.print(BANNER, markup=False)

    backup_manager = BackupManager(app.config)
    if not _report_backup(app, backup_manager, backup_manager.run_targets(target)):
        sys.exit(1)


cli.add_command(backup, name='bu')


@cli.command()
@click.argument('target')
@click.pass_context
def restore(ctx: click.Context, target: str):
    """Restore the target tagged TARGET."""
    app = _setup(ctx)
    targets = app.config.get_targets_by_tag(target)
    if not targets:
        app.console.print(f"Target '{target}' not found", style="red")
        sys.exit(1)

    backup_manager = BackupManager(app.config)
    results = [backup_manager.restore_target(t) for t in targets]
    _display_results(app.console, results, "Restore Results")

    if not backup_manager.get_backup_summary(results)['did_backup']:
        sys.exit(1)


@cli.command()
@click.pass_context
def daemon(ctx: click.Context):
    """Back up all non-optional targets every daemon_interval seconds."""
    app = _setup(ctx)
    interval = app.config.daemon_interval
    if interval <= 0:
        raise click.UsageError("daemon_interval must be set to a positive number of seconds")

    if app.config.fancy_text:
        app.console.print(BANNER, markup=False)
    backup_manager = BackupManager(app.config)
    backup_manager.run_daemon(
        interval,
        on_results=lambda results: _report_backup(app, backup_manager, results),
    )


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Show the configured targets."""
    app = ctx.obj
    config = app.config

    rprint(f"[bold]Configuration:[/bold] {app.config_path}")
    rprint(f"   • Threads: {config.threads if config.multi_threaded else 1}")
    rprint(f"   • Daemon interval: {config.daemon_interval}s")

    table = Table(title="Targets")
    table.add_column("Tag", style="cyan")
    table.add_column("Source")
    table.add_column("Destination", style="magenta")
    table.add_column("Keep", justify="right")
    table.add_column("Threads", justify="right")
    table.add_column("Backend")
    table.add_column("Optional")

    for target in config.targets:
        table.add_row(
            target.tag or "-",
            str(target.path),
            str(target.target_path),
            str(target.keep_num),
            str(target.effective_threads(config)),
            target.destination_type.value,
            "yes" if target.optional else "no",
        )

    app.console.print(table)


@cli.command()
@click.pass_context
def init(ctx: click.Context):
    """Initialize a new configuration file."""
    config_path = ctx.obj.config_path
    if config_path.exists():
        if not click.confirm(f"Configuration file {config_path} already exists. Overwrite?"):
            return

    sample_config = BackupConfig(
        targets=[
            BackupTarget(
                tag='documents',
                path=Path.home() / 'Documents',
                target_path=Path('/mnt/backup'),
                ignore_files=['Thumbs.db', r'r#\.tmp$'],
                ignore_folders=['.git'],
                keep_num=3,
            )
        ],
    )
    sample_config.to_yaml(config_path)

    click.echo(f"Configuration saved to {config_path}")
    click.echo("Edit the targets, then run 'backup-rat backup'.")


@cli.command()
@click.argument('shell', type=click.Choice(COMPLETION_SHELLS))
def completion(shell: str):
    """Generate shell completions for SHELL."""
    completion_class = get_completion_class(shell)
    complete_var = f"_{APP_NAME.replace('-', '_').upper()}_COMPLETE"
    click.echo(completion_class(cli, {}, APP_NAME, complete_var).source())


if __name__ == '__main__':
    cli()
