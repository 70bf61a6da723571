"""edge-cd CLI — run and inspect the reconciliation agent."""

import sys

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from edgecd import __version__

console = Console()


def _load_config_or_exit():
    from edgecd.config.loader import ConfigError, load_config

    try:
        return load_config()
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(1)


def _setup_logging(config, log_format: str | None, log_level: str):
    from edgecd.utils.log import configure_logging

    configure_logging(log_format or config.log_format, log_level)


@click.group()
@click.version_option(version=__version__)
def main():
    """edge-cd — declarative state reconciliation for a single node.

    Configuration comes from environment variables (CONFIG_PATH is required)
    and the spec file in the configuration repository.
    """


_log_format_option = click.option(
    "--log-format", type=click.Choice(["console", "json"]), default=None,
    help="Log output format (default: LOG_FORMAT, then spec log.format, then console)",
)
_log_level_option = click.option(
    "--log-level", default="INFO", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Minimum log level",
)


# ── Run ──────────────────────────────────────────────────────────────


@main.command()
@_log_format_option
@_log_level_option
def run(log_format: str | None, log_level: str):
    """Run the reconciliation loop until SIGINT or SIGTERM."""
    from edgecd.agent import run_agent
    from edgecd.utils.lock import LockHeldError

    config = _load_config_or_exit()
    _setup_logging(config, log_format, log_level)

    try:
        run_agent(config)
    except LockHeldError as e:
        console.print(f"[red]{e}[/]")
        sys.exit(1)
    except (OSError, yaml.YAMLError) as e:
        console.print(f"[red]Failed to start edge-cd:[/] {e}")
        sys.exit(1)


# ── Reconcile ────────────────────────────────────────────────────────


@main.command()
@_log_format_option
@_log_level_option
def reconcile(log_format: str | None, log_level: str):
    """Run a single reconciliation iteration and print what it did."""
    from edgecd.agent import build_reconciler

    config = _load_config_or_exit()
    _setup_logging(config, log_format, log_level)

    try:
        reconciler = build_reconciler(config)
    except (OSError, yaml.YAMLError) as e:
        console.print(f"[red]Failed to set up collaborators:[/] {e}")
        sys.exit(1)

    report = reconciler.reconcile_once()
    console.print(Panel(report.summary(), title="Reconciliation Result"))

    if report.errors:
        console.print("\n[red]Errors:[/]")
        for error in report.errors:
            console.print(f"  [red]x[/] {error}")
        sys.exit(1)


# ── Validate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("spec_file")
def validate(spec_file: str):
    """Validate an edge-cd spec file."""
    from edgecd.config.loader import read_spec_document
    from edgecd.config.validator import validate_spec

    console.print(f"\n[bold blue]edge-cd[/] — Validating: {spec_file}\n")

    try:
        with open(spec_file) as f:
            data = read_spec_document(f)
    except (OSError, yaml.YAMLError) as e:
        console.print(f"  [red]Failed to parse:[/] {e}")
        sys.exit(1)

    issues = validate_spec(data)
    if issues:
        console.print("[red]Validation FAILED:[/]")
        for issue in issues:
            console.print(f"  [red]x[/] {issue}")
        sys.exit(1)

    console.print("  [green]v[/] Spec is valid")


# ── Status ───────────────────────────────────────────────────────────


@main.command()
def status():
    """Show the last synchronized commit of each tracked repository."""
    from edgecd.sync.ledger import CommitLedger

    config = _load_config_or_exit()
    spec = config.spec

    table = Table(title="Commit Ledger")
    table.add_column("Repository", style="cyan")
    table.add_column("URL")
    table.add_column("Last synchronized commit", style="green")

    table.add_row(
        "edge-cd",
        spec.edge_cd.repo.url,
        CommitLedger(config.edge_cd_commit_path).read() or "[dim](none)[/]",
    )
    if spec.config.repo.is_local:
        config_commit = "[dim](local, untracked)[/]"
    else:
        config_commit = CommitLedger(config.config_commit_path).read() or "[dim](none)[/]"
    table.add_row("config", spec.config.repo.url, config_commit)

    console.print(table)


if __name__ == "__main__":
    main()
