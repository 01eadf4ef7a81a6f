"""CLI entrypoint for shellward's developer tooling."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from pathlib import Path

import click

from shellward.config.models import AppSettings
from shellward.config.store import SettingsStore
from shellward.paths import settings_path
from shellward.persistence.history import ExecutionHistory
from shellward.preview.advisor import get_confirmation_prompt, get_safer_alternatives, should_preview
from shellward.preview.models import ClassifiedPreview
from shellward.preview.risk import RiskClassifier
from shellward.preview.service import CommandPreviewService
from shellward.runtime_logging import configure_runtime_logging
from shellward.version import __version__


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--log-level", default=None, help="Runtime log level (off, error, warning, info, debug)")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """shellward: preview, classify and safely queue shell commands."""
    settings = SettingsStore().load()
    configure_runtime_logging(level=log_level or settings.logging.level, log_file=settings.logging.file)
    ctx.obj = settings


@main.command()
@click.argument("command")
@click.option("--cwd", default=".", show_default=True, help="Working directory the command would run in")
@click.option("--json", "as_json", is_flag=True, help="Print the preview payload as JSON")
@click.option("--local", is_flag=True, help="Skip the remote preview backend")
@click.option(
    "--fail-on",
    type=click.Choice(["moderate", "dangerous"]),
    default=None,
    help="Exit with status 1 when the risk level reaches this tier",
)
@click.pass_obj
def preview(
    settings: AppSettings,
    command: str,
    cwd: str,
    as_json: bool,
    local: bool,
    fail_on: str | None,
) -> None:
    """Predict the side effects and risk level of COMMAND."""
    working_dir = str(Path(cwd).expanduser().resolve())
    result = asyncio.run(_preview(settings, command, working_dir, local))

    if as_json:
        payload = result.to_payload()
        payload["shouldPreview"] = should_preview(command)
        payload["saferAlternatives"] = get_safer_alternatives(command)
        click.echo(json.dumps(payload, indent=2))
    else:
        prompt = get_confirmation_prompt(result)
        if prompt is None:
            click.echo("Risk Level: SAFE")
            click.echo("No confirmation needed.")
        else:
            click.echo(prompt)
        alternatives = get_safer_alternatives(command)
        if alternatives:
            click.echo("\nSafer alternatives:")
            for alternative in alternatives:
                click.echo(f"  - {alternative}")

    if fail_on is not None and result.is_at_least(fail_on):  # type: ignore[arg-type]
        raise click.exceptions.Exit(1)


async def _preview(settings: AppSettings, command: str, cwd: str, local: bool) -> ClassifiedPreview:
    if local:
        service = CommandPreviewService(classifier=RiskClassifier.from_settings(settings.risk))
    else:
        service = CommandPreviewService.from_settings(settings)
    try:
        return await service.preview_command(command, cwd)
    finally:
        await service.aclose()


@main.command()
@click.argument("command")
def alternatives(command: str) -> None:
    """List safer alternatives for COMMAND, if any are known."""
    suggestions = get_safer_alternatives(command)
    if not suggestions:
        click.echo("No safer alternatives known.")
        return
    for suggestion in suggestions:
        click.echo(suggestion)


@main.command("settings-path")
def settings_path_command() -> None:
    """Print settings file path."""
    click.echo(str(settings_path()))


@main.command()
def about() -> None:
    """Show version and project summary."""
    payload = {
        "name": "shellward",
        "version": __version__,
        "description": "Command risk analysis and safe execution pipeline",
    }
    click.echo(json.dumps(payload, indent=2))


@main.command()
@click.option("--connection", "connection_id", default="default", show_default=True)
@click.option("--path", "path", default=None, help="Read this JSONL file instead of the connection's history")
@click.option("--limit", type=int, default=100, show_default=True)
def history(connection_id: str, path: str | None, limit: int) -> None:
    """Print recorded executions for a connection, oldest first."""
    if path is not None:
        file_path = Path(path).expanduser().resolve()
        if not file_path.exists():
            raise click.ClickException(f"File not found: {file_path}")
        store = ExecutionHistory(file_path)
    else:
        store = ExecutionHistory.for_connection(connection_id)

    for record in store.read(limit=limit):
        click.echo(json.dumps(asdict(record), sort_keys=True))


if __name__ == "__main__":
    main()
