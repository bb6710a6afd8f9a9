from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import click
from pydantic import TypeAdapter

from workspace_recall.engine.filters import filter_records, workspace_exists
from workspace_recall.errors import AggregateFailure, ParseError
from workspace_recall.log import setup_logging
from workspace_recall.managers.workspaces import delete_records, find_record, list_records, parse
from workspace_recall.models.workspace import WorkspaceRecord
from workspace_recall.settings import get_settings
from workspace_recall.store.profiles import default_profile_path, known_profile_paths
from workspace_recall.store.storage import storage_dir

_records_json = TypeAdapter(list[WorkspaceRecord])


def _format_time(last_used: int) -> str:
    if last_used <= 0:
        return "never"
    return datetime.fromtimestamp(last_used / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M:%S")


def _load(root: Path, include_external: bool | None = None) -> list[WorkspaceRecord]:
    try:
        return list_records(root, include_external=include_external)
    except AggregateFailure as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option(
    "--profile",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Editor profile root (default: from RECALL_PROFILE_PATH or the platform's VS Code profile).",
)
@click.option("--log-level", default=None, help="Log level (default: from RECALL_LOG_LEVEL or WARNING).")
@click.pass_context
def main(ctx: click.Context, profile: Path | None, log_level: str | None) -> None:
    """Workspace recall - list and prune an editor's recently-opened workspaces."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)
    ctx.obj = profile or settings.profile_path or default_profile_path()


@main.command("list")
@click.option("--format", "fmt", type=click.Choice(["text", "json"]), default="text", help="Output format.")
@click.option("--query", default=None, help="Filter, e.g. 'api :remote:box :type:workspace'.")
@click.option("--no-external", is_flag=True, default=False, help="Skip the Zed workspace history.")
@click.pass_obj
def list_command(root: Path, fmt: str, query: str | None, no_external: bool) -> None:
    """List workspaces, most recently used first."""
    records = _load(root, include_external=False if no_external else None)
    if query:
        records = filter_records(records, query)

    if fmt == "json":
        click.echo(_records_json.dump_json(records, indent=2).decode())
        return

    for record in records:
        click.echo(f"{record.id}  {_format_time(record.last_used)}  {record.type_name():<9}  {record.label()}")
        if record.label() != record.path:
            click.echo(f"    {record.path}")


@main.command("parse")
@click.argument("path")
def parse_command(path: str) -> None:
    """Show how PATH is interpreted."""
    try:
        info = parse(path)
    except ParseError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(info.model_dump_json(indent=2))


@main.command()
@click.argument("id_or_path")
@click.pass_obj
def diagnose(root: Path, id_or_path: str) -> None:
    """Show every source that mentions a workspace."""
    record = find_record(_load(root), id_or_path)
    if record is None:
        raise click.ClickException(f"No workspace matches {id_or_path}")

    click.echo(f"id:        {record.id}")
    click.echo(f"name:      {record.name or '-'}")
    click.echo(f"path:      {record.path}")
    click.echo(f"label:     {record.label()}")
    click.echo(f"type:      {record.type_name()}")
    click.echo(f"last used: {_format_time(record.last_used)}")
    click.echo(f"exists:    {'yes' if workspace_exists(record) else 'no'}")
    if record.storage_locator is not None:
        click.echo(f"storage:   {storage_dir(root, record.storage_locator)}")
    click.echo("sources:")
    for source in record.sources:
        click.echo(f"  - {source}")

    info = record.parsed_info
    if info is not None and info.is_remote:
        click.echo(f"remote:    {info.remote_authority}")
        click.echo(f"  host:    {info.remote_host or '-'}")
        click.echo(f"  user:    {info.remote_user or '-'}")
        click.echo(f"  port:    {info.remote_port if info.remote_port is not None else '-'}")
        if info.container_path:
            click.echo(f"  container path: {info.container_path}")
    if info is not None and info.tags:
        click.echo(f"tags:      {', '.join(info.tags)}")


@main.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_obj
def delete(root: Path, targets: tuple[str, ...], yes: bool) -> None:
    """Forget workspaces by id or path."""
    records = _load(root)

    selected: list[WorkspaceRecord] = []
    for target in targets:
        record = find_record(records, target)
        if record is None:
            raise click.ClickException(f"No workspace matches {target}")
        if record not in selected:
            selected.append(record)

    for record in selected:
        click.echo(f"{record.label()}  ({', '.join(str(s) for s in record.sources)})")
    if not yes:
        click.confirm(f"Delete {len(selected)} workspace(s)?", abort=True)

    if not delete_records(root, selected):
        raise click.ClickException("Some sources could not be removed, see the log for details.")
    click.echo(f"Deleted {len(selected)} workspace(s).")


@main.command()
def profiles() -> None:
    """List editor profile directories found on this machine."""
    for path in known_profile_paths():
        click.echo(str(path))


if __name__ == "__main__":
    main()
