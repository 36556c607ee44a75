"""
Command-line interface for the Project Tracker.

This module provides CLI commands for managing projects and entries, viewing
a filtered and sorted project table, and exporting that view.
"""

import click
import json
import sys
from typing import Dict, Optional, Tuple

from .config import SystemConfig, load_config_from_file, set_config
from .database.connection import DatabaseManager
from .database.storage import ProjectStore
from .entry_manager import EntryManager
from .errors import ProjectTrackerError, ValidationError
from .logging_config import setup_logging
from .models.entities import Project, is_valid_project_id
from .models.schema import FieldSchema, FieldType, load_schema
from .models.values import format_number
from .query.criteria import QuerySession, SortDirection, collect_filters
from .query.engine import QueryEngine
from .query.export import DataExporter, ExportFormat, ExportOptions, write_export

CELL_WIDTH = 30


def _project_id(ctx, param, value):
    """Click callback rejecting anything but a 7-digit project id."""
    if value is not None and not is_valid_project_id(value):
        raise click.BadParameter("Project ID must be a 7-digit number")
    return value


def _assignments(ctx, param, values) -> Dict[str, str]:
    """Click callback turning repeated ``key=value`` options into a dict."""
    parsed = {}
    for item in values or ():
        key, sep, value = item.partition('=')
        if not sep or not key.strip():
            raise click.BadParameter(f"Expected FIELD=VALUE, got '{item}'")
        parsed[key.strip()] = value
    return parsed


def _services(ctx) -> Tuple[ProjectStore, FieldSchema]:
    """Store and schema built once per invocation from the loaded config."""
    if 'store' not in ctx.obj:
        config = ctx.obj['config']
        ctx.obj['store'] = ProjectStore(
            manager=DatabaseManager(config.database),
            suggestion_limit=config.projects.suggestion_limit,
            suggestion_min_length=config.projects.suggestion_min_length
        )
        ctx.obj['schema'] = load_schema(config.schema.schema_file)
    return ctx.obj['store'], ctx.obj['schema']


def _cell(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > CELL_WIDTH:
        return text[:CELL_WIDTH - 3] + "..."
    return text


FILTER_HINTS = {
    FieldType.TEXT: "use --filter",
    FieldType.DROPDOWN: "use --filter",
    FieldType.NUMBER: "use --min/--max",
    FieldType.DATE: "use --from/--to",
    FieldType.TEXTAREA: "it cannot be filtered",
}


def _check_fields(schema: FieldSchema, option: str, mapping: Dict[str, str],
                  allowed: Tuple[FieldType, ...]) -> None:
    """Reject unknown fields and fields whose type the option does not filter."""
    unknown = [key for key in mapping if key not in schema]
    if unknown:
        raise click.BadParameter(f"Unknown field(s): {', '.join(unknown)}")

    for key in mapping:
        field_type = schema.get(key).type
        if field_type not in allowed:
            raise click.BadParameter(
                f"{key} is a {field_type.value} field; {FILTER_HINTS[field_type]}",
                param_hint=option
            )


def _build_session(schema: FieldSchema, project_id: str, filters, minimums, maximums,
                   starts, ends, sort_field: Optional[str], descending: bool) -> QuerySession:
    """Translate view options into a query session."""
    _check_fields(schema, "--filter", filters, (FieldType.TEXT, FieldType.DROPDOWN))
    _check_fields(schema, "--min", minimums, (FieldType.NUMBER,))
    _check_fields(schema, "--max", maximums, (FieldType.NUMBER,))
    _check_fields(schema, "--from", starts, (FieldType.DATE,))
    _check_fields(schema, "--to", ends, (FieldType.DATE,))

    form_values = dict(filters)
    form_values.update({f"{key}-min": value for key, value in minimums.items()})
    form_values.update({f"{key}-max": value for key, value in maximums.items()})
    form_values.update({f"{key}-from": value for key, value in starts.items()})
    form_values.update({f"{key}-to": value for key, value in ends.items()})

    session = QuerySession(project_id=project_id)
    session.apply_filters(collect_filters(schema, form_values))

    if sort_field:
        if sort_field not in schema and sort_field not in ('id', 'timestamp'):
            raise click.BadParameter(f"Unknown sort field: {sort_field}")
        session.set_sort(sort_field, SortDirection.DESCENDING if descending else SortDirection.ASCENDING)

    return session


def view_options(command):
    """Filter and sort options shared by ``show`` and ``export``."""
    options = [
        click.option('--filter', 'filters', multiple=True, callback=_assignments,
                     help='Text/dropdown filter FIELD=VALUE (substring, case-insensitive)'),
        click.option('--min', 'minimums', multiple=True, callback=_assignments,
                     help='Number lower bound FIELD=N'),
        click.option('--max', 'maximums', multiple=True, callback=_assignments,
                     help='Number upper bound FIELD=N'),
        click.option('--from', 'starts', multiple=True, callback=_assignments,
                     help='Date lower bound FIELD=YYYY-MM-DD'),
        click.option('--to', 'ends', multiple=True, callback=_assignments,
                     help='Date upper bound FIELD=YYYY-MM-DD'),
        click.option('--sort', 'sort_field', help='Field to sort on'),
        click.option('--desc', is_flag=True, help='Sort descending'),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def _processed_view(ctx, project_id, filters, minimums, maximums, starts, ends, sort_field, desc):
    store, schema = _services(ctx)
    project = store.load(project_id)
    if project is None:
        click.echo(f"Project {project_id} not found.", err=True)
        sys.exit(1)

    try:
        session = _build_session(schema, project_id, filters, minimums, maximums,
                                 starts, ends, sort_field, desc)
    except ValidationError as e:
        raise click.BadParameter(e.message)

    return QueryEngine(schema).query_project(project, session), schema


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Project Tracker - manage project entries, then filter, sort and export them."""
    ctx.ensure_object(dict)

    if config:
        system_config = load_config_from_file(config)
    else:
        system_config = SystemConfig.from_env()
        set_config(system_config)

    if verbose:
        system_config.logging.level = "DEBUG"

    setup_logging(system_config.logging)

    ctx.obj['config'] = system_config


@cli.command()
@click.pass_context
def fields(ctx):
    """List the configured entry fields."""
    _, schema = _services(ctx)

    for definition in schema:
        flags = " (required)" if definition.required else ""
        click.echo(f"{definition.id:<15} {definition.type.value:<9} {definition.label}{flags}")
        if definition.type == FieldType.DROPDOWN:
            click.echo(f"{'':<25} options: {', '.join(option.value for option in definition.options)}")
        elif definition.type == FieldType.NUMBER and (definition.min is not None or definition.max is not None):
            low = format_number(definition.min) if definition.min is not None else ''
            high = format_number(definition.max) if definition.max is not None else ''
            click.echo(f"{'':<25} range: {low}..{high}")


@cli.command()
@click.option('--search', '-s', help='Suggest project ids containing this text')
@click.pass_context
def projects(ctx, search):
    """List projects, or suggest matching ids."""
    store, _ = _services(ctx)

    if search is not None:
        project_ids = store.suggest(search)
        if not project_ids:
            click.echo("No matching projects.")
            return
    else:
        project_ids = store.list_project_ids()
        if not project_ids:
            click.echo("No projects yet.")
            return

    for project_id in project_ids:
        click.echo(project_id)


@cli.command()
@click.argument('project_id', callback=_project_id)
@click.pass_context
def create(ctx, project_id):
    """Create an empty project."""
    store, _ = _services(ctx)

    if store.exists(project_id):
        click.echo(f"Project {project_id} already exists.", err=True)
        sys.exit(1)

    if not store.save(Project(id=project_id)):
        click.echo(f"Failed to create project {project_id}.", err=True)
        sys.exit(1)

    click.echo(f"Created project {project_id}")


@cli.command('delete-project')
@click.argument('project_id', callback=_project_id)
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def delete_project(ctx, project_id, yes):
    """Delete a project and all of its entries."""
    store, _ = _services(ctx)

    if not store.exists(project_id):
        click.echo(f"Project {project_id} not found.", err=True)
        sys.exit(1)

    if not yes:
        click.confirm(f"Delete project {project_id} and all its entries?", abort=True)

    if not store.delete(project_id):
        click.echo(f"Failed to delete project {project_id}.", err=True)
        sys.exit(1)

    click.echo(f"Deleted project {project_id}")


@cli.command()
@click.argument('project_id', callback=_project_id)
@view_options
@click.pass_context
def show(ctx, project_id, filters, minimums, maximums, starts, ends, sort_field, desc):
    """Show a project's entries as a table."""
    result, schema = _processed_view(ctx, project_id, filters, minimums, maximums,
                                     starts, ends, sort_field, desc)

    click.echo(f"=== Project {project_id} ({result.matched_count} of {result.total_count} entries) ===")

    if not result.entries:
        click.echo("No entries found.")
        return

    columns = list(schema)
    header = ["ID"] + [definition.label for definition in columns]
    rows = [
        [entry.id] + [_cell(definition.display_value(entry.get(definition.id)))
                                 for definition in columns]
        for entry in result.entries
    ]

    widths = [max(len(row[i]) for row in [header] + rows) for i in range(len(header))]
    click.echo("  ".join(title.ljust(width) for title, width in zip(header, widths)))
    click.echo("  ".join("-" * width for width in widths))
    for row in rows:
        click.echo("  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())


@cli.command()
@click.argument('project_id', callback=_project_id)
@click.option('--set', 'values', multiple=True, callback=_assignments,
              help='Field value FIELD=VALUE (repeatable)')
@click.pass_context
def add(ctx, project_id, values):
    """Add an entry to a project."""
    store, schema = _services(ctx)
    manager = EntryManager(store, schema)

    if not store.exists(project_id):
        click.echo(f"Project {project_id} not found.", err=True)
        sys.exit(1)

    result = manager.validate(values)
    if not result.is_valid:
        click.echo(f"Invalid entry: {result.error_message}", err=True)
        sys.exit(1)
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    entry = manager.add_entry(project_id, values)
    if entry is None:
        click.echo("Failed to add entry.", err=True)
        sys.exit(1)

    click.echo(f"Added entry {entry.id}")


@cli.command()
@click.argument('project_id', callback=_project_id)
@click.argument('entry_id')
@click.option('--set', 'values', multiple=True, callback=_assignments,
              help='New field value FIELD=VALUE (repeatable)')
@click.pass_context
def update(ctx, project_id, entry_id, values):
    """Change field values of an entry; other fields keep their values."""
    store, schema = _services(ctx)
    manager = EntryManager(store, schema)

    entry = manager.get_entry(project_id, entry_id)
    if entry is None:
        click.echo(f"Entry {entry_id} not found in project {project_id}.", err=True)
        sys.exit(1)

    merged = {**entry.values, **values}
    result = manager.validate(merged)
    if not result.is_valid:
        click.echo(f"Invalid entry: {result.error_message}", err=True)
        sys.exit(1)

    if manager.update_entry(project_id, entry_id, merged) is None:
        click.echo("Failed to update entry.", err=True)
        sys.exit(1)

    click.echo(f"Updated entry {entry_id}")


@cli.command()
@click.argument('project_id', callback=_project_id)
@click.argument('entry_id')
@click.pass_context
def remove(ctx, project_id, entry_id):
    """Delete an entry from a project."""
    store, schema = _services(ctx)
    manager = EntryManager(store, schema)

    if not manager.delete_entry(project_id, entry_id):
        click.echo(f"Entry {entry_id} not found in project {project_id}.", err=True)
        sys.exit(1)

    click.echo(f"Deleted entry {entry_id}")


@cli.command()
@click.argument('project_id', callback=_project_id)
@click.option('--format', 'export_format', type=click.Choice(['csv', 'json']),
              default='csv', help='Export format')
@click.option('--output', '-o', type=click.Path(),
              help='Output file path (default: project_<id>.<format> in the export directory)')
@click.option('--stdout', 'to_stdout', is_flag=True, help='Print the export instead of writing a file')
@view_options
@click.pass_context
def export(ctx, project_id, export_format, output, to_stdout,
           filters, minimums, maximums, starts, ends, sort_field, desc):
    """Export the filtered and sorted view of a project."""
    config = ctx.obj['config']
    result, schema = _processed_view(ctx, project_id, filters, minimums, maximums,
                                     starts, ends, sort_field, desc)

    exporter = DataExporter()
    fmt = ExportFormat(export_format)

    try:
        exported = exporter.export_entries(
            result.entries, fmt, project_id, schema,
            ExportOptions(format=fmt, json_indent=config.export.json_indent)
        )
    except ProjectTrackerError as e:
        click.echo(e.message, err=True)
        sys.exit(1)

    if not exporter.validate_export_format(exported.content, fmt):
        click.echo("Warning: Exported data may not be valid for the specified format", err=True)

    if to_stdout:
        click.echo(exported.content, nl=False)
        return

    path = write_export(exported, output, directory=config.export.output_dir)
    click.echo(f"Exported {exported.entry_count} entries to {path}")


@cli.command('config-export')
@click.option('--output', '-o', type=click.Path(),
              help='Output configuration file path')
@click.pass_context
def config_export(ctx, output):
    """Export current configuration to file."""
    config = ctx.obj['config']

    if output:
        config.to_file(output)
        click.echo(f"Configuration exported to: {output}")
    else:
        click.echo(json.dumps(config.to_dict(), indent=2))


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(1)
    except ProjectTrackerError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
