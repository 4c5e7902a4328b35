"""CLI for inspecting beaver query derivation and configuration."""

import json
import logging
from pathlib import Path

import typer

from beaver import __version__
from beaver.config import BeaverConfig, build_connection_string, find_config, get_adapter_class, load_config


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"beaver {__version__}")
        raise typer.Exit()


app = typer.Typer(
    help="Beaver: lightweight object-to-table mapper",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True, help="Show version"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Beaver CLI."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


@app.command("compile")
def compile_token(
    token: str = typer.Argument(..., help="Query token, e.g. age__gte"),
    values: list[str] = typer.Argument(..., help="Search value(s)"),
    fields: str = typer.Option(..., "--fields", "-f", help="Comma-separated persistable field names"),
    order_by: str = typer.Option(None, "--order-by", "-o", help="Ordering spec, e.g. 'name-, age'"),
    limit: int = typer.Option(None, "--limit", "-l", help="Maximum rows"),
    offset: int = typer.Option(0, "--offset", help="Rows to skip (requires --limit)"),
):
    """
    Show the SQL fragment and parameters derived from a query token.

    Values are passed as strings; no database is contacted.

    Examples:
      beaver compile age__gte 18 --fields id,name,age
      beaver compile name__contains "50%_off" --fields id,name --order-by name- --limit 10
    """
    from beaver.core.predicate import parse_token
    from beaver.core.query import QueryBuilder
    from beaver.errors import BeaverError

    field_list = [name.strip() for name in fields.split(",") if name.strip()]
    try:
        predicate = parse_token(token, field_list)
        sql, params = QueryBuilder(field_list).build(
            predicate.with_values(values), order_by=order_by, limit=limit, offset=offset
        )
    except BeaverError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(sql)
    typer.echo(json.dumps(params))


@app.command()
def info(
    config: Path = typer.Option(None, "--config", "-c", help="Path to config file (beaver.yaml)"),
):
    """
    Show the resolved configuration.
    """
    config_path = config or find_config()
    if config_path:
        try:
            loaded = load_config(config_path)
        except Exception as e:
            typer.echo(f"Error: Failed to load config: {e}", err=True)
            raise typer.Exit(1)
        typer.echo(f"Config: {config_path}")
    else:
        loaded = BeaverConfig()
        typer.echo("Config: (defaults)")

    adapter_class = get_adapter_class(build_connection_string(loaded))
    returning = "RETURNING" if adapter_class.supports_returning else "last insert id"

    typer.echo(f"Connection: {build_connection_string(loaded, mask_password=True)}")
    typer.echo(f"Generated keys: {returning}")
    typer.echo(f"Cache: {loaded.cache.type if loaded.cache else 'disabled'}")
    typer.echo(f"Table prefix: {loaded.table_prefix!r}")
    typer.echo(f"Cache prefix: {loaded.cache_prefix!r}")


if __name__ == "__main__":
    app()
