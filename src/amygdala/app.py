"""Typer application and CLI entry point for amygdala.

The CLI is a thin inspection tool over the library:

* ``amygdala types SCHEMA`` -- list the types declared in a schema file.
* ``amygdala fetch SCHEMA TYPE`` -- GET a type, normalize the response into
  a fresh cache, and print the cached records (optionally filtered with
  ``--where`` or looked up with ``--id``).

:func:`main` is the console-script entry point declared in
``pyproject.toml``. Library errors exit with the code carried by the
exception (see :mod:`amygdala.exit_codes`).
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from amygdala import __version__
from amygdala.exceptions import AmygdalaError, InvalidQueryError
from amygdala.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from amygdala.client import Amygdala
    from amygdala.models import ClientConfig
    from amygdala.schema import SchemaRegistry


app = typer.Typer(
    name="amygdala",
    help="Fetch, normalize and query resources from a REST API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"amygdala {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Send ``amygdala`` log records to stderr through Rich."""
    logger = logging.getLogger("amygdala")
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    )
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise output and logging from the global flags."""
    from amygdala.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)


@app.command("types")
def types_command(
    schema: str = typer.Argument(..., help="Path to a JSON or YAML schema file."),
) -> None:
    """List the resource types declared in a schema.

    Example::

        amygdala types schema.yaml
    """
    from amygdala.config import load_schema_file
    from amygdala.output import get_output
    from amygdala.schema import SchemaRegistry

    try:
        registry = SchemaRegistry(load_schema_file(schema))
    except AmygdalaError as exc:
        _fail(exc)

    rows: list[list[str]] = []
    for name in registry.type_names:
        config = registry.resolve(name)
        relations = ", ".join(
            f"{r.attribute} -> {r.related_type} ({r.kind.value})" for r in config.relations
        )
        rows.append([name, config.url or "-", registry.identity_of(name), relations or "-"])

    get_output().print_table(
        ["Type", "Location", "Identity", "Relations"], rows, title=f"Types ({len(rows)})"
    )


@app.command("fetch")
def fetch_command(
    schema: str = typer.Argument(..., help="Path to a JSON or YAML schema file."),
    type_name: str = typer.Argument(..., metavar="TYPE", help="Resource type to fetch."),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-P", help="Query-string parameter as key=value (repeatable)."
    ),
    where: Optional[list[str]] = typer.Option(
        None, "--where", "-w", help="Filter cached records by key=value (repeatable)."
    ),
    identity: Optional[str] = typer.Option(
        None, "--id", help="Print only the record with this identity."
    ),
    url: Optional[str] = typer.Option(None, "--url", help="Location override."),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header as key=value (repeatable)."
    ),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="Override the schema's apiUrl."),
) -> None:
    """GET a resource type and print the normalized records.

    Example::

        amygdala fetch schema.yaml users --param team=3 --where active=true
        amygdala --json fetch schema.yaml users --id /api/v2/user/1/
    """
    from amygdala.config import coerce_scalar, load_schema_file, parse_pairs, resolve_config
    from amygdala.output import debug, get_output
    from amygdala.schema import SchemaRegistry

    try:
        if identity is not None and where:
            raise InvalidQueryError("--id and --where cannot be combined")
        schema_data = load_schema_file(schema)
        registry = SchemaRegistry(schema_data)
        config = resolve_config(
            cli_api_url=api_url,
            cli_headers=parse_pairs(header, "header", coerce=False),
            schema_data=schema_data,
        )
        params = parse_pairs(param, "param")
        query = parse_pairs(where, "filter") or None

        debug(f"Fetching {type_name} from {config.api_url or registry.api_url}")
        cache = asyncio.run(_fetch(registry, config, type_name, params, url))
        counts = ", ".join(f"{k}={v}" for k, v in cache.store.stats().items())
        get_output().info(f"Cached records: {counts or 'none'}")

        if identity is not None:
            record = cache.find(type_name, identity)
            if record is None:
                record = cache.find(type_name, coerce_scalar(identity))
            records = [record] if record is not None else []
        else:
            records = cache.find_all(type_name, query)
    except AmygdalaError as exc:
        _fail(exc)

    output = get_output()
    if identity is not None and not records:
        output.warning(f"No {type_name} record with identity {identity!r}")
    output.print_records(records, title=f"{type_name} ({len(records)})")


async def _fetch(
    registry: SchemaRegistry,
    config: ClientConfig,
    type_name: str,
    params: dict[str, Any],
    url: Optional[str],
) -> Amygdala:
    from amygdala.client import Amygdala

    async with Amygdala(registry, config=config) as cache:
        await cache.get(type_name, params=params or None, url=url)
    return cache


def _fail(exc: AmygdalaError) -> NoReturn:
    from amygdala.output import error

    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def main() -> None:
    """CLI entry point invoked by the ``amygdala`` console script."""
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from amygdala.output import error

        if isinstance(exc, AmygdalaError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
