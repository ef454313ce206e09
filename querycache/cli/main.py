"""Command-line interface for QueryCache."""

import json
import sys
from pathlib import Path
from typing import Any

import click

from querycache.canonical.normalizer import Canonicalizer
from querycache.core.config import load_cache_config, parse_env_value
from querycache.core.exceptions import QueryCacheError
from querycache.engines.orchestrator import CacheKey, parameters_digest
from querycache.named.registry import load_named_queries
from querycache.named.resolver import bind_definition


def _parse_parameters(pairs: tuple[str, ...]) -> dict[str, Any]:
    parameters = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected name=value, got {pair!r}")
        parameters[name] = parse_env_value(value)
    return parameters


@click.group()
def cli() -> None:
    """QueryCache - canonicalizing read-through query cache."""
    pass


@cli.command()
@click.argument("text")
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
def normalize(text: str, output_json: bool) -> None:
    """Print the canonical form of a query."""
    try:
        canonical = Canonicalizer().analyze(text)
    except QueryCacheError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    if output_json:
        click.echo(json.dumps({"canonical": canonical.text, "path": canonical.path}))
    else:
        click.echo(canonical.text)


@cli.command()
@click.argument("text")
@click.option(
    "--param",
    "-p",
    "params",
    multiple=True,
    help="Bound parameter as name=value (repeatable)",
)
@click.option(
    "--access-control",
    is_flag=True,
    help="Key for a call with access control enforced",
)
def key(text: str, params: tuple[str, ...], access_control: bool) -> None:
    """Print the storage key a query would be cached under."""
    try:
        canonical = Canonicalizer().analyze(text)
    except QueryCacheError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    cache_key = CacheKey(
        canonical=canonical.text,
        parameters_digest=parameters_digest(_parse_parameters(params)),
        enforce_access_control=access_control,
    )
    click.echo(cache_key.storage_key)


@cli.command()
@click.argument("name")
@click.option(
    "--file",
    "-f",
    "path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="YAML file with named query definitions",
)
@click.option(
    "--param",
    "-p",
    "params",
    multiple=True,
    help="Parameter as name=value (repeatable)",
)
def bind(name: str, path: Path, params: tuple[str, ...]) -> None:
    """Print the bound text of a named query."""
    try:
        definition = load_named_queries(path).get(name)
        parameters = _parse_parameters(params)
        click.echo(bind_definition(definition, parameters))
    except QueryCacheError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="querycache.yaml to read (default: ./querycache.yaml)",
)
def config(config_path: Path | None) -> None:
    """Show the effective cache configuration."""
    click.echo(json.dumps(load_cache_config(config_path), indent=2))


@cli.command()
def version() -> None:
    """Show version information."""
    from querycache import __version__

    click.echo(f"QueryCache v{__version__}")


if __name__ == "__main__":
    cli()
