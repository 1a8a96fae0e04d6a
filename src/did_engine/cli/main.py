"""CLI entry point for did-engine.

Invoked as::

    did-engine [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m did_engine.cli.main

Commands
--------
did create      Create a DID (key, web or ebsi)
did resolve     Resolve a DID to its authoritative document
did load        Load a DID document (method-specific local view)
did list        List DIDs created in the data directory
did import-key  Import the public keys of a DID document
key generate    Generate a key pair
"""
from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import click
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from did_engine.config import EngineSettings
from did_engine.context import ContextManager, ServiceContext
from did_engine.did.methods.ebsi import DidEbsiOptions
from did_engine.did.methods.web import DidWebOptions
from did_engine.did.service import DidService
from did_engine.did.url import DidMethod
from did_engine.errors import DidEngineError
from did_engine.keys.algorithms import KeyAlgorithm

console = Console()

_T = TypeVar("_T")

_DEFAULT_DATA_DIR = Path("~/.did-engine")


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="did-engine")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding keys and cached DID documents "
    "(default: $DID_ENGINE_DATA_DIR or ~/.did-engine).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, verbose: bool) -> None:
    """Create, resolve and cache decentralized identifiers"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    settings = EngineSettings.from_env()
    base_dir = (data_dir or settings.data_dir or _DEFAULT_DATA_DIR).expanduser()
    ctx.obj = {
        "settings": settings,
        "context": ServiceContext.filesystem(base_dir),
    }


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from did_engine import __version__

    console.print(f"[bold]did-engine[/bold] v{__version__}")


# ------------------------------------------------------------------
# did command group
# ------------------------------------------------------------------


@cli.group(name="did")
def did_group() -> None:
    """Manage decentralized identifiers."""


@did_group.command(name="create")
@click.option(
    "--method",
    "-m",
    type=click.Choice([method.value for method in DidMethod]),
    default=DidMethod.key.value,
    show_default=True,
    help="DID method to create.",
)
@click.option("--key-alias", "-k", default=None, help="Alias or id of an existing key.")
@click.option(
    "--domain", "-d", default=None, help="Domain for did:web (required with --method web)."
)
@click.option("--path", "-p", "web_path", default=None, help="Path for did:web (e.g. user/alice).")
@click.pass_obj
def create_command(
    obj: dict[str, object],
    method: str,
    key_alias: str | None,
    domain: str | None,
    web_path: str | None,
) -> None:
    """Create a new DID and print it."""
    options = None
    if method == DidMethod.web.value:
        if not domain:
            raise click.UsageError("--domain is required for --method web.")
        options = DidWebOptions(domain=domain, path=web_path)
    elif method == DidMethod.ebsi.value:
        options = DidEbsiOptions()

    did = _run(obj, lambda service: service.create(method, key_alias, options))
    console.print(f"[green]Created[/green] [bold]{did}[/bold]")


@did_group.command(name="resolve")
@click.argument("did")
@click.option("--raw", is_flag=True, help="Print the document body as returned, undecoded.")
@click.pass_obj
def resolve_command(obj: dict[str, object], did: str, raw: bool) -> None:
    """Resolve DID to its authoritative document."""
    if raw:
        body = _run(obj, lambda service: service.resolve_raw(did))
        click.echo(body)
        return
    document = _run(obj, lambda service: service.resolve(did))
    console.print(Syntax(document.to_json(), "json"))


@did_group.command(name="load")
@click.argument("did")
@click.pass_obj
def load_command(obj: dict[str, object], did: str) -> None:
    """Load the locally known document of DID."""
    document = _run(obj, lambda service: service.load(did))
    console.print(Syntax(document.to_json(), "json"))


@did_group.command(name="list")
@click.option("--as-json", "as_json", is_flag=True, help="Print a JSON array instead of a table.")
@click.pass_obj
def list_command(obj: dict[str, object], as_json: bool) -> None:
    """List DIDs created in the data directory."""
    dids = _run(obj, lambda service: service.list_created())
    if as_json:
        click.echo(json.dumps(dids))
        return
    if not dids:
        console.print("[yellow]No DIDs created yet.[/yellow]")
        return

    table = Table(title="Created DIDs", show_header=True)
    table.add_column("DID", style="cyan")
    table.add_column("Method")
    for did in dids:
        table.add_row(did, did.split(":")[1])
    console.print(table)


@did_group.command(name="import-key")
@click.argument("did")
@click.pass_obj
def import_key_command(obj: dict[str, object], did: str) -> None:
    """Import the public keys of DID's document into the key store."""
    aliases = _run(obj, lambda service: service.import_key(did))
    for alias in aliases:
        console.print(f"[green]Imported[/green] {alias}")


# ------------------------------------------------------------------
# key command group
# ------------------------------------------------------------------


@cli.group(name="key")
def key_group() -> None:
    """Manage keys."""


@key_group.command(name="generate")
@click.option(
    "--algorithm",
    "-a",
    type=click.Choice([algorithm.value for algorithm in KeyAlgorithm]),
    default=KeyAlgorithm.EdDSA_Ed25519.value,
    show_default=True,
)
@click.option("--alias", default=None, help="Alias to bind to the new key.")
@click.pass_obj
def generate_key_command(obj: dict[str, object], algorithm: str, alias: str | None) -> None:
    """Generate a key pair and print its key id."""
    context: ServiceContext = obj["context"]  # type: ignore[assignment]
    try:
        key_id = context.key_store.generate_key(KeyAlgorithm(algorithm))
        if alias:
            context.key_store.add_alias(key_id, alias)
    except DidEngineError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    console.print(f"[green]Generated[/green] {algorithm} key [bold]{key_id}[/bold]")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _run(obj: dict[str, object], operation: Callable[[DidService], _T]) -> _T:
    """Run *operation* against a service bound to the CLI's data directory."""
    settings: EngineSettings = obj["settings"]  # type: ignore[assignment]
    context: ServiceContext = obj["context"]  # type: ignore[assignment]
    service = DidService(settings)
    with ContextManager.run_with(context):
        try:
            return operation(service)
        except DidEngineError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            sys.exit(1)


if __name__ == "__main__":
    cli()
