"""Main CLI entry point for HubStore."""

import logging
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from hubstore.config import StoreConfig
from hubstore.constants import EXIT_SYSTEM_ERROR, EXIT_USER_ERROR
from hubstore.errors import HubStoreError, InputError, ObjectNotFoundError
from hubstore.models import Commit, Person, Tag
from hubstore.storage import RemoteObjectStore
from hubstore.storage.codec import mode_to_string, mode_to_type
from hubstore.storage.hashing import format_date

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="hubstore",
    help="Use a GitHub repository as a git object store",
    add_completion=False,
)

_options: Dict[str, Any] = {}


@app.callback()
def main(
    repo: Optional[str] = typer.Option(
        None,
        "--repo",
        "-r",
        help="Repository as owner/name (default: $HUBSTORE_REPO)",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="API token (default: $HUBSTORE_TOKEN or $GITHUB_TOKEN)",
    ),
    api_url: Optional[str] = typer.Option(
        None,
        "--api-url",
        help="API base URL (default: https://api.github.com)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests and repairs",
    ),
) -> None:
    """Use a GitHub repository as a git object store."""
    _options.clear()
    _options.update({"repo": repo, "token": token, "api_url": api_url})
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _open_store() -> RemoteObjectStore:
    config = StoreConfig.from_env()
    if _options.get("repo"):
        config.repo = _options["repo"]
    if _options.get("token"):
        config.token = _options["token"]
    if _options.get("api_url"):
        config.api_url = _options["api_url"]
    return config.open_store()


def _fail(error: Exception) -> NoReturn:
    err_console.print(f"[bold red]Error:[/bold red] {error}", style="red")
    if isinstance(error, (InputError, ObjectNotFoundError)):
        raise typer.Exit(EXIT_USER_ERROR)
    raise typer.Exit(EXIT_SYSTEM_ERROR)


def _format_person(person: Optional[Person]) -> str:
    if person is None:
        return "(none)"
    return f"{person.name} <{person.email}> {format_date(person.date)}"


@app.command()
def version() -> None:
    """Show HubStore version."""
    from hubstore import __version__
    typer.echo(f"HubStore version {__version__}")


@app.command()
def show(
    object_type: str = typer.Argument(..., help="commit, tag, tree or blob"),
    object_hash: str = typer.Argument(..., help="Object hash"),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Fail if the object cannot be made to match its hash",
    ),
) -> None:
    """Print an object, like git cat-file -p."""
    try:
        store = _open_store()
        value = store.load_as(object_type, object_hash, strict=strict)
    except HubStoreError as e:
        _fail(e)

    if isinstance(value, Commit):
        typer.echo(f"tree {value.tree}")
        for parent in value.parents:
            typer.echo(f"parent {parent}")
        typer.echo(f"author {_format_person(value.author)}")
        typer.echo(f"committer {_format_person(value.committer)}")
        typer.echo("")
        typer.echo(value.message, nl=False)
    elif isinstance(value, Tag):
        typer.echo(f"object {value.object}")
        typer.echo(f"type {value.type}")
        typer.echo(f"tag {value.tag}")
        typer.echo(f"tagger {_format_person(value.tagger)}")
        typer.echo("")
        typer.echo(value.message, nl=False)
    elif isinstance(value, dict):
        for name in sorted(value):
            entry = value[name]
            typer.echo(f"{mode_to_string(entry.mode)} {mode_to_type(entry.mode)} {entry.hash}\t{name}")
    elif isinstance(value, str):
        typer.echo(value, nl=False)
    else:
        typer.echo(value.decode("utf-8", errors="replace"), nl=False)


@app.command("put-blob")
def put_blob(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
) -> None:
    """Save a file's contents as a blob and print its hash."""
    try:
        store = _open_store()
        blob_hash = store.save_as("blob", path.read_bytes())
    except HubStoreError as e:
        _fail(e)
    typer.echo(blob_hash)


@app.command()
def has(object_hash: str = typer.Argument(..., help="Object hash")) -> None:
    """Exit 0 if the remote has the object, 1 otherwise."""
    try:
        store = _open_store()
        found = store.has_hash(object_hash)
    except HubStoreError as e:
        _fail(e)
    if not found:
        console.print(f"[yellow]Not found:[/yellow] {object_hash}")
        raise typer.Exit(EXIT_USER_ERROR)
    console.print(f"[green]✓[/green] {object_hash}")


@app.command()
def refs(prefix: Optional[str] = typer.Argument(None, help="Only refs under this prefix, e.g. heads")) -> None:
    """List refs with the hashes they point at."""
    try:
        store = _open_store()
        names = store.list_refs(prefix)
        if not names:
            console.print("[yellow]No refs found[/yellow]")
            return
        table = Table(show_header=True, header_style="bold")
        table.add_column("Ref")
        table.add_column("Hash", style="cyan")
        for name in names:
            table.add_row(name, store.read_ref(name) or "")
    except HubStoreError as e:
        _fail(e)
    console.print(table)


@app.command("read-ref")
def read_ref(ref: str = typer.Argument(..., help="Ref name or HEAD")) -> None:
    """Print the hash a ref points at."""
    try:
        store = _open_store()
        object_hash = store.read_ref(ref)
    except HubStoreError as e:
        _fail(e)
    if object_hash is None:
        err_console.print(f"[yellow]No such ref:[/yellow] {ref}")
        raise typer.Exit(EXIT_USER_ERROR)
    typer.echo(object_hash)


@app.command("update-ref")
def update_ref(
    ref: str = typer.Argument(..., help="Ref name or HEAD"),
    object_hash: str = typer.Argument(..., help="New target hash"),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Allow non fast-forward updates",
    ),
) -> None:
    """Point a ref at a hash, creating it if needed."""
    try:
        store = _open_store()
        store.update_ref(ref, object_hash, force=force)
    except HubStoreError as e:
        _fail(e)
    console.print(f"[green]✓[/green] {ref} -> {object_hash}")


@app.command("delete-ref")
def delete_ref(ref: str = typer.Argument(..., help="Ref name")) -> None:
    """Delete a ref."""
    try:
        store = _open_store()
        store.delete_ref(ref)
    except HubStoreError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted {ref}")


if __name__ == "__main__":
    app()
