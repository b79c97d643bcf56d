"""Librophoto CLI - manage the photographed pages of a book."""

import asyncio
import json
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer

from librophoto import __version__
from librophoto.config import Settings, get_settings
from librophoto.db import MetadataStore, create_engine, create_session_factory, init_models
from librophoto.errors import BookNotFoundError, LibrophotoError
from librophoto.gallery import BookGallery
from librophoto.logging import setup_logging
from librophoto.models import CaptureEntry, ImageInput
from librophoto.storage import FileObjectStore

T = TypeVar("T")

app = typer.Typer(
    name="librophoto",
    help="Librophoto - capture the passages that matter.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"librophoto {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Librophoto - photographed pages organized into books."""
    setup_logging(get_settings().log_level)


def _output(data: dict, as_json: bool, human_message: str) -> None:
    """Output data as JSON or human-readable format."""
    if as_json:
        typer.echo(json.dumps(data, default=str))
    else:
        typer.echo(human_message)


def _capture_dict(entry: CaptureEntry) -> dict:
    return {
        "id": entry.id,
        "state": entry.state,
        "image_url": entry.image_url,
        "created_at": entry.created_at.isoformat(),
    }


async def _with_gallery(
    settings: Settings,
    book_id: str,
    notices: list[str],
    action: Callable[[BookGallery], Awaitable[T]],
) -> T:
    """Open a book's gallery, run action against it, then release the engine."""
    engine = create_engine(settings.database_url)
    try:
        gallery = BookGallery(
            book_id=book_id,
            metadata=MetadataStore(create_session_factory(engine)),
            object_store=FileObjectStore(
                settings.storage_root, settings.storage_bucket, settings.public_base_url
            ),
            profile=settings.compression_profile(),
            bucket=settings.storage_bucket,
            notify=notices.append,
        )
        await gallery.open()
        return await action(gallery)
    finally:
        await engine.dispose()


def _run(coro: Awaitable[T], as_json: bool) -> T:
    try:
        return asyncio.run(coro)
    except BookNotFoundError as e:
        _output({"status": "error", "message": str(e)}, as_json, str(e))
        raise typer.Exit(1)
    except LibrophotoError as e:
        _output({"status": "error", "message": str(e)}, as_json, f"Error: {e}")
        raise typer.Exit(1)


@app.command(name="init-db")
def init_db() -> None:
    """Create the books and captures tables."""

    async def _init() -> None:
        engine = create_engine(get_settings().database_url)
        try:
            await init_models(engine)
        finally:
            await engine.dispose()

    asyncio.run(_init())
    typer.echo("Database initialized.")


@app.command()
def show(
    book_id: str = typer.Argument(..., help="Book identifier"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """List a book's captures, newest first."""

    async def _show(gallery: BookGallery) -> tuple[str | None, tuple[CaptureEntry, ...]]:
        return gallery.title, gallery.captures

    title, captures = _run(_with_gallery(get_settings(), book_id, [], _show), output_json)

    if output_json:
        typer.echo(
            json.dumps(
                {
                    "book_id": book_id,
                    "title": title,
                    "photo_count": len(captures),
                    "captures": [_capture_dict(c) for c in captures],
                }
            )
        )
        return

    typer.echo(f"{title} - {len(captures)} photos")
    for index, capture in enumerate(captures):
        typer.echo(f"{index:>4}  {capture.id}  {capture.created_at:%Y-%m-%d %H:%M}  {capture.image_url}")


@app.command()
def upload(
    book_id: str = typer.Argument(..., help="Book identifier"),
    files: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Image files"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """Compress and upload images into a book."""
    notices: list[str] = []

    async def _upload(gallery: BookGallery) -> list[dict]:
        results = []
        for path in files:
            capture = await gallery.upload(ImageInput.from_path(path))
            results.append(
                {"file": str(path), "status": "stored" if capture else "failed", "id": capture.id if capture else None}
            )
        return results

    results = _run(_with_gallery(get_settings(), book_id, notices, _upload), output_json)

    if output_json:
        typer.echo(json.dumps({"results": results, "notices": notices}))
    else:
        for item in results:
            typer.echo(f"{item['file']}: {item['status']}" + (f" ({item['id']})" if item["id"] else ""))
        for notice in notices:
            typer.echo(notice, err=True)

    if any(item["status"] == "failed" for item in results):
        raise typer.Exit(1)


@app.command()
def delete(
    book_id: str = typer.Argument(..., help="Book identifier"),
    capture_id: str = typer.Argument(..., help="Capture identifier"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output in JSON format"),
) -> None:
    """Delete a capture and its image."""
    notices: list[str] = []

    async def _delete(gallery: BookGallery) -> dict:
        index = gallery.store.index_of(capture_id)
        if index is None:
            return {"status": "error", "message": f"Capture not found: {capture_id}"}
        gallery.navigator.select(index)
        result = await gallery.delete_current()
        if result is None:
            return {"status": "error", "message": notices[-1] if notices else "Delete failed"}
        return {
            "status": "deleted",
            "capture_id": result.capture_id,
            "blob_removed": result.blob_removed,
            "photo_count": gallery.photo_count,
        }

    data = _run(_with_gallery(get_settings(), book_id, notices, _delete), output_json)

    if data["status"] != "deleted":
        _output(data, output_json, data["message"])
        raise typer.Exit(1)

    _output(
        data,
        output_json,
        f"Deleted {data['capture_id']}" + ("" if data["blob_removed"] else " (image left in storage)"),
    )


if __name__ == "__main__":
    app()
