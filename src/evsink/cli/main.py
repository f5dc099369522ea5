from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Optional

import click
import uvicorn

from evsink.catalog import SegmentCatalog
from evsink.config.config import SinkConfig
from evsink.core.errors import FrameError, SegmentIOError
from evsink.core.segment_reader import SegmentReader
from evsink.utils.logging import configure_logging, get_logger


def _load_config(config_path: Optional[str]) -> SinkConfig:
    if config_path:
        return SinkConfig.from_yaml(config_path)
    return SinkConfig.from_env()


@click.group()
@click.version_option(package_name="evsink")
def cli() -> None:
    """Append-only HTTP event sink."""


@cli.command()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", type=int, default=None, help="Port (overrides config)")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Segment directory (overrides config)",
)
def serve(
    config_path: Optional[str],
    host: Optional[str],
    port: Optional[int],
    data_dir: Optional[str],
) -> None:
    """Run the HTTP server until SIGINT/SIGTERM."""
    from evsink.api.server import create_app

    cfg = _load_config(config_path)
    updates = {
        key: value
        for key, value in {"host": host, "port": port, "data_dir": data_dir}.items()
        if value is not None
    }
    if updates:
        cfg = cfg.model_validate({**cfg.model_dump(), **updates})

    configure_logging(level=cfg.log_level, json_output=cfg.log_json)
    logger = get_logger(__name__)
    logger.info("server_starting", host=cfg.host, port=cfg.port, data_dir=str(cfg.data_dir))

    # uvicorn exits non-zero on its own when lifespan startup fails
    uvicorn.run(
        create_app(cfg),
        host=cfg.host,
        port=cfg.port,
        lifespan="on",
        log_config=None,
    )


@cli.command()
@click.option(
    "--data-dir",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
)
def segments(data_dir: str) -> None:
    """List segment files found in a directory."""
    catalog = SegmentCatalog(data_dir)
    try:
        items = catalog.list_segments()
    except SegmentIOError as exc:
        raise click.ClickException(str(exc)) from exc
    for item in items:
        click.echo(f"{item.name}\t{item.compressed_size_estimate}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--lenient",
    is_flag=True,
    help="Stop quietly at a truncated tail (live segments) instead of failing",
)
def dump(path: str, lenient: bool) -> None:
    """Decode a segment and print one JSON line per record."""
    try:
        with SegmentReader(Path(path), strict=not lenient) as reader:
            for record in reader:
                try:
                    payload = {"text": record.payload.decode("utf-8")}
                except UnicodeDecodeError:
                    payload = {"base64": base64.b64encode(record.payload).decode("ascii")}
                click.echo(json.dumps({"received_at": record.received_at, **payload}))
    except FrameError as exc:
        raise click.ClickException(f"Corrupt segment {path}: {exc}") from exc


if __name__ == "__main__":
    cli()
