from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from pathlib import Path
from typing import AsyncIterator, BinaryIO, List, Optional, Tuple

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from evsink import __version__
from evsink.catalog import SegmentCatalog
from evsink.config.config import SinkConfig
from evsink.core.constants import SEGMENT_CONTENT_TYPE
from evsink.core.errors import (
    MalformedSegmentNameError,
    PayloadTooLargeError,
    SegmentIOError,
    SegmentNotFoundError,
)
from evsink.core.rotation import RotationScheduler
from evsink.core.writer_manager import WriterManager
from evsink.monitoring import metrics as sink_metrics
from evsink.utils.logging import get_logger, log_context

logger = get_logger(__name__)

STREAM_CHUNK_SIZE = 64 * 1024

router = APIRouter()


class SegmentListing(BaseModel):
    name: str
    compressed_size_estimate: int
    live: bool


def _manager(request: Request) -> WriterManager:
    return request.app.state.manager


def _catalog(request: Request) -> SegmentCatalog:
    return request.app.state.catalog


async def _read_capped_body(request: Request, limit: int) -> bytes:
    """Read the request body, refusing it as soon as it exceeds `limit` bytes."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(int(declared), limit)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(len(body), limit)
    return bytes(body)


def _open_segment(path: Path) -> Tuple[BinaryIO, int]:
    handle = open(path, "rb")
    try:
        size = os.fstat(handle.fileno()).st_size
    except OSError:
        handle.close()
        raise
    return handle, size


async def _iter_file(handle: BinaryIO, size: int) -> AsyncIterator[bytes]:
    # Only the bytes present at request time are sent; a live segment keeps growing.
    remaining = size
    try:
        while remaining > 0:
            chunk = await asyncio.to_thread(handle.read, min(STREAM_CHUNK_SIZE, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
    finally:
        handle.close()


@router.post("/store")
async def store(request: Request) -> dict[str, bool]:
    """Append the raw request body as one event."""
    manager = _manager(request)
    try:
        body = await _read_capped_body(request, manager.max_payload_bytes)
    except PayloadTooLargeError:
        sink_metrics.EVENTS_REJECTED.labels(reason="too_long").inc()
        raise
    with log_context(payload_bytes=len(body)):
        await manager.append(body)
    return {"buffered": True}


@router.get("/healthcheck")
async def healthcheck(request: Request):
    """Liveness probe: healthy only while a writer can accept events."""
    if _manager(request).is_active:
        return {"ok": True}
    return JSONResponse(status_code=500, content={"msg": "writer unavailable"})


@router.get("/api/raw", response_model=List[SegmentListing])
async def list_raw(request: Request):
    live_name = _manager(request).live_name
    items = await asyncio.to_thread(_catalog(request).list_segments, live_name)
    return [asdict(item) for item in items]


@router.get("/api/raw/{name}")
async def fetch_raw(name: str, request: Request):
    path = await asyncio.to_thread(_catalog(request).segment_path, name)
    try:
        handle, size = await asyncio.to_thread(_open_segment, path)
    except FileNotFoundError as exc:
        raise SegmentNotFoundError(f"Segment not found: {name}") from exc
    except OSError as exc:
        raise SegmentIOError(f"Cannot open segment {path}: {exc}") from exc

    return StreamingResponse(
        _iter_file(handle, size),
        media_type=SEGMENT_CONTENT_TYPE,
        headers={"Content-Length": str(size)},
    )


@router.post("/api/cycle")
async def cycle(request: Request) -> dict:
    """Rotate now: finalize the live segment and open a fresh one."""
    await _manager(request).rotate(trigger="manual")
    return {}


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        sink_metrics.generate_latest(), media_type=sink_metrics.CONTENT_TYPE_LATEST
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PayloadTooLargeError)
    async def _too_large(_request: Request, exc: PayloadTooLargeError) -> JSONResponse:
        logger.info("payload_rejected", size=exc.size, limit=exc.limit)
        return JSONResponse(status_code=400, content={"error": "too long"})

    @app.exception_handler(MalformedSegmentNameError)
    async def _bad_name(_request: Request, exc: MalformedSegmentNameError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "bad segment name"})

    @app.exception_handler(SegmentNotFoundError)
    async def _not_found(_request: Request, exc: SegmentNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "not found"})

    @app.exception_handler(SegmentIOError)
    async def _io_error(request: Request, exc: SegmentIOError) -> JSONResponse:
        logger.error(
            "error_handling_request",
            method=request.method,
            path=request.url.path,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500, content={"error": "internal server error"}
        )


def create_app(
    config: Optional[SinkConfig] = None,
    *,
    manager: Optional[WriterManager] = None,
    catalog: Optional[SegmentCatalog] = None,
    scheduler: Optional[RotationScheduler] = None,
) -> FastAPI:
    """
    Build the event sink application.

    Startup creates the first segment (failure aborts startup) and starts
    time-based rotation. Shutdown runs after the server stopped taking
    requests: it stops rotation and finalizes the live segment.
    """
    cfg = config or SinkConfig.from_env()
    manager = manager or WriterManager(
        cfg.data_dir,
        compression_level=cfg.compression_level,
        max_payload_bytes=cfg.max_payload_bytes,
    )
    catalog = catalog or SegmentCatalog(cfg.data_dir)
    scheduler = scheduler or RotationScheduler(manager, cfg.rotation_interval_seconds)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        try:
            manager.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SegmentIOError(f"Cannot create data dir {manager.directory}: {exc}") from exc

        await manager.start()
        await scheduler.start()
        logger.info(
            "server_started",
            data_dir=str(manager.directory),
            live_segment=manager.live_name,
            rotation_interval_seconds=scheduler.interval,
        )
        try:
            yield
        finally:
            try:
                await scheduler.stop()
            finally:
                clean = await manager.shutdown_finalize()
                logger.info("shutdown_complete", clean=clean)

    app = FastAPI(title="evsink", version=__version__, lifespan=lifespan)
    app.state.config = cfg
    app.state.manager = manager
    app.state.catalog = catalog
    app.state.scheduler = scheduler

    @app.middleware("http")
    async def _bind_request_context(request: Request, call_next):
        with log_context(method=request.method, path=request.url.path):
            return await call_next(request)

    app.include_router(router)
    _register_exception_handlers(app)
    return app


__all__ = ["create_app", "router", "SegmentListing"]
