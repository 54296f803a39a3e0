"""
aiohttp application: routes, CORS, and the four measurement handlers.

``create_app()`` builds a ready-to-serve ``web.Application``; the shared
buffer and test duration live on the app so tests can build isolated
instances with short durations.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Callable, Optional

from aiohttp import web

from .constants import (
    CORS_HEADERS,
    DEFAULT_STATIC_DIR,
    DEFAULT_TEST_DURATION,
    MAX_REQUEST_BODY,
    MIB,
    NO_CACHE_HEADERS,
)
from .download import DownloadMeasurer
from .latency import LatencyProbe
from .payload import SharedBuffer, generate_payload, parse_size
from .result import assemble_result
from .stats import MeasurementCancelled
from .upload import UploadMeasurer, UploadPayload

logger = logging.getLogger(__name__)

BUFFER_KEY = web.AppKey("shared_buffer", SharedBuffer)
DURATION_KEY = web.AppKey("test_duration", float)
INDEX_KEY = web.AppKey("index_path", str)


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.StreamResponse:  # noqa: ANN001
    """Allow any origin; answer preflight requests before routing."""
    if request.method == "OPTIONS":
        return web.Response(headers=CORS_HEADERS)

    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(CORS_HEADERS)
        raise

    response.headers.update(CORS_HEADERS)
    return response


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _client_gone(request: web.Request) -> Callable[[], bool]:
    """Cancellation check for measurement loops: has the peer hung up?"""

    def _check() -> bool:
        transport = request.transport
        return transport is None or transport.is_closing()

    return _check


def _bad_request(message: str) -> web.HTTPBadRequest:
    return web.HTTPBadRequest(
        text=json.dumps({"error": message}),
        content_type="application/json",
    )


async def _read_upload(request: web.Request) -> UploadPayload:
    if request.content_type == "application/octet-stream":
        return UploadPayload.from_bytes(await request.read())

    try:
        body = await request.json()
    except (ValueError, RecursionError) as exc:
        raise _bad_request(f"malformed JSON body: {exc}") from exc

    try:
        return UploadPayload.from_dict(body)
    except ValueError as exc:
        raise _bad_request(str(exc)) from exc


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def handle_download(request: web.Request) -> web.Response:
    size_mb = parse_size(request.query.get("size"))
    logger.debug("Serving %d MB download to %s", size_mb, request.remote)
    return web.Response(body=generate_payload(size_mb), headers=NO_CACHE_HEADERS)


async def handle_upload(request: web.Request) -> web.Response:
    payload = await _read_upload(request)
    logger.debug("Received %d byte upload from %s", len(payload), request.remote)
    # Throughput is timed by the client; the server reports zeros.
    return web.json_response(assemble_result().to_dict())


async def handle_ping(request: web.Request) -> web.Response:
    latency = await LatencyProbe().measure()
    return web.json_response(assemble_result(latency=latency).to_dict())


async def handle_speedtest(request: web.Request) -> web.Response:
    """
    Combined test: download, then upload, then one latency probe.

    Strictly sequential, so a call takes at least twice the configured
    duration.
    """
    duration = request.app[DURATION_KEY]
    should_stop = _client_gone(request)
    logger.info("Combined speed test started for %s (%.0f s per phase)", request.remote, duration)

    try:
        download = await DownloadMeasurer(
            request.app[BUFFER_KEY], duration_seconds=duration
        ).measure(should_stop)
        upload = await UploadMeasurer(duration_seconds=duration).measure(should_stop)
    except MeasurementCancelled:
        logger.info("Client %s disconnected during speed test", request.remote)
        raise web.HTTPRequestTimeout()

    latency = await LatencyProbe().measure()

    result = assemble_result(
        download_speed=download.speed_mb_s,
        upload_speed=upload.speed_mb_s,
        latency=latency,
    )
    logger.info(
        "Speed test for %s: down %.2f MB/s, up %.2f MB/s, latency %d ms",
        request.remote, result.download_speed, result.upload_speed, result.latency,
    )
    return web.json_response(result.to_dict())


async def handle_index(request: web.Request) -> web.FileResponse:
    return web.FileResponse(request.app[INDEX_KEY])


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    static_dir: Optional[str] = DEFAULT_STATIC_DIR,
    test_duration: float = DEFAULT_TEST_DURATION,
    buffer: Optional[SharedBuffer] = None,
) -> web.Application:
    app = web.Application(
        middlewares=[cors_middleware],
        client_max_size=MAX_REQUEST_BODY,
    )
    app[BUFFER_KEY] = buffer if buffer is not None else SharedBuffer()
    app[DURATION_KEY] = float(test_duration)

    app.router.add_get("/api/download", handle_download)
    app.router.add_post("/api/upload", handle_upload)
    app.router.add_get("/api/ping", handle_ping)
    app.router.add_get("/api/speedtest", handle_speedtest)

    if static_dir and os.path.isdir(static_dir):
        index_path = os.path.join(static_dir, "index.html")
        if os.path.isfile(index_path):
            app[INDEX_KEY] = index_path
            app.router.add_get("/", handle_index)
        app.router.add_static("/static", static_dir)
    elif static_dir:
        logger.warning("Static directory %r not found; serving API only", static_dir)

    logger.debug(
        "Application created: shared buffer %d MiB, test duration %.2f s",
        len(app[BUFFER_KEY]) // MIB, app[DURATION_KEY],
    )
    return app
