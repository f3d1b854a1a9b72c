"""Frontend delivery: built bundle in production, Vite proxy in development."""

import logging
from pathlib import Path

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, PlainTextResponse, Response

logger = logging.getLogger("aptora_extensions.assets")

# Headers that describe one hop or the original encoding; never forwarded.
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
    "content-encoding",
}


def resolve_asset(root: Path, request_path: str) -> Path | None:
    """Map a URL path to a file under ``root``.

    Returns:
        The file to serve, or ``None`` when the path is a directory, does
        not exist, or escapes ``root``.
    """
    root = root.resolve()
    candidate = (root / request_path.lstrip("/")).resolve()
    if not candidate.is_relative_to(root):
        return None
    if not candidate.is_file():
        return None
    return candidate


def create_asset_router(frontend_dir: str) -> APIRouter:
    """Serve the built single-page app with ``index.html`` fallback."""
    router = APIRouter()
    root = Path(frontend_dir)

    @router.api_route("/{path:path}", methods=["GET", "HEAD"], include_in_schema=False)
    async def serve_assets(path: str):
        asset = resolve_asset(root, path)
        if asset is not None:
            return FileResponse(asset)

        # Client-side routing: unknown paths get the app shell.
        index = root / "index.html"
        if not index.is_file():
            logger.error("Frontend index.html not found in %s", root.resolve())
            return PlainTextResponse("404 - Page Not Found", status_code=404)
        return FileResponse(index, media_type="text/html; charset=utf-8")

    return router


def create_proxy_router() -> APIRouter:
    """Forward every non-API request to the Vite dev server.

    Uses the ``httpx.AsyncClient`` stored on ``app.state.proxy_client``.
    """
    router = APIRouter()

    @router.api_route(
        "/{path:path}",
        methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        include_in_schema=False,
    )
    async def proxy_to_vite(path: str, request: Request):
        client: httpx.AsyncClient = request.app.state.proxy_client
        headers = {
            k: v for k, v in request.headers.items() if k.lower() not in HOP_BY_HOP_HEADERS
        }
        try:
            upstream = await client.request(
                request.method,
                "/" + path,
                params=request.query_params,
                headers=headers,
                content=await request.body(),
            )
        except httpx.HTTPError as e:
            logger.error("Vite dev server unreachable: %s", e)
            return PlainTextResponse("Bad Gateway", status_code=502)

        response_headers = {
            k: v for k, v in upstream.headers.items() if k.lower() not in HOP_BY_HOP_HEADERS
        }
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers=response_headers,
        )

    return router
