"""ASGI app: health check plus the MCP Streamable HTTP endpoint behind an API key."""

from __future__ import annotations

import contextlib
import secrets
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.datastructures import Headers
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route
from starlette.types import ASGIApp, Receive, Scope, Send

from .mcp_server import create_mcp_server
from .settings import Settings

# MCP clients probe OAuth discovery before they attach custom headers.
PUBLIC_PREFIXES = ("/health", "/.well-known/")


class ApiKeyMiddleware:
    """Reject HTTP requests whose ``X-API-Key`` header does not match."""

    def __init__(self, app: ASGIApp, *, api_key: str) -> None:
        self.app = app
        self.api_key = api_key

    def _authorized(self, scope: Scope) -> bool:
        if scope["path"].startswith(PUBLIC_PREFIXES):
            return True
        presented = Headers(scope=scope).get("x-api-key")
        return bool(presented) and secrets.compare_digest(presented, self.api_key)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self._authorized(scope):
            await self.app(scope, receive, send)
            return
        response = JSONResponse({"error": "unauthorized"}, status_code=401)
        await response(scope, receive, send)


async def health(_: Request) -> Response:
    return JSONResponse({"ok": True})


def create_app(settings: Settings | None = None) -> Starlette:
    settings = settings or Settings()
    mcp = create_mcp_server(settings)

    @contextlib.asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        async with mcp.session_manager.run():
            yield

    return Starlette(
        routes=[
            Route("/health", endpoint=health, methods=["GET"]),
            # The streamable HTTP app serves /mcp itself.
            Mount("/", app=mcp.streamable_http_app()),
        ],
        middleware=[Middleware(ApiKeyMiddleware, api_key=settings.mcp_api_key)],
        lifespan=lifespan,
    )
