"""Starlette HTTP server assembly."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from system_catalog.app import AppContext, get_app_context
from system_catalog.middleware.audit import AuditMiddleware
from system_catalog.middleware.security import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)


def create_http_app(context: AppContext | None = None) -> Starlette:
    """Create the System Catalog HTTP application.

    All API traffic goes through ``POST /``; errors are reported inside the
    JSON envelope, so every response is HTTP 200.
    """
    context = context or get_app_context()
    settings = context.settings

    # CORS must be outermost so preflight requests are answered before anything else.
    middleware: list[Middleware] = []
    if settings.server.http_enable_cors and settings.server.http_allowed_origins:
        middleware.append(
            Middleware(
                CORSMiddleware,
                allow_origins=list(settings.server.http_allowed_origins),
                allow_methods=["POST", "GET", "OPTIONS"],
                allow_headers=["Content-Type", "Accept"],
            )
        )
    middleware.extend(
        [
            Middleware(SecurityHeadersMiddleware),
            Middleware(
                AuditMiddleware,
                enabled=settings.api.log_requests,
                trust_forwarded_headers=settings.server.http_trust_forwarded_headers,
            ),
        ]
    )

    async def api_handler(request: Request) -> Response:
        body = await request.body()
        outcome = await context.handler.process(body)
        if outcome.identity is not None:
            request.state.user_email = outcome.identity.email
        return JSONResponse(outcome.envelope)

    async def root_get_handler(request: Request) -> Response:
        if request.query_params.get("action") == "health":
            return JSONResponse(context.health.snapshot())
        return JSONResponse(context.health.info())

    async def options_handler(request: Request) -> Response:
        return PlainTextResponse("OK")

    async def health_handler(request: Request) -> Response:
        return JSONResponse(context.health.snapshot())

    async def ready_handler(request: Request) -> Response:
        return JSONResponse(context.health.info())

    routes = [
        Route("/", endpoint=api_handler, methods=["POST"]),
        Route("/", endpoint=root_get_handler, methods=["GET"]),
        Route("/", endpoint=options_handler, methods=["OPTIONS"]),
        Route("/health", endpoint=health_handler, methods=["GET"]),
        Route("/ready", endpoint=ready_handler, methods=["GET"]),
    ]

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info(
            "Starting System Catalog API v%s (workbook: %s)",
            settings.api.version,
            settings.store.workbook_path or "in-memory",
        )
        try:
            yield
        finally:
            logger.info("Stopping System Catalog API...")

    return Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
