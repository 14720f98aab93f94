"""FastAPI server for the Clamp assistant.

Run with:
    uvicorn clamp.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from clamp.agent import build_agent, build_store
from clamp.api.routes import router
from clamp.config import ClampSettings, load_settings

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Application factory ──────────────────────────────────────────────


def create_app(settings: ClampSettings | None = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        """Start-up: build the store and agent once and keep them in app state."""
        logger.info("Building Clamp agent (store=%s)…", settings.store_backend)
        application.state.store = build_store(settings)
        application.state.agent = build_agent(settings, application.state.store)
        if application.state.agent is None:
            logger.warning("Clamp agent not started: no completion credential")
        else:
            logger.info("Agent ready.")
        yield

    application = FastAPI(
        title="Clamp Assistant",
        description="Conversational assistant for jobs, quotes, invoices and scheduling.",
        version="1.0.0",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.agent = None

    # ── CORS (needed for the web app) ────────────────────────────────
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Request-ID middleware ────────────────────────────────────────
    @application.middleware("http")
    async def add_request_id(request: Request, call_next) -> Response:
        """Attach a request ID to every request for log correlation.

        The ID is echoed back in ``X-Request-ID`` so the web app can quote
        it in support tickets.
        """
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        logger.info("[%s] %s %s", request_id, request.method, request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    application.include_router(router, prefix="/api")

    @application.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "service": "Clamp Assistant",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/api/health",
        }

    return application


app = create_app()


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    settings = app.state.settings
    logger.info("Starting Clamp API server on %s:%d", settings.server_host, settings.server_port)
    uvicorn.run(
        "clamp.server:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=True,
    )
