from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from signdesk.application import Confirmation, DocumentCollectionView
from signdesk.config import Settings, configure_logging
from signdesk.core.notifications import NotificationFeed
from signdesk.core.scheduler import AsyncioScheduler, Scheduler
from signdesk.infrastructure import HttpAnalysisGateway, HttpDocumentGateway
from signdesk.routes import documents

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    scheduler: Scheduler | None = None,
    confirmation: Confirmation | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=settings.http_timeout)
    document_gateway = HttpDocumentGateway(api_base=settings.api_base, http_client=client)
    analysis_gateway = HttpAnalysisGateway(api_base=settings.api_base, http_client=client)
    notifications = NotificationFeed(maxlen=settings.notification_buffer)
    view = DocumentCollectionView(
        document_gateway,
        analysis_gateway,
        scheduler or AsyncioScheduler(),
        notifier=notifications,
        confirmation=confirmation,
        poll_interval=settings.poll_interval,
        poll_max_duration=settings.poll_max_duration,
        rollback_on_failure=settings.remove_rollback,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            # polling must stop before the transport goes away
            view.dispose()
            await view.settle()
            if owns_client:
                await client.aclose()
            logger.info("signdesk shut down")

    app = FastAPI(title="SignDesk Document API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.document_view = view
    app.state.notifications = notifications

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(documents.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "SignDesk Document API",
                "docs": "/docs",
                "health": "/api/documents",
            }
        )

    return app


app = create_app()
