from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import Awaitable, Callable
import logging

from fastapi import FastAPI, HTTPException

from infodoc.api.handlers.deps import ApiDeps
from infodoc.api.handlers.info_docs import get_info_doc_handler
from infodoc.api.handlers.writes import record_document_writes_handler
from infodoc.api.schemas import (
    ErrorResponse,
    HealthResponse,
    InfoDocResponse,
    ReadyResponse,
    WriteNotificationRequest,
    WriteNotificationResponse,
)
from infodoc.domain.errors import DomainValidationError, RetryExhaustedError, StoreError

SERVICE_NAME = "infodoc"


def build_app(
    run_id: str,
    api_deps: ApiDeps | None = None,
    mode: str = "memory",
    on_startup: Callable[[], Awaitable[None]] | None = None,
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    logger = logging.getLogger("runtime")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        del app
        logger.info(
            "service started",
            extra={"service": SERVICE_NAME, "run_id": run_id},
        )

        if on_startup is not None:
            await on_startup()

        yield

        if api_deps is not None:
            await api_deps.service.wait_for_background_tasks()

        if on_shutdown is not None:
            await on_shutdown()

        logger.info(
            "service stopped",
            extra={"service": SERVICE_NAME, "run_id": run_id},
        )

    app = FastAPI(title="infodoc", version="0.1.0", lifespan=lifespan)

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service=SERVICE_NAME, mode=mode)

    @app.get(
        "/ready",
        response_model=ReadyResponse,
        responses={503: {"model": ErrorResponse}},
        tags=["System"],
    )
    async def ready() -> ReadyResponse:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        service = api_deps.service
        return ReadyResponse(
            status="ready",
            service=SERVICE_NAME,
            mode=mode,
            canonical_store=service.canonical.name,
            legacy_store=service.legacy.name,
            background_tasks=len(service.background.tasks),
        )

    @app.post(
        "/writes",
        response_model=WriteNotificationResponse,
        responses={422: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Info docs"],
    )
    async def record_document_writes(request: WriteNotificationRequest) -> WriteNotificationResponse:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        try:
            return await record_document_writes_handler(request=request, api_deps=api_deps)
        except DomainValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except RetryExhaustedError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except StoreError as exc:
            logger.exception("info doc write failed", extra={"service": SERVICE_NAME, "run_id": run_id})
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    @app.get(
        "/info-docs/{owner_id}",
        response_model=InfoDocResponse,
        responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
        tags=["Info docs"],
    )
    async def get_info_doc(owner_id: str) -> InfoDocResponse:
        if api_deps is None:
            raise HTTPException(status_code=503, detail="api dependencies are not available")
        info_doc = await get_info_doc_handler(owner_id=owner_id, api_deps=api_deps)
        if info_doc is None:
            raise HTTPException(status_code=404, detail="info doc not found")
        return info_doc

    return app
