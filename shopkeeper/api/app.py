"""
FastAPI application factory.

Wires the engine into ``app.state``, mounts the auth routes, one CRUD router
per registered list, the admin metadata endpoints and a health check.

This module is part of Shopkeeper.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..access import Subject
from ..config import ShopkeeperConfig
from ..constants import API_PREFIX, REQUEST_ID_HEADER
from ..core import ShopkeeperEngine
from ..exceptions import (AccessDeniedError, DuplicateValueError,
                          InvalidReferenceError)
from ..observability import (clear_correlation_id, clear_request_context,
                             set_correlation_id)
from .auth_routes import router as auth_router
from .dependencies import get_engine, require_admin, require_subject
from .routes import build_list_router

logger = logging.getLogger(__name__)


def _admin_router(admin_path: str) -> APIRouter:
    router = APIRouter(prefix=f"{admin_path}/api", tags=["admin"])

    @router.get("/lists")
    async def list_metadata(
        engine: ShopkeeperEngine = Depends(get_engine),
        subject: Subject = Depends(require_subject),
    ) -> List[Dict[str, Any]]:
        return [definition.describe() for definition in engine.registry]

    @router.get("/metrics")
    async def metrics(
        engine: ShopkeeperEngine = Depends(get_engine),
        subject: Subject = Depends(require_admin),
    ) -> Dict[str, Any]:
        return engine.get_metrics()

    return router


async def _access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
    return JSONResponse(
        status_code=403,
        content={
            "detail": exc.message,
            "list": exc.list_name,
            "operation": exc.operation,
        },
    )


async def _duplicate_value_handler(request: Request, exc: DuplicateValueError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": exc.message})


async def _invalid_reference_handler(
    request: Request, exc: InvalidReferenceError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "field": exc.field_name, "missing": exc.missing_ids},
    )


def create_app(engine: Optional[ShopkeeperEngine] = None) -> FastAPI:
    """
    Build the application.

    Args:
        engine: Engine to serve. Defaults to one configured from the
            environment. It is initialized on start-up unless it already is,
            and shut down on exit.
    """
    if engine is None:
        engine = ShopkeeperEngine(ShopkeeperConfig())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not engine.initialized:
            await engine.initialize()
        logger.info(f"Serving lists: {', '.join(engine.registry.names())}")
        yield
        await engine.shutdown()

    app = FastAPI(title="Shopkeeper", version=__version__, lifespan=lifespan)
    app.state.engine = engine

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
            clear_request_context()
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response

    app.add_exception_handler(AccessDeniedError, _access_denied_handler)
    app.add_exception_handler(DuplicateValueError, _duplicate_value_handler)
    app.add_exception_handler(InvalidReferenceError, _invalid_reference_handler)

    app.include_router(auth_router)
    for definition in engine.registry:
        app.include_router(build_list_router(definition), prefix=API_PREFIX)
    app.include_router(_admin_router(engine.config.admin_path))

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        database_ok = engine.initialized and await engine.ping()
        return {"status": "ok" if database_ok else "degraded", "database": database_ok}

    return app
