"""
FastAPI application for the MemPPI Atlas HTTP surface.

The store handle is built once per process (in the lifespan, unless one
is injected) and shared by the retrieval engines through ``app.state``.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config import AtlasSettings
from ..exceptions import AtlasError
from ..logging import setup_logging
from ..retrieval import SliceRetrievalEngine, StatsCollector, SubgraphExpander
from ..store import GraphStore, open_store
from .routes import router

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "bad_input": 400,
    "not_found": 404,
    "method_not_allowed": 405,
    "upstream_unavailable": 503,
    "internal": 500,
}

GENERIC_MESSAGES = {
    "upstream_unavailable": "Data store unavailable",
    "internal": "Internal server error",
}


def error_response(message: str, kind: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(kind, 500),
        content={"error": message, "kind": kind},
        headers=headers,
    )


def _bind_store(app: FastAPI, store: GraphStore, settings: AtlasSettings) -> None:
    app.state.store = store
    app.state.engine = SliceRetrievalEngine(store, page_size=settings.edge_page_size)
    app.state.expander = SubgraphExpander(store, page_size=settings.edge_page_size)
    app.state.stats = StatsCollector(
        store,
        batch_size=settings.scan_batch_size,
        batch_min=settings.scan_batch_min,
    )


def create_app(settings: AtlasSettings | None = None, store: GraphStore | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration (read from the environment when omitted)
        store: Pre-built store; when omitted one is opened at startup
            from ``settings`` and closed at shutdown
    """
    settings = settings or AtlasSettings()
    setup_logging("memppi_atlas.api", level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "store", None) is None:
            owned = open_store(settings)
            _bind_store(app, owned, settings)
        logger.info("MemPPI Atlas API ready")

        yield

        if owned is not None:
            logger.info("Closing store")
            owned.close()
            app.state.store = None

    app = FastAPI(
        title="MemPPI Atlas",
        description="Bounded slices of a membrane protein-protein interaction network",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = None
    if store is not None:
        _bind_store(app, store, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(AtlasError)
    async def handle_atlas_error(request: Request, exc: AtlasError) -> JSONResponse:
        kind = exc.kind if exc.kind in ERROR_STATUS else "internal"
        if kind in GENERIC_MESSAGES:
            logger.error("%s %s failed (%s): %s", request.method, request.url.path, kind, exc)
            return error_response(GENERIC_MESSAGES[kind], kind)
        return error_response(exc.message, kind)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        headers = getattr(exc, "headers", None)
        if exc.status_code == 405:
            return error_response("Method not allowed", "method_not_allowed", headers)
        if exc.status_code == 404:
            return error_response("Not found", "not_found", headers)
        if exc.status_code >= 500:
            return error_response(GENERIC_MESSAGES["internal"], "internal", headers)
        return error_response(str(exc.detail), "bad_input", headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected error in %s %s", request.method, request.url.path)
        return error_response(GENERIC_MESSAGES["internal"], "internal")

    app.include_router(router)
    return app
