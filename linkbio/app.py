"""
FastAPI application entry point for the portfolio backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from linkbio.config import Settings, get_settings
from linkbio.db import DbClient
from linkbio.dependencies import build_db_client
from linkbio.routes import router

logger = logging.getLogger(__name__)

ROUTE_NOT_FOUND = "Route not found"

PATH_ID_NOT_FOUND = {
    "category_id": "Category not found",
    "link_id": "Link not found",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # Routing misses (unknown path, or a known path with the wrong method)
    # carry the framework's default detail.
    if exc.status_code in (404, 405) and exc.detail in (
        "Not Found",
        "Method Not Allowed",
    ):
        return _error(404, ROUTE_NOT_FOUND)
    return _error(exc.status_code, str(exc.detail))


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _error(400, "Invalid request")
    first = errors[0]
    loc = tuple(first.get("loc", ()))
    # An id that is not a number cannot name an existing row.
    if len(loc) == 2 and loc[0] == "path" and loc[1] in PATH_ID_NOT_FOUND:
        return _error(404, PATH_ID_NOT_FOUND[loc[1]])
    location = ".".join(str(part) for part in loc)
    return _error(400, f"Invalid request: {location}: {first.get('msg', '')}")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return _error(500, "Server error")


def create_app(
    db: Optional[DbClient] = None, settings: Optional[Settings] = None
) -> FastAPI:
    settings = settings or get_settings()
    if db is None:
        db = build_db_client(settings)
    db.initialize()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Closing storage client %s", type(app.state.db).__name__)
        app.state.db.close()

    app = FastAPI(title="Link-in-bio Portfolio", version="0.1.0", lifespan=lifespan)
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(router, prefix=settings.api_prefix)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")
    else:
        logger.warning("Static directory %s not found; front end disabled", static_dir)

    @app.get("/", include_in_schema=False)
    def serve_index():
        index = static_dir / "index.html"
        if not index.is_file():
            raise HTTPException(status_code=404, detail=ROUTE_NOT_FOUND)
        return FileResponse(index)

    return app
