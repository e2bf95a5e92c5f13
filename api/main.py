"""
TubeHeads Backend API - FastAPI application.

Provides endpoints for:
- Show records and their aggregate user ratings
- Reviews and review likes
- Watchlists and watched shows
- User show lists and list likes
- Trending, search and regional discovery via TMDb
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.deps import get_settings
from api.routers import discover, lists, reviews, shows, watchlist
from tubeheads_backend.errors import CatalogError
from tubeheads_backend.integrations.tmdb.client import TmdbClientError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(f"Starting TubeHeads API ({settings.store_backend} store, schema={settings.db_schema})")
    yield
    logger.info("Shutting down TubeHeads API")


app = FastAPI(
    title="TubeHeads API",
    description="Ratings, reviews, watchlists and show lists for TV shows",
    version="0.1.0",
    lifespan=lifespan,
)

# Credentials are only allowed with an explicit origin list.
_cors_origins = list(get_settings().cors_allow_origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins or ["*"],
    allow_credentials=bool(_cors_origins),
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(TmdbClientError)
async def tmdb_error_handler(request: Request, exc: TmdbClientError) -> JSONResponse:
    logger.error(f"TMDb error during {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Metadata provider error", "code": "upstream_error"})


for module in (shows, reviews, watchlist, lists, discover):
    app.include_router(module.router, prefix="/api/v1")


@app.get("/")
def root():
    return {"status": "ok", "service": "tubeheads-backend"}


@app.get("/health")
def health():
    return {"status": "healthy"}
