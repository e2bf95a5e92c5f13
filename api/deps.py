"""
Dependency injection for settings, the document store and the service core.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from tubeheads_backend.config import Settings, load_env, load_settings
from tubeheads_backend.db import DocumentStore, create_store
from tubeheads_backend.services import CoreServices, TmdbMetadataSource

logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    load_env()
    return load_settings()


@lru_cache
def _store_for(settings: Settings) -> DocumentStore:
    logger.info(f"Using {settings.store_backend} document store (schema={settings.db_schema})")
    return create_store(settings)


def get_store(settings: Annotated[Settings, Depends(get_settings)]) -> DocumentStore:
    return _store_for(settings)


@lru_cache
def _metadata_source_for(settings: Settings) -> TmdbMetadataSource | None:
    # One pooled requests session per process.
    if not settings.tmdb_api_key:
        return None
    return TmdbMetadataSource(api_key=settings.tmdb_api_key, timeout_seconds=settings.tmdb_timeout_seconds)


def get_services(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[DocumentStore, Depends(get_store)],
) -> CoreServices:
    return CoreServices.create(
        store,
        metadata_source=_metadata_source_for(settings),
        max_attempts=settings.cas_max_attempts,
    )


# Type aliases for dependency injection
AppSettings = Annotated[Settings, Depends(get_settings)]
Services = Annotated[CoreServices, Depends(get_services)]
