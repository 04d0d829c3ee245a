"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Request

from linkbio.config import Settings
from linkbio.db import DbClient, InMemoryDbClient, SqlDbClient


def build_db_client(settings: Settings) -> DbClient:
    """
    Construct the storage client selected by the settings. The caller owns
    it for the lifetime of the process and must close it on shutdown.
    """
    if settings.use_in_memory_backends:
        return InMemoryDbClient()
    return SqlDbClient(settings.database_url)


def get_db_client(request: Request) -> DbClient:
    """Return the storage client owned by the running application."""
    return request.app.state.db
