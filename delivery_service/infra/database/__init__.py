"""Database infrastructure: engine, session factory and lifecycle."""

from delivery_service.infra.database.session import (
    build_engine,
    build_session_factory,
    close_database,
    init_database,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "close_database",
    "init_database",
]
