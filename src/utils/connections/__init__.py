"""
Connection factories for job sources and destinations.

Usage:
    from utils.connections import create_connection_factory

    source = create_connection_factory("sqlserver", "source", settings)
    conn = source()
"""

from typing import Any

from .base import ConnectionFactory
from .postgres import PostgresConnectionFactory
from .sqlserver import SQLServerConnectionFactory

FACTORIES: dict[str, type[ConnectionFactory]] = {
    "postgresql": PostgresConnectionFactory,
    "sqlserver": SQLServerConnectionFactory,
}


def create_connection_factory(
    database_type: str,
    role: str,
    settings: dict[str, Any],
) -> ConnectionFactory:
    """
    Build the factory for ``database_type`` from a settings dict.

    Raises:
        ValueError: If the database type is not supported
    """
    try:
        factory_cls = FACTORIES[database_type.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported database type: {database_type}. "
            f"Must be one of: {', '.join(sorted(FACTORIES))}"
        ) from None
    return factory_cls(role=role, **settings)


__all__ = [
    "ConnectionFactory",
    "PostgresConnectionFactory",
    "SQLServerConnectionFactory",
    "create_connection_factory",
]
