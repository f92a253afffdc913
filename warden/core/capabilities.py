"""Schema capability descriptor.

Deployments of the platform database do not all carry every table (the
settings tables in particular are optional). Instead of probing with
try/except at every query, the set of present tables is read once and every
check or purge step consults it.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaCapabilities:
    """Immutable view of which tables exist in the connected database."""

    tables: frozenset[str]

    def has(self, table: str) -> bool:
        return table in self.tables

    def has_all(self, tables: Iterable[str]) -> bool:
        return all(t in self.tables for t in tables)

    def missing(self, tables: Iterable[str]) -> list[str]:
        return [t for t in tables if t not in self.tables]

    @classmethod
    def from_tables(cls, tables: Iterable[str]) -> "SchemaCapabilities":
        return cls(tables=frozenset(tables))


async def detect_capabilities(conn: AsyncConnection | AsyncSession) -> SchemaCapabilities:
    """Inspect the database behind ``conn`` and list its tables."""

    def _table_names(sync_conn: object) -> list[str]:
        return list(inspect(sync_conn).get_table_names())

    if isinstance(conn, AsyncSession):
        names = await conn.run_sync(lambda s: _table_names(s.connection()))
    else:
        names = await conn.run_sync(_table_names)

    capabilities = SchemaCapabilities.from_tables(names)
    logger.info("Detected %d tables in the connected database", len(capabilities.tables))
    return capabilities
