"""Row counts for the user-graph tables."""

import logging

from sqlalchemy import func, select, table
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.capabilities import SchemaCapabilities
from warden.schemas.integrity import TableSort, TableStat, UserTable

logger = logging.getLogger(__name__)


class TableStatsService:
    """Counts rows per table.

    Table names only ever come from ``UserTable`` members, so no request
    string reaches the SQL text.
    """

    def __init__(self, db: AsyncSession, capabilities: SchemaCapabilities) -> None:
        self.db = db
        self.capabilities = capabilities

    async def get_table_statistics(
        self,
        tables: list[UserTable] | None = None,
        sort: TableSort = TableSort.ROW_COUNT,
    ) -> list[TableStat]:
        requested = list(dict.fromkeys(tables)) if tables else list(UserTable)

        stats: list[TableStat] = []
        for user_table in requested:
            if not self.capabilities.has(user_table.value):
                logger.debug("Table %s not present, omitted from statistics", user_table.value)
                continue
            count = await self.db.scalar(
                select(func.count()).select_from(table(user_table.value))
            )
            stats.append(TableStat(table=user_table.value, row_count=count or 0))

        if sort is TableSort.TABLE_NAME:
            stats.sort(key=lambda s: s.table)
        else:
            stats.sort(key=lambda s: (-s.row_count, s.table))
        return stats
