import logging
from typing import Any, Mapping

from fastapi import Request
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from sharedminds.core.settings import Settings
from sharedminds.shared.exceptions import StorageOperationError

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Filters = Mapping[str, Any]


class StorageClient:
    """
    Thin row-CRUD wrapper over the Supabase async client.

    Filters are equality maps: a ``None`` value matches ``IS NULL`` and a
    list/tuple/set value matches ``IN``. Every failure is re-raised as a
    StorageOperationError that names the attempted operation.
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    @classmethod
    async def connect(cls, settings: Settings) -> "StorageClient":
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required for storage"
            )
        client = await acreate_client(
            settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY
        )
        return cls(client)

    @staticmethod
    def _apply_filters(query: Any, filters: Filters | None) -> Any:
        for column, value in (filters or {}).items():
            if value is None:
                query = query.is_(column, "null")
            elif isinstance(value, (list, tuple, set)):
                query = query.in_(column, list(value))
            else:
                query = query.eq(column, value)
        return query

    async def select(
        self,
        table: str,
        *,
        filters: Filters | None = None,
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        try:
            query = self._apply_filters(
                self.client.table(table).select(columns), filters
            )
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            response = await query.execute()
        except APIError as e:
            raise StorageOperationError(f"select {table}", e.message or e)
        return list(response.data or [])

    async def select_one(
        self, table: str, *, filters: Filters, columns: str = "*"
    ) -> Row | None:
        """Return the first matching row, or None when nothing matches."""
        rows = await self.select(table, filters=filters, columns=columns, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, row: Row) -> Row:
        try:
            response = await self.client.table(table).insert(row).execute()
        except APIError as e:
            raise StorageOperationError(f"insert into {table}", e.message or e)
        if not response.data:
            raise StorageOperationError(f"insert into {table}", "no row returned")
        return response.data[0]

    async def update(self, table: str, values: Row, *, filters: Filters) -> list[Row]:
        if not filters:
            raise StorageOperationError(f"update {table}", "refusing unfiltered update")
        try:
            query = self._apply_filters(self.client.table(table).update(values), filters)
            response = await query.execute()
        except APIError as e:
            raise StorageOperationError(f"update {table}", e.message or e)
        return list(response.data or [])

    async def delete(self, table: str, *, filters: Filters) -> int:
        if not filters:
            raise StorageOperationError(f"delete from {table}", "refusing unfiltered delete")
        try:
            query = self._apply_filters(self.client.table(table).delete(), filters)
            response = await query.execute()
        except APIError as e:
            raise StorageOperationError(f"delete from {table}", e.message or e)
        return len(response.data or [])

    async def count(self, table: str, *, filters: Filters | None = None) -> int:
        try:
            query = self._apply_filters(
                self.client.table(table).select("id", count="exact"), filters
            )
            response = await query.execute()
        except APIError as e:
            raise StorageOperationError(f"count {table}", e.message or e)
        if response.count is not None:
            return response.count
        return len(response.data or [])


async def get_db(request: Request) -> StorageClient:
    """Storage dependency for FastAPI dependency injection."""
    return request.app.state.storage
