"""
In-memory stand-in for StorageClient.

Implements the same filter semantics as the Supabase-backed client: a None
value matches NULL and a list value matches any of its members.
"""

import copy
import uuid
from typing import Any, Mapping, Optional

import pytest

from sharedminds.core.database import StorageClient


def _matches(row: Mapping[str, Any], filters: Optional[Mapping[str, Any]]) -> bool:
    for column, value in (filters or {}).items():
        actual = row.get(column)
        if value is None:
            if actual is not None:
                return False
        elif isinstance(value, (list, tuple, set)):
            if actual not in value:
                return False
        elif actual != value:
            return False
    return True


class FakeStorage(StorageClient):
    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}

    def seed(self, table: str, *rows: dict[str, Any]) -> list[dict[str, Any]]:
        """Insert rows directly, assigning ids where missing."""
        stored = []
        for row in rows:
            row = {"id": str(uuid.uuid4()), **row}
            self.tables.setdefault(table, []).append(row)
            stored.append(row)
        return stored

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.get(table, [])

    async def select(
        self,
        table: str,
        *,
        filters=None,
        columns: str = "*",
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        found = [copy.deepcopy(r) for r in self.rows(table) if _matches(r, filters)]
        if order_by:
            found.sort(
                key=lambda r: (r.get(order_by) is None, str(r.get(order_by) or "")),
                reverse=descending,
            )
        if limit is not None:
            found = found[:limit]
        return found

    async def select_one(self, table: str, *, filters, columns: str = "*"):
        rows = await self.select(table, filters=filters, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        stored = self.seed(table, copy.deepcopy(row))[0]
        return copy.deepcopy(stored)

    async def update(self, table: str, values: dict[str, Any], *, filters) -> list[dict[str, Any]]:
        updated = []
        for row in self.rows(table):
            if _matches(row, filters):
                row.update(copy.deepcopy(values))
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, *, filters) -> int:
        kept = [r for r in self.rows(table) if not _matches(r, filters)]
        removed = len(self.rows(table)) - len(kept)
        self.tables[table] = kept
        return removed

    async def count(self, table: str, *, filters=None) -> int:
        return len([r for r in self.rows(table) if _matches(r, filters)])


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()
