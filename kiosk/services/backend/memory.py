"""In-memory persistence backend loaded from YAML."""
import copy
import logging
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import yaml

from kiosk.core.errors import BackendError
from kiosk.db.models import Base
from kiosk.services.backend.base import Backend, Filters, Row, is_membership

logger = logging.getLogger(__name__)

RpcHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


def _matches(row: Row, filters: Optional[Filters]) -> bool:
    for column, expected in (filters or {}).items():
        value = row.get(column)
        if is_membership(expected):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def _sort_key(value: Any):
    # None sorts first, like NULLS FIRST on ascending order
    return (value is not None, value)


class InMemoryBackend(Backend):
    """Backend keeping every table as a list of dicts."""

    def __init__(self, tables: Optional[Dict[str, List[Row]]] = None):
        self.tables: Dict[str, List[Row]] = {name: [] for name in Base.metadata.tables}
        for name, rows in (tables or {}).items():
            self._check_table("load", name)
            self.tables[name] = [dict(row) for row in rows or []]
        self._rpc_handlers: Dict[str, RpcHandler] = {}
        self.query_log: List[str] = []

    @classmethod
    def from_yaml(cls, path) -> "InMemoryBackend":
        """Load tables from a YAML mapping of table name to rows."""
        with open(Path(path), "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(tables=data.get("tables", data))

    def register_rpc(self, name: str, handler: RpcHandler) -> None:
        """Register a coroutine answering ``rpc(name, args)``."""
        self._rpc_handlers[name] = handler

    def _check_table(self, operation: str, name: str) -> None:
        if name not in Base.metadata.tables:
            raise BackendError(operation, name, "unknown table")

    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        self._check_table("select", table)
        self.query_log.append(table)
        rows = [copy.deepcopy(r) for r in self.tables[table] if _matches(r, filters)]
        for key in reversed(list(order_by or ())):
            column = key.lstrip("-")
            rows.sort(key=lambda r: _sort_key(r.get(column)), reverse=key.startswith("-"))
        return rows if limit is None else rows[:limit]

    async def insert(self, table: str, row: Row) -> Row:
        self._check_table("insert", table)
        stored = dict(row)
        if stored.get("id") is None:
            stored["id"] = str(uuid.uuid4())
        self.tables[table].append(stored)
        return copy.deepcopy(stored)

    async def update(self, table: str, values: Row, filters: Filters) -> List[Row]:
        self._check_table("update", table)
        updated = []
        for row in self.tables[table]:
            if _matches(row, filters):
                row.update(values)
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, filters: Filters) -> int:
        self._check_table("delete", table)
        kept = [r for r in self.tables[table] if not _matches(r, filters)]
        removed = len(self.tables[table]) - len(kept)
        self.tables[table] = kept
        return removed

    async def rpc(self, name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        handler = self._rpc_handlers.get(name)
        if handler is None:
            raise BackendError("rpc", name, "function not found")
        return await handler(dict(args or {}))
