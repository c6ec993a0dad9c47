"""SQLAlchemy-backed persistence backend."""
import logging
import re
import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Table, delete, insert, select, text, update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kiosk.core.errors import AuthorizationError, BackendError
from kiosk.db.models import Base
from kiosk.services.backend.base import Backend, Filters, Row, is_membership

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_PERMISSION_MARKERS = ("permission denied", "insufficient_privilege", "not authorized", "jwt expired")


class SqlBackend(Backend):
    """Backend over the ORM tables of ``kiosk.db.models``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    def _table(self, operation: str, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise BackendError(operation, name, "unknown table")
        return table

    def _where(self, operation: str, table: Table, filters: Optional[Filters]):
        clauses = []
        for column_name, value in (filters or {}).items():
            if column_name not in table.c:
                raise BackendError(operation, table.name, f"unknown column '{column_name}'")
            column = table.c[column_name]
            if is_membership(value):
                clauses.append(column.in_(list(value)))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)
        return clauses

    def _wrap(self, operation: str, target: str, exc: SQLAlchemyError) -> BackendError:
        message = str(getattr(exc, "orig", None) or exc)
        pgcode = getattr(getattr(exc, "orig", None), "pgcode", None)
        if pgcode == "42501" or any(marker in message.lower() for marker in _PERMISSION_MARKERS):
            return AuthorizationError(operation, target, message)
        return BackendError(operation, target, message)

    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        tbl = self._table("select", table)
        stmt = select(tbl).where(*self._where("select", tbl, filters))
        for key in order_by or ():
            descending = key.startswith("-")
            column = tbl.c[key.lstrip("-")]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            logger.error(f"[BACKEND] select {table} failed: {e}")
            raise self._wrap("select", table, e) from e

    async def insert(self, table: str, row: Row) -> Row:
        tbl = self._table("insert", table)
        values = dict(row)
        if "id" in tbl.c and values.get("id") is None:
            values["id"] = str(uuid.uuid4())
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(insert(tbl).values(**values))
                result = await session.execute(select(tbl).where(tbl.c.id == values["id"]))
                return dict(result.one()._mapping)
        except SQLAlchemyError as e:
            logger.error(f"[BACKEND] insert {table} failed: {e}")
            raise self._wrap("insert", table, e) from e

    async def update(self, table: str, values: Row, filters: Filters) -> List[Row]:
        tbl = self._table("update", table)
        clauses = self._where("update", tbl, filters)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(update(tbl).where(*clauses).values(**values))
                result = await session.execute(select(tbl).where(*clauses))
                return [dict(r._mapping) for r in result]
        except SQLAlchemyError as e:
            logger.error(f"[BACKEND] update {table} failed: {e}")
            raise self._wrap("update", table, e) from e

    async def delete(self, table: str, filters: Filters) -> int:
        tbl = self._table("delete", table)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(delete(tbl).where(*self._where("delete", tbl, filters)))
                return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"[BACKEND] delete {table} failed: {e}")
            raise self._wrap("delete", table, e) from e

    async def rpc(self, name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """Call a SQL function using named-argument notation."""
        args = args or {}
        if not _IDENTIFIER.match(name) or not all(_IDENTIFIER.match(k) for k in args):
            raise BackendError("rpc", name, "invalid function or argument name")
        params = ", ".join(f"{key} => :{key}" for key in args)
        stmt = text(f"SELECT {name}({params}) AS result")
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt, args)
                    return result.scalar()
        except DBAPIError as e:
            logger.warning(f"[BACKEND] rpc {name} failed: {type(e).__name__}")
            raise self._wrap("rpc", name, e) from e
        except SQLAlchemyError as e:
            logger.error(f"[BACKEND] rpc {name} failed: {e}")
            raise self._wrap("rpc", name, e) from e
