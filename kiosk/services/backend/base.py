"""Persistence backend interface."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

Row = Dict[str, Any]
Filters = Dict[str, Any]


class Backend(ABC):
    """Typed query/RPC access to the hosted database.

    Filters map a column name to either a scalar (equality) or a list,
    tuple or set (membership). ``order_by`` lists column names; a leading
    ``-`` sorts descending.
    """

    @abstractmethod
    async def query(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """Select rows from a table, at most ``limit`` when given."""
        pass

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as stored."""
        pass

    @abstractmethod
    async def update(self, table: str, values: Row, filters: Filters) -> List[Row]:
        """Update matching rows and return them."""
        pass

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> int:
        """Delete matching rows and return how many were removed."""
        pass

    @abstractmethod
    async def rpc(self, name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """Call a server-side function."""
        pass

    async def query_one(self, table: str, filters: Optional[Filters] = None) -> Optional[Row]:
        """Return the first matching row, or None."""
        rows = await self.query(table, filters)
        return rows[0] if rows else None

    async def count(self, table: str, filters: Optional[Filters] = None) -> int:
        """Count matching rows."""
        return len(await self.query(table, filters))


def is_membership(value: Any) -> bool:
    """Whether a filter value means "column IN value"."""
    return isinstance(value, (list, tuple, set, frozenset))
