"""
EXECUTION CHANNEL - the process side that owns the database file

Purpose:
    The ledger never talks to the driver directly. It sends SQL text plus
    positional parameters over this boundary and gets back plain rows
    (lists of int / float / str / None).

    - execute_one(sql, params)  -> rows
    - execute_batch(items)      -> rows per item, one transaction for all

SqliteChannel implements the boundary with an SQLAlchemy async engine
over aiosqlite. Each call runs inside its own `engine.begin()` block, so a
batch either commits once or rolls back entirely.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from kfet.core.errors import ChannelError, EmptyResultError


logger = logging.getLogger(__name__)

Row = List[Any]
Rows = List[Row]


@dataclass
class BatchItem:
    sql: str
    params: List[Any] = field(default_factory=list)
    # "get" items must produce a row or the whole call is rolled back
    method: str = "all"


class ExecutionChannel(Protocol):
    async def execute_one(
        self, sql: str, params: Sequence[Any], method: str = "all"
    ) -> Rows: ...

    async def execute_batch(self, items: Sequence[BatchItem]) -> List[Rows]: ...


class SqliteChannel:
    """Owns the SQLite file and runs statements for the ledger."""

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self) -> "SqliteChannel":
        if self._engine is not None:
            return self

        # Create the folder holding the database file if it is missing
        database = make_url(self.database_url).database
        if database and database != ":memory:" and not database.startswith("file:"):
            Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_async_engine(self.database_url, echo=self.echo)
        logger.info(f"Execution channel opened on {self.database_url}")
        return self

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        logger.info("Execution channel closed")

    async def __aenter__(self) -> "SqliteChannel":
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ChannelError("Database not initialized")
        return self._engine

    @staticmethod
    async def _run(
        conn: AsyncConnection, sql: str, params: Sequence[Any]
    ) -> Rows:
        result = await conn.exec_driver_sql(sql, tuple(params))
        if not result.returns_rows:
            return []
        return [list(row) for row in result.fetchall()]

    async def execute_one(
        self, sql: str, params: Sequence[Any], method: str = "all"
    ) -> Rows:
        engine = self._require_engine()
        async with engine.begin() as conn:
            rows = await self._run(conn, sql, params)
            if method == "get" and not rows:
                raise EmptyResultError("statement returned no row", index=0)
            return rows

    async def execute_batch(self, items: Sequence[BatchItem]) -> List[Rows]:
        engine = self._require_engine()
        results: List[Rows] = []

        # Leaving the block with an exception rolls every item back
        async with engine.begin() as conn:
            for index, item in enumerate(items):
                rows = await self._run(conn, item.sql, item.params)
                if item.method == "get" and not rows:
                    raise EmptyResultError(
                        f"batch item {index} returned no row, batch rolled back",
                        index=index,
                    )
                results.append(rows)

        return results
