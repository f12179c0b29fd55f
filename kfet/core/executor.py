import logging
from typing import List, Sequence

from kfet.core.channel import BatchItem, ExecutionChannel, Rows
from kfet.core.errors import ChannelError, LedgerError
from kfet.core.statements import Statement


logger = logging.getLogger(__name__)


class ChannelAdapter:
    """
    Sole point of contact between the ledger and the execution channel.

    Any failure on the other side surfaces as one ChannelError for the
    whole call; a failed batch has applied nothing.

    Example:
        adapter = ChannelAdapter(SqliteChannel(url))
        rows = await adapter.execute_one(statements.select("categories"))
    """

    def __init__(self, channel: ExecutionChannel):
        self.channel = channel

    async def execute_one(self, statement: Statement) -> Rows:
        logger.debug(f"{statement.method} {statement.sql} {list(statement.params)}")
        try:
            return await self.channel.execute_one(
                statement.sql, list(statement.params), statement.method
            )
        except LedgerError:
            raise
        except Exception as error:
            logger.error(f"Statement on {statement.entity} failed: {error}")
            raise ChannelError(f"Statement on {statement.entity} failed: {error}") from error

    async def execute_batch(self, statements: Sequence[Statement]) -> List[Rows]:
        if not statements:
            return []

        items = [
            BatchItem(sql=stmt.sql, params=list(stmt.params), method=stmt.method)
            for stmt in statements
        ]
        summary = ", ".join(f"{stmt.entity}:{stmt.method}" for stmt in statements)
        logger.info(f"Dispatching batch of {len(items)} statements ({summary})")
        try:
            results = await self.channel.execute_batch(items)
        except LedgerError as error:
            logger.warning(f"Batch rolled back: {error}")
            raise
        except Exception as error:
            logger.error(f"Batch failed and was rolled back: {error}")
            raise ChannelError(f"Batch failed: {error}") from error

        if len(results) != len(items):
            raise ChannelError(
                f"Batch returned {len(results)} results for {len(items)} statements"
            )
        return results
