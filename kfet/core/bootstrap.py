import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from kfet.core import registry, statements
from kfet.core.executor import ChannelAdapter
from kfet.core.ledger import Ledger


logger = logging.getLogger(__name__)

# seed(ledger, empty_tables) fills whatever it knows about among empty tables
Seeder = Callable[[Ledger, Sequence[str]], Awaitable[None]]


async def init_db(executor: ChannelAdapter, seed: Optional[Seeder] = None) -> List[str]:
    """
    Create every table if absent, then seed when some table is empty.

    Args:
        executor: Adapter bound to an open channel.
        seed: Optional demo-data routine.

    Returns:
        Names of the tables that were empty before seeding.

    Example:
        empty = await init_db(executor, seed=seed_demo_data)
    """
    # Parents first so references always point at an existing table
    create = [statements.create_table(entity) for entity in registry.entities()]
    await executor.execute_batch(create)

    ledger = Ledger(executor)
    empty = []
    for entity in registry.entities():
        if await ledger.count(entity.name) == 0:
            empty.append(entity.name)

    logger.info(f"Database ready, empty tables: {', '.join(empty) or 'none'}")

    if seed is not None and empty:
        await seed(ledger, empty)

    return empty


async def reset_db(executor: ChannelAdapter, seed: Optional[Seeder] = None) -> List[str]:
    """Drop every table (children before parents) and initialize again."""
    logger.warning("Resetting database (dropping and creating tables)...")

    drop = [statements.drop_table(entity) for entity in reversed(registry.entities())]
    await executor.execute_batch(drop)

    return await init_db(executor, seed)
