from decimal import Decimal
from typing import List

import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from kfet.main import app
from kfet.core import schemas
from kfet.core.bootstrap import init_db
from kfet.core.channel import BatchItem, SqliteChannel
from kfet.core.database import get_ledger
from kfet.core.executor import ChannelAdapter
from kfet.core.ledger import Ledger


# Channel that records what it is asked to run and answers with empty rows
class RecordingChannel:
    def __init__(self):
        self.single_calls = []
        self.batch_calls: List[List[BatchItem]] = []

    async def execute_one(self, sql, params, method="all"):
        self.single_calls.append((sql, list(params), method))
        return []

    async def execute_batch(self, items):
        self.batch_calls.append(list(items))
        return [[] for _ in items]


# Channel whose transport is down
class BrokenChannel:
    async def execute_one(self, sql, params, method="all"):
        raise ConnectionError("execution channel unreachable")

    async def execute_batch(self, items):
        raise ConnectionError("execution channel unreachable")


# Fresh database file for every test
@pytest_asyncio.fixture(scope="function")
async def channel(tmp_path):
    channel = SqliteChannel(f"sqlite+aiosqlite:///{tmp_path / 'kfet_test.db'}")
    await channel.open()
    yield channel
    await channel.close()


@pytest_asyncio.fixture(scope="function")
async def executor(channel):
    executor = ChannelAdapter(channel)
    await init_db(executor)
    return executor


@pytest_asyncio.fixture(scope="function")
async def ledger(executor):
    return Ledger(executor)


# Client
@pytest_asyncio.fixture(scope="function")
async def client(ledger: Ledger):
    def override_get_ledger():
        return ledger

    app.dependency_overrides[get_ledger] = override_get_ledger

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# Category
@pytest_asyncio.fixture(scope="function")
async def test_category(ledger: Ledger):
    return await ledger.create_category(
        schemas.CategoryCreate(name="DI 4A", dept="DI", year="4A")
    )


# Customer with 25.0 on the account
@pytest_asyncio.fixture(scope="function")
async def test_customer(ledger: Ledger, test_category):
    return await ledger.create_customer(
        schemas.CustomerCreate(
            first_name="Marie",
            last_name="Curie",
            account=Decimal("25.0"),
            is_kfetier=True,
            category_id=test_category.id,
        )
    )


@pytest_asyncio.fixture(scope="function")
async def test_product_category(ledger: Ledger):
    return await ledger.create_product_category(
        schemas.ProductCategoryCreate(name="Boissons", image_path="static/drinks.png")
    )


@pytest_asyncio.fixture(scope="function")
async def test_product(ledger: Ledger, test_product_category):
    return await ledger.create_product(
        schemas.ProductCreate(
            name="Coca",
            price=Decimal("1.5"),
            price_for_three=Decimal("4.0"),
            price_for_kfetier=Decimal("1.2"),
            category_id=test_product_category.id,
        )
    )
