import pytest

from kfet.core import registry, schemas
from kfet.core.bootstrap import init_db, reset_db
from kfet.core.ledger import Ledger
from kfet.core.seed import DEPTS, SAMPLE_CUSTOMERS, YEARS, seed_demo_data


class SeedSpy:
    def __init__(self):
        self.calls = []

    async def __call__(self, ledger, empty_tables):
        self.calls.append(list(empty_tables))


@pytest.mark.asyncio
async def test_init_is_idempotent(executor, ledger: Ledger):
    await ledger.create_category(schemas.CategoryCreate(name="DI 3A", dept="DI", year="3A"))

    await init_db(executor)

    assert len(await ledger.list_categories()) == 1


@pytest.mark.asyncio
async def test_init_reports_empty_tables(executor):
    empty = await init_db(executor)

    assert empty == [entity.name for entity in registry.entities()]


@pytest.mark.asyncio
async def test_seed_runs_only_when_a_table_is_empty(executor, ledger: Ledger):
    spy = SeedSpy()
    await init_db(executor, seed=spy)
    assert len(spy.calls) == 1
    assert "customers" in spy.calls[0]

    category = await ledger.create_category(
        schemas.CategoryCreate(name="DI 3A", dept="DI", year="3A")
    )
    customer = await ledger.create_customer(
        schemas.CustomerCreate(first_name="Jean", last_name="Dupont", category_id=category.id)
    )
    product_category = await ledger.create_product_category(
        schemas.ProductCategoryCreate(name="Snacks")
    )
    product = await ledger.create_product(
        schemas.ProductCreate(
            name="Twix",
            price=1,
            price_for_kfetier=1,
            category_id=product_category.id,
        )
    )
    await ledger.place_order(
        {"customerId": customer.id, "productId": product.id, "quantity": 1, "totalPrice": 1}
    )
    await ledger.adjust_balance(customer.id, 5)

    await init_db(executor, seed=spy)
    assert len(spy.calls) == 1


@pytest.mark.asyncio
async def test_demo_seed(executor, ledger: Ledger):
    await init_db(executor, seed=seed_demo_data)

    assert len(await ledger.list_categories()) == len(DEPTS) * len(YEARS)
    customers = await ledger.list_customers()
    assert len(customers) == len(SAMPLE_CUSTOMERS)
    assert all(customer.category_name for customer in customers)


@pytest.mark.asyncio
async def test_reset_clears_every_table(executor, ledger: Ledger, test_customer, test_product):
    empty = await reset_db(executor)

    assert empty == [entity.name for entity in registry.entities()]
    assert await ledger.list_customers() == []
    assert await ledger.list_products() == []
