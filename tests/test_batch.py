from decimal import Decimal

import pytest

from kfet.core import statements
from kfet.core.batch import BatchCoordinator
from kfet.core.errors import ChannelError, EmptyResultError, RecordValidationError
from kfet.core.executor import ChannelAdapter
from kfet.core.statements import Statement

from conftest import BrokenChannel, RecordingChannel


def test_order_placement_inserts_then_debits():
    coordinator = BatchCoordinator(ChannelAdapter(RecordingChannel()))
    plan = coordinator.order_placement(
        {"customerId": 4, "productId": 2, "quantity": 1, "totalPrice": Decimal("4.0")}, 4
    )

    assert [stmt.entity for stmt in plan] == ["orders", "customers"]
    assert plan[0].sql.startswith("INSERT INTO orders")
    assert plan[1].sql.startswith("UPDATE customers")
    assert plan[1].params[-2:] == (-4.0, 4)
    assert plan[1].method == statements.GET


def test_order_placement_requires_total_price():
    coordinator = BatchCoordinator(ChannelAdapter(RecordingChannel()))
    with pytest.raises(RecordValidationError):
        coordinator.order_placement({"customerId": 4, "quantity": 1}, 4)


def test_balance_adjustment_credits_then_audits():
    coordinator = BatchCoordinator(ChannelAdapter(RecordingChannel()))
    plan = coordinator.balance_adjustment(4, Decimal("10.0"))

    assert [stmt.entity for stmt in plan] == ["customers", "money_adjustments"]
    assert plan[0].params[-2:] == (10.0, 4)
    assert plan[1].params == (4, 10.0)


def test_product_category_deletion_cascades_products_first():
    coordinator = BatchCoordinator(ChannelAdapter(RecordingChannel()))
    plan = coordinator.deletion("productsCategories", 3)

    assert len(plan) == 2
    assert plan[0].sql.startswith("DELETE FROM products WHERE")
    assert plan[0].params == (3,)
    assert plan[1].sql.startswith('DELETE FROM "productsCategories"')
    assert plan[1].method == statements.GET


def test_category_deletion_detaches_customers_first():
    coordinator = BatchCoordinator(ChannelAdapter(RecordingChannel()))
    plan = coordinator.deletion("categories", 3)

    assert len(plan) == 2
    assert plan[0].sql.startswith("UPDATE customers SET")
    # SET categoryId = NULL, scoped by the old category
    assert plan[0].params == (None, 3)
    assert plan[1].sql.startswith("DELETE FROM categories")


def test_customer_deletion_keeps_audit_rows():
    coordinator = BatchCoordinator(ChannelAdapter(RecordingChannel()))
    plan = coordinator.deletion("customers", 9)

    assert [stmt.entity for stmt in plan] == ["customers"]


@pytest.mark.asyncio
async def test_batch_is_sent_as_one_ordered_call():
    channel = RecordingChannel()
    coordinator = BatchCoordinator(ChannelAdapter(channel))

    await coordinator.adjust_balance(4, Decimal("2.5"))

    assert channel.single_calls == []
    assert len(channel.batch_calls) == 1
    items = channel.batch_calls[0]
    assert [item.method for item in items] == ["get", "all"]
    assert items[0].sql.startswith("UPDATE customers")
    assert items[1].sql.startswith("INSERT INTO money_adjustments")


@pytest.mark.asyncio
async def test_transport_failure_is_one_channel_error():
    coordinator = BatchCoordinator(ChannelAdapter(BrokenChannel()))

    with pytest.raises(ChannelError):
        await coordinator.adjust_balance(4, Decimal("2.5"))


@pytest.mark.asyncio
async def test_failed_batch_applies_nothing(executor, ledger, test_customer):
    """A failing statement rolls back the statements before it"""
    insert_order = statements.insert(
        "orders",
        {"customerId": test_customer.id, "quantity": 1, "totalPrice": Decimal("4.0")},
    )
    broken = Statement(sql="UPDATE missing_table SET x = 1", entity="missing_table")

    with pytest.raises(ChannelError):
        await executor.execute_batch([insert_order, broken])

    assert await ledger.count("orders") == 0


@pytest.mark.asyncio
async def test_guarded_item_without_row_rolls_back(executor, ledger):
    coordinator = BatchCoordinator(executor)

    with pytest.raises(EmptyResultError) as excinfo:
        await coordinator.place_order(
            {"customerId": 999, "quantity": 1, "totalPrice": Decimal("4.0")}, 999
        )

    assert excinfo.value.index == 1
    assert await ledger.count("orders") == 0


@pytest.mark.asyncio
async def test_failed_batch_leaves_balance_untouched(executor, ledger, test_customer):
    """An order and its debit are undone together when a later item fails"""
    coordinator = BatchCoordinator(executor)
    plan = coordinator.order_placement(
        {"customerId": test_customer.id, "quantity": 1, "totalPrice": Decimal("4.0")},
        test_customer.id,
    )
    broken = Statement(sql="UPDATE missing_table SET x = 1", entity="missing_table")

    with pytest.raises(ChannelError):
        await executor.execute_batch(plan + [broken])

    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("25.0")
    assert await ledger.count("orders") == 0
