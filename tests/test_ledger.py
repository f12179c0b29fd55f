import asyncio
from decimal import Decimal

import pytest

from kfet.core import schemas, statements
from kfet.core.bootstrap import init_db
from kfet.core.errors import ChannelError, NotFoundError, RecordValidationError
from kfet.core.ledger import Ledger


@pytest.mark.asyncio
async def test_cashier_day(ledger: Ledger, test_customer, test_product, test_category):
    """Order, top-up and category removal keep the ledger consistent"""
    assert test_customer.account == Decimal("25.0")

    await ledger.place_order(
        schemas.OrderCreate(
            customer_id=test_customer.id,
            product_id=test_product.id,
            quantity=1,
            total_price=Decimal("4.0"),
        )
    )
    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("21.0")
    assert len(await ledger.list_orders(test_customer.id)) == 1

    adjustment = await ledger.adjust_balance(test_customer.id, Decimal("10.0"))
    assert adjustment.amount == Decimal("10.0")
    assert adjustment.customer_id == test_customer.id

    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("31.0")
    adjustments = await ledger.list_adjustments(test_customer.id)
    assert [a.amount for a in adjustments] == [Decimal("10.0")]

    await ledger.delete_category(test_category.id)
    customer = await ledger.get_customer(test_customer.id)
    assert customer.category_id is None
    assert customer.category_name is None


@pytest.mark.asyncio
async def test_customers_are_listed_with_their_category(
    ledger: Ledger, test_customer, test_category
):
    [customer] = await ledger.list_customers()

    assert customer.first_name == "Marie"
    assert customer.is_kfetier is True
    assert customer.dept == "DI"
    assert customer.year == "4A"
    assert customer.category_name == "DI 4A"

    assert await ledger.list_customers(category_id=test_category.id) == [customer]
    assert await ledger.list_customers(category_id=test_category.id + 1) == []


@pytest.mark.asyncio
async def test_create_applies_defaults(ledger: Ledger):
    customer = await ledger.create_customer(
        schemas.CustomerCreate(first_name="Alan", last_name="Turing")
    )

    assert customer.account == Decimal("0")
    assert customer.is_kfetier is False
    assert customer.category_id is None
    assert customer.created_at is not None


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(ledger: Ledger, test_customer):
    updated = await ledger.update_customer(
        test_customer.id, schemas.CustomerUpdate(is_kfetier=False)
    )

    assert updated.is_kfetier is False
    assert updated.first_name == test_customer.first_name
    assert updated.last_name == test_customer.last_name
    assert updated.account == test_customer.account
    assert updated.category_id == test_customer.category_id


@pytest.mark.asyncio
async def test_update_with_nothing_to_change_is_rejected(ledger: Ledger, test_customer):
    with pytest.raises(RecordValidationError):
        await ledger.update_customer(test_customer.id, schemas.CustomerUpdate())


@pytest.mark.asyncio
async def test_product_round_trip(ledger: Ledger, test_product, test_product_category):
    product = await ledger.get_product(test_product.id)

    assert product == test_product
    assert product.price == Decimal("1.5")
    assert product.price_for_three == Decimal("4.0")
    assert product.price_for_three_kfetier is None
    assert product.category_id == test_product_category.id


@pytest.mark.asyncio
async def test_deleting_product_category_removes_its_products(
    ledger: Ledger, test_product, test_product_category
):
    other = await ledger.create_product(
        schemas.ProductCreate(name="Chips", price=Decimal("1"), price_for_kfetier=Decimal("0.8"))
    )

    deleted = await ledger.delete_product_category(test_product_category.id)

    assert deleted.name == "Boissons"
    assert await ledger.list_products(test_product_category.id) == []
    assert [p.id for p in await ledger.list_products()] == [other.id]
    assert await ledger.list_product_categories() == []


@pytest.mark.asyncio
async def test_deleting_customer_keeps_history(ledger: Ledger, test_customer):
    await ledger.place_order(
        {"customerId": test_customer.id, "quantity": 2, "totalPrice": Decimal("3.0")}
    )
    await ledger.adjust_balance(test_customer.id, schemas.BalanceAdjustment(amount=5))

    await ledger.delete_customer(test_customer.id)

    with pytest.raises(NotFoundError):
        await ledger.get_customer(test_customer.id)
    assert len(await ledger.list_orders(test_customer.id)) == 1
    assert len(await ledger.list_adjustments(test_customer.id)) == 1


@pytest.mark.asyncio
async def test_anonymous_sale_touches_no_balance(ledger: Ledger, test_customer, test_product):
    order = await ledger.place_order(
        schemas.OrderCreate(product_id=test_product.id, quantity=3, total_price=Decimal("4.0"))
    )

    assert order.customer_id is None
    assert order.total_price == Decimal("4.0")
    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("25.0")


@pytest.mark.asyncio
async def test_total_price_is_taken_as_given(ledger: Ledger, test_customer, test_product):
    # 3 x 1.5 would be 4.5, the cashier charged the "for three" price
    order = await ledger.place_order(
        schemas.OrderCreate(
            customer_id=test_customer.id,
            product_id=test_product.id,
            quantity=3,
            total_price=Decimal("4.0"),
        )
    )

    assert order.total_price == Decimal("4.0")
    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("21.0")


@pytest.mark.asyncio
async def test_balance_may_go_negative(ledger: Ledger, test_customer):
    await ledger.adjust_balance(test_customer.id, Decimal("-30"))

    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("-5.0")


@pytest.mark.asyncio
async def test_order_for_missing_customer_records_nothing(ledger: Ledger):
    with pytest.raises(NotFoundError):
        await ledger.place_order(
            schemas.OrderCreate(customer_id=404, quantity=1, total_price=Decimal("1.0"))
        )

    assert await ledger.list_orders() == []


@pytest.mark.asyncio
async def test_adjusting_missing_customer_records_nothing(ledger: Ledger):
    with pytest.raises(NotFoundError):
        await ledger.adjust_balance(404, Decimal("10"))

    assert await ledger.list_adjustments() == []


@pytest.mark.asyncio
async def test_missing_rows_raise_not_found(ledger: Ledger):
    with pytest.raises(NotFoundError):
        await ledger.get_product(404)

    with pytest.raises(NotFoundError):
        await ledger.update_category(404, schemas.CategoryUpdate(name="x"))

    with pytest.raises(NotFoundError):
        await ledger.delete_product(404)


@pytest.mark.asyncio
async def test_departments_and_years_are_distinct(ledger: Ledger):
    for name, dept, year in [("DI 3A", "DI", "3A"), ("DI 4A", "DI", "4A"), ("DA 3A", "DA", "3A")]:
        await ledger.create_category(schemas.CategoryCreate(name=name, dept=dept, year=year))

    assert sorted(await ledger.list_departments()) == ["DA", "DI"]
    assert sorted(await ledger.list_years()) == ["3A", "4A"]


@pytest.mark.asyncio
async def test_concurrent_adjustments_are_all_applied(ledger: Ledger, test_customer):
    await asyncio.gather(
        *(ledger.adjust_balance(test_customer.id, Decimal("1.0")) for _ in range(5))
    )

    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("30.0")
    assert len(await ledger.list_adjustments(test_customer.id)) == 5


@pytest.mark.asyncio
async def test_balance_cannot_be_edited_without_audit(ledger: Ledger, test_customer):
    """The account only moves through orders and adjustments"""
    with pytest.raises(RecordValidationError):
        await ledger.update_customer(test_customer.id, {"account": Decimal("100")})

    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("25.0")
    assert await ledger.list_adjustments(test_customer.id) == []


@pytest.mark.asyncio
async def test_small_debits_leave_an_exact_balance(
    ledger: Ledger, test_customer, test_product
):
    for _ in range(3):
        await ledger.place_order(
            schemas.OrderCreate(
                customer_id=test_customer.id,
                product_id=test_product.id,
                quantity=1,
                total_price=Decimal("0.1"),
            )
        )

    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("24.70")
    assert str(customer.account) == "24.70"


@pytest.mark.asyncio
async def test_failed_audit_insert_undoes_the_credit(
    executor, ledger: Ledger, test_customer
):
    """Credit and adjustment row are applied together or not at all"""
    await executor.execute_one(statements.drop_table("money_adjustments"))

    with pytest.raises(ChannelError):
        await ledger.adjust_balance(test_customer.id, Decimal("10.0"))

    customer = await ledger.get_customer(test_customer.id)
    assert customer.account == Decimal("25.0")

    await init_db(executor)
    assert await ledger.list_adjustments(test_customer.id) == []
