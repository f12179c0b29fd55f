"""
LEDGER - domain operations exposed to the presentation layer

Purpose:
    One coroutine per use case (list / create / update / delete per entity,
    place order, adjust balance). Each builds statements, sends them through
    the executor (or the batch coordinator when several rows must change
    together) and decodes the rows into pydantic records.

Usage:
    async with SqliteChannel(url) as channel:
        ledger = Ledger(ChannelAdapter(channel))
        order = await ledger.place_order(
            schemas.OrderCreate(customerId=1, productId=2, quantity=1, totalPrice=4)
        )
"""

import logging
from typing import Any, List, Optional, Sequence, Type

from kfet.core import codec, registry, schemas, statements
from kfet.core.batch import BatchCoordinator
from kfet.core.channel import Rows
from kfet.core.codec import RecordT
from kfet.core.errors import (
    DecodingError,
    EmptyResultError,
    NotFoundError,
    RecordValidationError,
)
from kfet.core.executor import ChannelAdapter
from kfet.core.registry import ColumnSpec
from kfet.core.statements import Join, Statement


logger = logging.getLogger(__name__)

CATEGORIES = "categories"
CUSTOMERS = "customers"
PRODUCT_CATEGORIES = "productsCategories"
PRODUCTS = "products"
ORDERS = "orders"
MONEY_ADJUSTMENTS = "money_adjustments"

# Customers are always listed with their cohort
CUSTOMER_CATEGORY = Join(
    CATEGORIES, {"dept": "dept", "year": "year", "categoryName": "name"}
)


def _first(columns: Sequence[ColumnSpec], rows: Rows, model: Type[RecordT]) -> RecordT:
    record = codec.decode_one(columns, rows, model)
    if record is None:
        raise DecodingError(f"expected a returned {model.__name__} row, got none")
    return record


class Ledger:
    """Domain operations over an explicit executor (no global handle)."""

    def __init__(self, executor: ChannelAdapter):
        self.executor = executor
        self.batches = BatchCoordinator(executor)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch(self, statement: Statement, model: Type[RecordT]) -> List[RecordT]:
        rows = await self.executor.execute_one(statement)
        return codec.decode_records(statement.columns, rows, model)

    async def _fetch_one(
        self, statement: Statement, model: Type[RecordT], missing: str
    ) -> RecordT:
        rows = await self.executor.execute_one(statement)
        record = codec.decode_one(statement.columns, rows, model)
        if record is None:
            raise NotFoundError(missing)
        return record

    async def _create(self, entity: str, record: Any, model: Type[RecordT]) -> RecordT:
        statement = statements.insert(entity, record)
        rows = await self.executor.execute_one(statement)
        created = _first(statement.columns, rows, model)
        logger.info(f"Created {entity} {getattr(created, 'id', '')}")
        return created

    async def _update(
        self, entity: str, id: int, changes: Any, model: Type[RecordT]
    ) -> RecordT:
        statement = statements.update(entity, id, changes)
        return await self._fetch_one(statement, model, f"{entity} {id} does not exist")

    async def _delete(self, entity: str, id: int, model: Type[RecordT]) -> RecordT:
        try:
            results = await self.batches.delete(entity, id)
        except EmptyResultError:
            raise NotFoundError(f"{entity} {id} does not exist")
        return _first(registry.get_entity(entity).columns, results[-1], model)

    async def count(self, entity: str, filters: statements.Filters = None) -> int:
        statement = statements.count(entity, filters)
        rows = await self.executor.execute_one(statement)
        return codec.decode_row(statement.columns, rows[0])["count"]

    async def _distinct(self, entity: str, column: str) -> List[str]:
        statement = statements.distinct(entity, column)
        rows = await self.executor.execute_one(statement)
        values = [row[column] for row in codec.decode_rows(statement.columns, rows)]
        return [value for value in values if value]

    # =========================
    # Categories
    # =========================

    async def list_categories(self) -> List[schemas.Category]:
        return await self._fetch(statements.select(CATEGORIES), schemas.Category)

    async def create_category(self, category: Any) -> schemas.Category:
        return await self._create(CATEGORIES, category, schemas.Category)

    async def update_category(self, category_id: int, changes: Any) -> schemas.Category:
        return await self._update(CATEGORIES, category_id, changes, schemas.Category)

    async def delete_category(self, category_id: int) -> schemas.Category:
        """Delete a cohort; its customers are kept with no category."""
        return await self._delete(CATEGORIES, category_id, schemas.Category)

    async def list_departments(self) -> List[str]:
        return await self._distinct(CATEGORIES, "dept")

    async def list_years(self) -> List[str]:
        return await self._distinct(CATEGORIES, "year")

    # =========================
    # Customers
    # =========================

    async def list_customers(
        self, category_id: Optional[int] = None
    ) -> List[schemas.Customer]:
        filters = {"categoryId": category_id} if category_id is not None else None
        statement = statements.select(
            CUSTOMERS, joins=[CUSTOMER_CATEGORY], filters=filters
        )
        return await self._fetch(statement, schemas.Customer)

    async def get_customer(self, customer_id: int) -> schemas.Customer:
        statement = statements.get(CUSTOMERS, customer_id, joins=[CUSTOMER_CATEGORY])
        return await self._fetch_one(
            statement, schemas.Customer, f"Customer {customer_id} does not exist"
        )

    async def create_customer(self, customer: Any) -> schemas.Customer:
        created = await self._create(CUSTOMERS, customer, schemas.Customer)
        return await self.get_customer(created.id)

    async def update_customer(self, customer_id: int, changes: Any) -> schemas.Customer:
        """Change a customer's details; the balance only moves through orders and adjustments."""
        changes = codec.payload_of(changes)
        if "account" in changes:
            raise RecordValidationError(
                "customers.account: use adjust_balance to change a balance", ["account"]
            )
        await self._update(CUSTOMERS, customer_id, changes, schemas.Customer)
        return await self.get_customer(customer_id)

    async def delete_customer(self, customer_id: int) -> schemas.Customer:
        """
        Delete a customer; their orders and adjustments stay on record.

        Those history rows keep the deleted customerId, so it may no longer
        resolve to a customer when read back.
        """
        return await self._delete(CUSTOMERS, customer_id, schemas.Customer)

    # =========================
    # Product categories
    # =========================

    async def list_product_categories(self) -> List[schemas.ProductCategory]:
        return await self._fetch(
            statements.select(PRODUCT_CATEGORIES), schemas.ProductCategory
        )

    async def create_product_category(self, category: Any) -> schemas.ProductCategory:
        return await self._create(PRODUCT_CATEGORIES, category, schemas.ProductCategory)

    async def update_product_category(
        self, category_id: int, changes: Any
    ) -> schemas.ProductCategory:
        return await self._update(
            PRODUCT_CATEGORIES, category_id, changes, schemas.ProductCategory
        )

    async def delete_product_category(self, category_id: int) -> schemas.ProductCategory:
        """Delete a product category together with all of its products."""
        return await self._delete(
            PRODUCT_CATEGORIES, category_id, schemas.ProductCategory
        )

    # =========================
    # Products
    # =========================

    async def list_products(
        self, category_id: Optional[int] = None
    ) -> List[schemas.Product]:
        filters = {"categoryId": category_id} if category_id is not None else None
        return await self._fetch(
            statements.select(PRODUCTS, filters=filters), schemas.Product
        )

    async def get_product(self, product_id: int) -> schemas.Product:
        return await self._fetch_one(
            statements.get(PRODUCTS, product_id),
            schemas.Product,
            f"Product {product_id} does not exist",
        )

    async def create_product(self, product: Any) -> schemas.Product:
        return await self._create(PRODUCTS, product, schemas.Product)

    async def update_product(self, product_id: int, changes: Any) -> schemas.Product:
        return await self._update(PRODUCTS, product_id, changes, schemas.Product)

    async def delete_product(self, product_id: int) -> schemas.Product:
        """Delete a product; orders keep its (now dangling) productId."""
        return await self._delete(PRODUCTS, product_id, schemas.Product)

    # =========================
    # Orders and balance
    # =========================

    async def place_order(self, order: Any) -> schemas.Order:
        """
        Record an order and debit the buyer in the same atomic batch.

        Anonymous (cash) sales have no customer and only insert the order.
        The total price is taken as given, never recomputed.

        Args:
            order: OrderCreate or mapping with customerId, productId,
                quantity and totalPrice.

        Returns:
            The stored order.

        Raises:
            RecordValidationError: quantity or totalPrice missing.
            NotFoundError: the customer does not exist (nothing recorded).
            ChannelError: the batch failed (nothing recorded).
        """
        payload = codec.payload_of(order)
        customer_id = payload.get("customerId")

        if customer_id is None:
            return await self._create(ORDERS, payload, schemas.Order)

        try:
            results = await self.batches.place_order(payload, customer_id)
        except EmptyResultError:
            raise NotFoundError(f"Customer {customer_id} does not exist")
        return _first(registry.get_entity(ORDERS).columns, results[0], schemas.Order)

    async def list_orders(
        self, customer_id: Optional[int] = None
    ) -> List[schemas.Order]:
        filters = {"customerId": customer_id} if customer_id is not None else None
        return await self._fetch(
            statements.select(ORDERS, filters=filters), schemas.Order
        )

    async def adjust_balance(self, customer_id: int, amount: Any) -> schemas.MoneyAdjustment:
        """
        Credit a customer's account (debit when negative) and append the
        matching money adjustment, both or neither.
        """
        if isinstance(amount, schemas.BalanceAdjustment):
            amount = amount.amount

        try:
            results = await self.batches.adjust_balance(customer_id, amount)
        except EmptyResultError:
            raise NotFoundError(f"Customer {customer_id} does not exist")
        return _first(
            registry.get_entity(MONEY_ADJUSTMENTS).columns,
            results[1],
            schemas.MoneyAdjustment,
        )

    async def list_adjustments(
        self, customer_id: Optional[int] = None
    ) -> List[schemas.MoneyAdjustment]:
        filters = {"customerId": customer_id} if customer_id is not None else None
        return await self._fetch(
            statements.select(MONEY_ADJUSTMENTS, filters=filters),
            schemas.MoneyAdjustment,
        )
