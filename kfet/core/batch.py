"""
BATCH COORDINATOR - multi-statement operations applied as one unit

Purpose:
    Every action that touches more than one row consistently is assembled
    here and sent through a single execute_batch call:

    - order placement:        insert order → debit customer
    - balance adjustment:     credit customer → insert money adjustment
    - deletion with policies: detach / cascade dependents → delete parent

Why:
    The balance of a customer must never change without its order or
    adjustment row, and a parent must never disappear while dependents
    still point at it.

Ordering:
    Dependent rows are always mutated before their parent is deleted.
    Balance mutations and parent deletions are "get" items: if the row
    they target does not exist the channel rolls the whole batch back.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Sequence

from kfet.core import models, registry, statements
from kfet.core.channel import Rows
from kfet.core.errors import RecordValidationError
from kfet.core.executor import ChannelAdapter
from kfet.core.statements import Statement


logger = logging.getLogger(__name__)


def _decimal(value: Any, field: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise RecordValidationError(f"{field}: expected a number", [field])
    if not number.is_finite():
        raise RecordValidationError(f"{field}: must be finite", [field])
    return number


class BatchCoordinator:
    """Builds invariant-preserving statement groups and dispatches them."""

    def __init__(self, executor: ChannelAdapter):
        self.executor = executor

    async def run(self, batch: Sequence[Statement]) -> List[Rows]:
        return await self.executor.execute_batch(list(batch))

    # ------------------------------------------------------------------
    # Plans (pure, nothing is sent)
    # ------------------------------------------------------------------

    def order_placement(
        self, order: Mapping[str, Any], customer_id: int
    ) -> List[Statement]:
        """Insert the order, then debit the buyer by its total price."""
        insert_order = statements.insert("orders", order)
        total_price = _decimal(order.get("totalPrice"), "totalPrice")
        debit = statements.increment(
            "customers", customer_id, "account", -total_price, method=statements.GET
        )
        return [insert_order, debit]

    def balance_adjustment(self, customer_id: int, amount: Any) -> List[Statement]:
        """Credit (or debit, when negative) the customer, then log the adjustment."""
        amount = _decimal(amount, "amount")
        credit = statements.increment(
            "customers", customer_id, "account", amount, method=statements.GET
        )
        audit = statements.insert(
            "money_adjustments", {"customerId": customer_id, "amount": amount}
        )
        return [credit, audit]

    def deletion(self, entity: "registry.EntitySpec | str", id: int) -> List[Statement]:
        """
        Delete one row after applying the declared policy to its dependents.

        Args:
            entity: Parent entity.
            id: Primary key of the row to delete.

        Returns:
            Statements in dispatch order, the parent deletion last.

        Example:
            deletion("productsCategories", 3)
            -> [DELETE FROM products WHERE categoryId = 3,
                DELETE FROM productsCategories WHERE id = 3 RETURNING ...]
        """
        entity = registry.resolve(entity)
        plan: List[Statement] = []

        for ref in registry.dependents_of(entity.name):
            scope = {ref.column: id}
            if ref.on_delete == models.CASCADE:
                plan.append(statements.delete_where(ref.entity, scope))
            elif ref.on_delete == models.DETACH:
                plan.append(statements.update_where(ref.entity, scope, {ref.column: None}))
            # KEEP: audit rows stay as recorded

        plan.append(statements.delete(entity, id, method=statements.GET))
        return plan

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def place_order(self, order: Mapping[str, Any], customer_id: int) -> List[Rows]:
        results = await self.run(self.order_placement(order, customer_id))
        logger.info(f"Order recorded, customer {customer_id} debited")
        return results

    async def adjust_balance(self, customer_id: int, amount: Any) -> List[Rows]:
        results = await self.run(self.balance_adjustment(customer_id, amount))
        logger.info(f"Balance of customer {customer_id} adjusted by {amount}")
        return results

    async def delete(self, entity: "registry.EntitySpec | str", id: int) -> List[Rows]:
        plan = self.deletion(entity, id)
        results = await self.run(plan)
        logger.info(f"Deleted {plan[-1].entity} {id} ({len(plan) - 1} dependent statements)")
        return results
