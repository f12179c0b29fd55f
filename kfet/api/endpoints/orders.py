import logging
from typing import Annotated, List, Optional
from fastapi import APIRouter, HTTPException, status, Depends

from kfet.core import schemas
from kfet.core.database import get_ledger
from kfet.core.errors import LedgerError, NotFoundError, RecordValidationError
from kfet.core.ledger import Ledger

router = APIRouter(prefix="/orders", tags=["Orders"])

ledger_dep = Annotated[Ledger, Depends(get_ledger)]


@router.get("", response_model=List[schemas.Order])
async def list_orders(ledger: ledger_dep, customer_id: Optional[int] = None):
    try:
        return await ledger.list_orders(customer_id)
    except LedgerError as error:
        logging.error(f"Failed to list orders: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list orders"
        )


# Records the order and debits the customer's account, both or neither
@router.post("", response_model=schemas.Order, status_code=status.HTTP_201_CREATED)
async def place_order(order: schemas.OrderCreate, ledger: ledger_dep):
    try:
        return await ledger.place_order(order)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to place an order: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to place the order"
        )
