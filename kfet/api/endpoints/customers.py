import logging
from typing import Annotated, List, Optional
from fastapi import APIRouter, HTTPException, status, Depends

from kfet.core import schemas
from kfet.core.database import get_ledger
from kfet.core.errors import LedgerError, NotFoundError, RecordValidationError
from kfet.core.ledger import Ledger

router = APIRouter(prefix="/customers", tags=["Customers"])

ledger_dep = Annotated[Ledger, Depends(get_ledger)]


@router.get("", response_model=List[schemas.Customer])
async def list_customers(ledger: ledger_dep, category_id: Optional[int] = None):
    try:
        return await ledger.list_customers(category_id)
    except LedgerError as error:
        logging.error(f"Failed to list customers: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list customers"
        )


@router.get("/{customer_id}", response_model=schemas.Customer)
async def get_customer(customer_id: int, ledger: ledger_dep):
    try:
        return await ledger.get_customer(customer_id)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except LedgerError as error:
        logging.error(f"Failed to read customer {customer_id}: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to read the customer"
        )


@router.post(
    "", response_model=schemas.Customer, status_code=status.HTTP_201_CREATED
)
async def create_customer(customer: schemas.CustomerCreate, ledger: ledger_dep):
    try:
        return await ledger.create_customer(customer)
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to add a customer: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to add a customer"
        )


@router.patch("/{customer_id}", response_model=schemas.Customer)
async def update_customer(
    customer_id: int, changes: schemas.CustomerUpdate, ledger: ledger_dep
):
    try:
        return await ledger.update_customer(customer_id, changes)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to update customer {customer_id}: {error}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Update failed")


@router.delete("/{customer_id}", response_model=schemas.Customer)
async def delete_customer(customer_id: int, ledger: ledger_dep):
    try:
        return await ledger.delete_customer(customer_id)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except LedgerError as error:
        logging.error(f"Failed to delete customer {customer_id}: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete a customer"
        )


# Manual top-up: credits the account and appends an audit row
@router.post(
    "/{customer_id}/adjustments",
    response_model=schemas.MoneyAdjustment,
    status_code=status.HTTP_201_CREATED,
)
async def adjust_balance(
    customer_id: int, adjustment: schemas.BalanceAdjustment, ledger: ledger_dep
):
    try:
        return await ledger.adjust_balance(customer_id, adjustment)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to adjust balance of customer {customer_id}: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to adjust the balance"
        )


@router.get(
    "/{customer_id}/adjustments", response_model=List[schemas.MoneyAdjustment]
)
async def list_adjustments(customer_id: int, ledger: ledger_dep):
    try:
        return await ledger.list_adjustments(customer_id)
    except LedgerError as error:
        logging.error(f"Failed to list adjustments: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list adjustments"
        )
