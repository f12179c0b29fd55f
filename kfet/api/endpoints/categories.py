import logging
from typing import Annotated, List
from fastapi import APIRouter, HTTPException, status, Depends

from kfet.core import schemas
from kfet.core.database import get_ledger
from kfet.core.errors import LedgerError, NotFoundError, RecordValidationError
from kfet.core.ledger import Ledger

router = APIRouter(prefix="/categories", tags=["Categories"])

ledger_dep = Annotated[Ledger, Depends(get_ledger)]


@router.get("", response_model=List[schemas.Category])
async def list_categories(ledger: ledger_dep):
    try:
        return await ledger.list_categories()
    except LedgerError as error:
        logging.error(f"Failed to list categories: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list categories"
        )


# Distinct values for the customer filters
@router.get("/departments", response_model=List[str])
async def list_departments(ledger: ledger_dep):
    try:
        return await ledger.list_departments()
    except LedgerError as error:
        logging.error(f"Failed to list departments: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list departments"
        )


@router.get("/years", response_model=List[str])
async def list_years(ledger: ledger_dep):
    try:
        return await ledger.list_years()
    except LedgerError as error:
        logging.error(f"Failed to list years: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list years"
        )


@router.post(
    "", response_model=schemas.Category, status_code=status.HTTP_201_CREATED
)
async def create_category(category: schemas.CategoryCreate, ledger: ledger_dep):
    try:
        return await ledger.create_category(category)
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to add a category: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to add a category"
        )


@router.patch("/{category_id}", response_model=schemas.Category)
async def update_category(
    category_id: int, changes: schemas.CategoryUpdate, ledger: ledger_dep
):
    try:
        return await ledger.update_category(category_id, changes)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to update category {category_id}: {error}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Update failed")


# Customers of the category are kept, only their category is cleared
@router.delete("/{category_id}", response_model=schemas.Category)
async def delete_category(category_id: int, ledger: ledger_dep):
    try:
        return await ledger.delete_category(category_id)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except LedgerError as error:
        logging.error(f"Failed to delete category {category_id}: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete a category"
        )
