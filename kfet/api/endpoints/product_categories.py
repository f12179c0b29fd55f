import logging
from typing import Annotated, List
from fastapi import APIRouter, HTTPException, status, Depends

from kfet.core import schemas
from kfet.core.database import get_ledger
from kfet.core.errors import LedgerError, NotFoundError, RecordValidationError
from kfet.core.ledger import Ledger

router = APIRouter(prefix="/product-categories", tags=["Product categories"])

ledger_dep = Annotated[Ledger, Depends(get_ledger)]


@router.get("", response_model=List[schemas.ProductCategory])
async def list_product_categories(ledger: ledger_dep):
    try:
        return await ledger.list_product_categories()
    except LedgerError as error:
        logging.error(f"Failed to list product categories: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list product categories"
        )


@router.post(
    "", response_model=schemas.ProductCategory, status_code=status.HTTP_201_CREATED
)
async def create_product_category(
    category: schemas.ProductCategoryCreate, ledger: ledger_dep
):
    try:
        return await ledger.create_product_category(category)
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to add a product category: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to add a product category"
        )


@router.patch("/{category_id}", response_model=schemas.ProductCategory)
async def update_product_category(
    category_id: int, changes: schemas.ProductCategoryUpdate, ledger: ledger_dep
):
    try:
        return await ledger.update_product_category(category_id, changes)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to update product category {category_id}: {error}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Update failed")


# Deletes every product of the category as well
@router.delete("/{category_id}", response_model=schemas.ProductCategory)
async def delete_product_category(category_id: int, ledger: ledger_dep):
    try:
        return await ledger.delete_product_category(category_id)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except LedgerError as error:
        logging.error(f"Failed to delete product category {category_id}: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to delete a product category",
        )
