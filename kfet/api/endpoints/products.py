import logging
from typing import Annotated, List, Optional
from fastapi import APIRouter, HTTPException, status, Depends

from kfet.core import schemas
from kfet.core.database import get_ledger
from kfet.core.errors import LedgerError, NotFoundError, RecordValidationError
from kfet.core.ledger import Ledger

router = APIRouter(prefix="/products", tags=["Products"])

ledger_dep = Annotated[Ledger, Depends(get_ledger)]


@router.get("", response_model=List[schemas.Product])
async def list_products(ledger: ledger_dep, category_id: Optional[int] = None):
    try:
        return await ledger.list_products(category_id)
    except LedgerError as error:
        logging.error(f"Failed to list products: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to list products"
        )


@router.get("/{product_id}", response_model=schemas.Product)
async def get_product(product_id: int, ledger: ledger_dep):
    try:
        return await ledger.get_product(product_id)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except LedgerError as error:
        logging.error(f"Failed to read product {product_id}: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to read the product"
        )


@router.post("", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
async def create_product(product: schemas.ProductCreate, ledger: ledger_dep):
    try:
        return await ledger.create_product(product)
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to add a product: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to add a product"
        )


@router.patch("/{product_id}", response_model=schemas.Product)
async def update_product(
    product_id: int, changes: schemas.ProductUpdate, ledger: ledger_dep
):
    try:
        return await ledger.update_product(product_id, changes)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except RecordValidationError as error:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(error))
    except LedgerError as error:
        logging.error(f"Failed to update product {product_id}: {error}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Update failed")


@router.delete("/{product_id}", response_model=schemas.Product)
async def delete_product(product_id: int, ledger: ledger_dep):
    try:
        return await ledger.delete_product(product_id)
    except NotFoundError as error:
        raise HTTPException(status.HTTP_404_NOT_FOUND, str(error))
    except LedgerError as error:
        logging.error(f"Failed to delete product {product_id}: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete a product"
        )
