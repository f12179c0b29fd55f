import logging
from typing import Annotated
from fastapi import APIRouter, HTTPException, status, Depends

from kfet.core.bootstrap import reset_db
from kfet.core.config import settings
from kfet.core.database import get_ledger
from kfet.core.errors import LedgerError
from kfet.core.ledger import Ledger
from kfet.core.seed import seed_demo_data

router = APIRouter(prefix="/admin", tags=["Admin"])

ledger_dep = Annotated[Ledger, Depends(get_ledger)]


# Drop every table and start again from an empty (or seeded) database
@router.post("/reset")
async def reset_database(ledger: ledger_dep):
    seed = seed_demo_data if settings.SEED_DEMO_DATA else None
    try:
        empty = await reset_db(ledger.executor, seed=seed)
    except LedgerError as error:
        logging.error(f"Database reset failed: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to reset the database"
        )
    return {"message": "Database successfully reset", "seeded": bool(seed), "empty_tables": empty}
