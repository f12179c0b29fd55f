import logging
import random
from decimal import Decimal
from typing import Sequence

from kfet.core import schemas
from kfet.core.ledger import Ledger


logger = logging.getLogger(__name__)

DEPTS = ["DI", "DA", "DEE", "DMS"]
YEARS = ["3A", "4A", "5A"]

SAMPLE_CUSTOMERS = [
    ("Jean", "Dupont", "10.5", False),
    ("Marie", "Curie", "25.0", True),
    ("Alan", "Turing", "0.0", False),
    ("Ada", "Lovelace", "15.75", True),
    ("Grace", "Hopper", "5.0", False),
    ("Nikola", "Tesla", "50.0", True),
    ("Isaac", "Newton", "20.0", False),
    ("Rosalind", "Franklin", "12.5", False),
]


async def seed_demo_data(ledger: Ledger, empty_tables: Sequence[str]) -> None:
    """Insert demo cohorts and customers into the tables that are empty."""
    if "categories" in empty_tables:
        logger.info("Seeding base categories...")
        for dept in DEPTS:
            for year in YEARS:
                await ledger.create_category(
                    schemas.CategoryCreate(name=f"{dept} {year}", dept=dept, year=year)
                )

    if "customers" in empty_tables:
        categories = await ledger.list_categories()
        if not categories:
            return

        logger.info("Seeding sample customers...")
        for first_name, last_name, account, is_kfetier in SAMPLE_CUSTOMERS:
            category = random.choice(categories)
            await ledger.create_customer(
                schemas.CustomerCreate(
                    first_name=first_name,
                    last_name=last_name,
                    account=Decimal(account),
                    is_kfetier=is_kfetier,
                    category_id=category.id,
                )
            )
