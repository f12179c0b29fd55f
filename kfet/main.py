import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from kfet.core.bootstrap import init_db
from kfet.core.config import settings
from kfet.core.database import build_channel, build_ledger
from kfet.core.seed import seed_demo_data
from kfet.api.router import api_router


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


# Open the channel once, create the tables, and close it when the app stops
@asynccontextmanager
async def lifespan(app: FastAPI):
    channel = build_channel()
    await channel.open()
    ledger = build_ledger(channel)

    seed = seed_demo_data if settings.SEED_DEMO_DATA else None
    await init_db(ledger.executor, seed=seed)

    app.state.channel = channel
    app.state.ledger = ledger
    logger.info("Ledger ready")

    yield
    await channel.close()


app = FastAPI(title="K-Fet Ledger API", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Welcome to the K-Fet Ledger API"}
