# marketplace/main.py
from contextlib import asynccontextmanager

import uvicorn

from marketplace.api import create_app
from marketplace.data import models  # noqa: F401  rejestracja modeli w Base.metadata
from marketplace.data.database import Base, engine
from marketplace.data.seed import seed
from marketplace.utils.settings import SEED_DEMO_DATA
from marketplace.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


def init_db() -> None:
    logger.info("Initializing database", tables=sorted(Base.metadata.tables.keys()))
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error("Failed to create tables", error=str(e))
        raise
    logger.info("Database tables created")

    if SEED_DEMO_DATA:
        seed()


@asynccontextmanager
async def lifespan(app):
    init_db()
    yield


app = create_app(lifespan=lifespan)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
