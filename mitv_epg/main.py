from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from mitv_epg.config import setup_logging
from mitv_epg.services.scheduler_service import epg_scheduler

from mitv_epg.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting EPG Grabber...")

    try:
        logger.info("Starting scheduler...")
        epg_scheduler.start()
        logger.info("EPG Grabber started successfully")
    except Exception as e:
        logger.error(f"Failed to start EPG Grabber: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down EPG Grabber...")

    try:
        epg_scheduler.shutdown()
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    logger.info("EPG Grabber stopped")


app = FastAPI(
    title="mi.tv EPG Grabber",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)
