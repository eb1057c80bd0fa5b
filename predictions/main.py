"""
Main entry point for FastAPI application.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI

from predictions.routes import admin, league, picks
from predictions.services.notification_service import get_notifier
from predictions.services.sweeps import start_sweeps, stop_sweeps
from predictions.utils.db_async import init_db, dispose_engine, describe_database_url, DATABASE_URL

from predictions.logging_config import setup_logging
from predictions.config import settings

import logging
logger = logging.getLogger(__name__)

setup_logging(
    level=settings.log_level, access_log=settings.access_log, sql_echo=settings.sql_echo
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    should_init_db = settings.is_dev and settings.auto_init_db

    if should_init_db:
        logger.info("Running init_db()…")
        logger.info(f"DB target: {describe_database_url(DATABASE_URL)}")
        try:
            await init_db()
            logger.info("DB ready.")
        except Exception:
            logger.exception("init_db failed")
            raise
    else:
        logger.info("Skipping init_db(); not in dev or auto_init_db disabled")

    sweeps = []
    if settings.run_sweeps:
        logger.info("Starting background sweeps…")
        sweeps = start_sweeps(get_notifier())

    yield

    if sweeps:
        await stop_sweeps(sweeps)

    # Shutdown: dispose engine cleanly
    try:
        logger.info("Disposing DB engine…")
        await dispose_engine()
        logger.info("DB engine disposed.")
    except Exception:
        logger.exception("Failed to dispose DB engine")

app = FastAPI(title="PL Predictions", lifespan=lifespan)
app.include_router(picks.router)
app.include_router(league.router)
app.include_router(admin.router)

@app.get("/health")
async def health_check():
    """Health Check Endpoint"""
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
