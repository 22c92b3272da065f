# src/rrc_coupons/main.py
"""Main entry point for the coupon service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from rrc_coupons.api.v1 import coupons_router, system_router
from rrc_coupons.core.settings import settings
from rrc_coupons.db.session import create_tables, engine

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Hands out one unique coupon code per client per cooldown window",
    version=settings.app_version,
)

# Add CORS middleware; credentials are needed for the tracking cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(system_router)
app.include_router(coupons_router)


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@app.on_event("startup")
async def on_startup() -> None:
    _configure_logging()
    if settings.create_tables_on_startup:
        create_tables()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database ping failed: %s", exc)
        raise
    logger.info("Pinged the database, coupon server ready")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("rrc_coupons.main:app", host=settings.host, port=settings.port, reload=settings.debug)
