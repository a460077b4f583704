"""
Orbis API

FastAPI application for the coding practice loop: star-rated spaced
repetition plus an isolated code execution harness.

Run with:
    uvicorn orbis.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orbis.config import settings
from orbis.db.base import init_db
from orbis.middleware import setup_error_handling
from orbis.routers import health, practice, review
from orbis.services.learning import get_execution_harness

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DB_INIT_ON_STARTUP:
        await init_db()
        logger.info("Database tables initialized")

    harness = get_execution_harness()
    harness.initialize()

    yield

    harness.close()


app = FastAPI(title=f"{settings.APP_NAME} API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_error_handling(app, debug=settings.DEBUG)

app.include_router(health.router)
app.include_router(review.router)
app.include_router(practice.router)


@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} API"}
