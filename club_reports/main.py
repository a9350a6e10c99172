"""Main FastAPI application."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from club_reports.api import activities, health, reports
from club_reports.core.database import init_db
from club_reports.core.settings import settings

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting club reports service...")

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Application stopped")


app = FastAPI(
    title="Club Activity Reports",
    description="Báo cáo thống kê hoạt động ngoại khóa",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.env == "dev" else [f"https://{settings.domain}"],
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(reports.router)
app.include_router(activities.router)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "club_reports.main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.env == "dev",
        proxy_headers=True,
        forwarded_allow_ips="*",
    )
