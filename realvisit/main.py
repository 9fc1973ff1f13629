"""
RealVisit — genuine-traffic measurement for product pages.
Main application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from realvisit.api.track import router as track_router
from realvisit.config import get_settings
from realvisit.core.datacenter import DATACENTER_TABLE
from realvisit.middleware.security import SecurityHeadersMiddleware
from realvisit.models.database import dispose_engine

import structlog

VERSION = "0.1.0"

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.dev.ConsoleRenderer() if get_settings().debug else structlog.processors.JSONRenderer(),
    ],
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("realvisit_starting",
                base_url=get_settings().base_url,
                datacenter_ranges=len(DATACENTER_TABLE))
    yield
    await dispose_engine()
    logger.info("realvisit_shutting_down")


app = FastAPI(
    title="RealVisit",
    description="Real / zombie / bot visitor measurement for product pages.",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if get_settings().debug else None,
    redoc_url="/redoc" if get_settings().debug else None,
    openapi_url="/openapi.json" if get_settings().debug else None,
)

app.add_middleware(SecurityHeadersMiddleware)

# Storefront tracker + web pixel post cross-origin from merchant domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allowed_origins,
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# --- Routes ---
app.include_router(track_router)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "realvisit", "version": VERSION}
