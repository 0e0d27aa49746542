"""Log Analyzer FastAPI backend entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loganalyzer import config
from loganalyzer.routers.analysis import analysis_router
from loganalyzer.observability import initialize as initialize_observability, shutdown as shutdown_observability

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("loganalyzer")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Log analyzer backend starting up")
    initialize_observability(app)

    yield

    logger.info("Log analyzer backend shutting down")
    shutdown_observability(app)


app = FastAPI(
    title="Log Analyzer API",
    description="Reconstructs task/node trees and node statistics from automation framework logs",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow the frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analysis_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}

