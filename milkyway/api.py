# -*- coding: utf-8 -*-
"""
MilkyWay Record Store API

Durable record table for the drink log, served as JSON over HTTP.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .errors import IOFailure
from .records.api import get_record_store, router as records_router
from .records.models import HealthResponse
from .vision.api import router as vision_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="MilkyWay Record Store",
    description="Drink log records with month projection",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup_init_db() -> None:
    try:
        get_record_store().init()
    except IOFailure as exc:
        # Requests will report the fault with a 500; keep the process up.
        logger.error("record database unavailable at startup: %s", exc)


@app.middleware("http")
async def _limit_body_size(request: Request, call_next):
    length = request.headers.get("content-length")
    if length and length.isdigit() and int(length) > settings.max_body_bytes:
        return JSONResponse(
            status_code=413,
            content={"detail": f"Request body too large: {length} bytes > {settings.max_body_bytes}"},
        )
    return await call_next(request)


app.include_router(records_router)
app.include_router(vision_router)


@app.get("/api/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(time=datetime.now(timezone.utc).isoformat())


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("MilkyWay record store listening on http://%s:%s", settings.host, settings.port)
    uvicorn.run("milkyway.api:app", host=settings.host, port=settings.port, reload=False)
