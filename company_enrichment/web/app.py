"""FastAPI application for company enrichment."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from company_enrichment.web.deps import get_config
from company_enrichment.web.routers.enrichment import router as enrichment_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    logger.info("Starting company enrichment API (concurrency %d)", config.concurrency)
    yield
    logger.info("Company enrichment API shut down.")


app = FastAPI(
    title="Company Enrichment",
    description="Directory scraping and answer-API enrichment of company names",
    lifespan=lifespan,
)

app.include_router(enrichment_router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "ok"}
