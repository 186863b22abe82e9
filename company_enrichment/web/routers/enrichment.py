"""Enrichment API — single lookups, directory scraping and batch runs with SSE progress."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from company_enrichment.config import Config
from company_enrichment.errors import EnrichmentError
from company_enrichment.input.reader import build_identifiers, parse_names
from company_enrichment.models import Identifier, LocationHint, Phase, ProgressState, RunSnapshot, error_entries
from company_enrichment.output.export import to_csv_text
from company_enrichment.pipeline import EnrichmentPipeline
from company_enrichment.scheduler import RunMode, run_to_completion
from company_enrichment.web.deps import RunState, RunStore, get_config, get_run_store

logger = logging.getLogger(__name__)
router = APIRouter(tags=["enrichment"])


class CompanyRequest(BaseModel):
    company_name: str = ""
    enhance: bool = False
    mock: bool = False
    country: str | None = None
    city: str | None = None


class DirectoryRequest(BaseModel):
    limit: int = Field(default=20, ge=1)
    details: bool = False


class DetailsRequest(BaseModel):
    url: str = ""


class RunRequest(BaseModel):
    names: list[str] = []
    text: str = ""
    mode: RunMode = RunMode.SEARCH
    enhance: bool = False
    mock: bool = False


# ---------------------------------------------------------------------------
# Single lookups
# ---------------------------------------------------------------------------

@router.post("/company")
async def lookup_company(req: CompanyRequest, config: Config = Depends(get_config)):
    """Contact info for one company, or CEO and co-founders with ``enhance``."""
    name = req.company_name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Company name is required")

    pipeline = EnrichmentPipeline(config, mock=req.mock)
    try:
        enricher = pipeline.scheduler.search_enricher
        if enricher is None:
            raise HTTPException(status_code=503, detail="PERPLEXITY_API_KEY is not configured")
        location = LocationHint(country=req.country, city=req.city)
        hint = location if location.describe() else None
        if req.enhance:
            record = await enricher.enrich_executives(name, hint)
        else:
            record = await enricher.enrich(name, hint)
    except EnrichmentError as e:
        logger.warning("Lookup failed for %s: %s", name, e)
        return JSONResponse(
            status_code=502,
            content={"error": str(e), "raw_text": e.raw_text},
        )
    finally:
        await pipeline.close()

    if not record.company_name:
        record.company_name = name
    return record.model_dump()


@router.post("/directory")
async def list_directory(req: DirectoryRequest, config: Config = Depends(get_config)):
    """List directory companies, optionally fetching each profile's details."""
    pipeline = EnrichmentPipeline(config)
    try:
        final = await run_to_completion(
            pipeline.scheduler.run_directory(req.limit, details=req.details)
        )
    finally:
        await pipeline.close()

    if final.progress.phase == Phase.FAILED:
        return JSONResponse(status_code=502, content={"error": final.error})
    return {
        "companies": [
            {
                "name": e.identifier.name,
                "profile_url": e.identifier.source_url,
                **e.record.model_dump(include={"phone", "country", "city"}),
                "status": e.status.value,
                "error": e.error,
            }
            for e in final.entries
        ],
    }


@router.post("/directory/details")
async def directory_details(req: DetailsRequest, config: Config = Depends(get_config)):
    """Phone, country and city from one profile page."""
    url = req.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")

    pipeline = EnrichmentPipeline(config)
    try:
        record = await pipeline.scheduler.detail_fetcher.fetch_details(url)
    finally:
        await pipeline.close()
    return record.model_dump(include={"phone", "country", "city", "source_urls"})


# ---------------------------------------------------------------------------
# Batch runs
# ---------------------------------------------------------------------------

@router.post("/runs")
async def start_run(
    req: RunRequest,
    background_tasks: BackgroundTasks,
    config: Config = Depends(get_config),
    store: RunStore = Depends(get_run_store),
):
    """Start a batch run. Returns run_id for SSE tracking."""
    names = list(req.names) + parse_names(req.text)
    identifiers = build_identifiers(names, max_rows=config.max_input_rows)
    if not identifiers:
        raise HTTPException(status_code=400, detail="At least one company name is required")

    state = store.create(req.mode.value)
    pipeline = EnrichmentPipeline(config, mock=req.mock)
    state.scheduler = pipeline.scheduler
    background_tasks.add_task(_execute_run, state, pipeline, identifiers, req.mode, req.enhance)
    return {"run_id": state.run_id, "total": len(identifiers), "status": Phase.RUNNING.value}


@router.get("/runs/{run_id}")
async def run_status(run_id: int, store: RunStore = Depends(get_run_store)):
    state = _get_run(store, run_id)
    if state.latest is None:
        return {"run_id": run_id, "mode": state.mode, "progress": ProgressState().model_dump()}
    return {"run_id": run_id, "mode": state.mode, **state.latest.model_dump(mode="json")}


@router.post("/runs/{run_id}/cancel")
async def cancel_run(run_id: int, store: RunStore = Depends(get_run_store)):
    state = _get_run(store, run_id)
    if state.scheduler is not None:
        state.scheduler.cancel()
    return {"run_id": run_id, "cancelled": True}


@router.get("/runs/{run_id}/stream")
async def run_stream(run_id: int, store: RunStore = Depends(get_run_store)):
    """SSE stream of run snapshots until the run finishes."""
    state = _get_run(store, run_id)

    async def event_generator():
        seen = 0
        while True:
            if state.version != seen and state.latest is not None:
                seen = state.version
                snapshot = state.latest
                yield {"event": "snapshot", "data": snapshot.model_dump_json()}
                if snapshot.finished:
                    return
            await asyncio.sleep(0.5)

    return EventSourceResponse(event_generator())


@router.get("/runs/{run_id}/export")
async def export_run(run_id: int, errors_only: bool = False, store: RunStore = Depends(get_run_store)):
    """Download the current table as CSV."""
    state = _get_run(store, run_id)
    entries = state.latest.entries if state.latest else []
    if errors_only:
        entries = error_entries(entries)
    return Response(
        content=to_csv_text(entries, state.mode),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="run_{run_id}.csv"'},
    )


def _get_run(store: RunStore, run_id: int) -> RunState:
    state = store.get(run_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return state


async def _execute_run(
    state: RunState,
    pipeline: EnrichmentPipeline,
    identifiers: list[Identifier],
    mode: RunMode,
    enhance: bool,
) -> None:
    """Execute the scheduler in the background, publishing every snapshot."""
    scheduler = pipeline.scheduler
    stream = scheduler.run(identifiers, mode)
    if enhance:
        state.mode = "full"
        stream = scheduler.then_enhance(stream)
    try:
        async for snapshot in stream:
            state.publish(snapshot)
    except Exception as e:
        logger.exception("Run %d failed", state.run_id)
        entries = state.latest.entries if state.latest else []
        state.publish(RunSnapshot(
            entries=entries,
            progress=ProgressState(total=len(entries), phase=Phase.FAILED),
            error=str(e),
        ))
    finally:
        state.scheduler = None
        await pipeline.close()
