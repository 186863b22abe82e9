"""Dependency injection for FastAPI — shared config and the in-memory run store."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from functools import lru_cache

from company_enrichment.config import Config, load_config
from company_enrichment.models import RunSnapshot
from company_enrichment.scheduler import EnrichmentScheduler


@lru_cache
def get_config() -> Config:
    return load_config()


@dataclass
class RunState:
    """Everything known about one batch run. Lost on restart."""
    run_id: int
    mode: str
    latest: RunSnapshot | None = None
    version: int = 0
    scheduler: EnrichmentScheduler | None = None

    def publish(self, snapshot: RunSnapshot) -> None:
        self.latest = snapshot
        self.version += 1


class RunStore:
    """In-memory runs, touched only from the event loop thread."""

    def __init__(self):
        self._runs: dict[int, RunState] = {}
        self._ids = itertools.count(1)

    def create(self, mode: str) -> RunState:
        state = RunState(run_id=next(self._ids), mode=mode)
        self._runs[state.run_id] = state
        return state

    def get(self, run_id: int) -> RunState | None:
        return self._runs.get(run_id)


_run_store = RunStore()


def get_run_store() -> RunStore:
    return _run_store
