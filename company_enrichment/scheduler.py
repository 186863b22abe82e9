"""Bounded-concurrency enrichment scheduler.

A run takes an ordered list of identifiers, hands them to at most K worker
tasks, merges each partial record into an index-aligned result table and
publishes a snapshot of the table after every completed item.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable

from company_enrichment.answer.enricher import SearchEnricher
from company_enrichment.config import default_concurrency
from company_enrichment.directory.details import DetailFetcher
from company_enrichment.directory.listing import DirectoryLister
from company_enrichment.errors import EnrichmentError, ListingError
from company_enrichment.models import (
    EntryStatus,
    Identifier,
    LocationHint,
    PartialRecord,
    Phase,
    ProgressState,
    ResultEntry,
    RunSnapshot,
)

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Run cancelled"
NO_VALID_INPUT_MESSAGE = "No valid company names provided"

Stage = Callable[[PartialRecord], None]
Work = Callable[[Identifier, PartialRecord, Stage], Awaitable[PartialRecord]]


class RunMode(str, Enum):
    DETAILS = "details"
    SEARCH = "search"
    EXECUTIVES = "executives"
    COMBINED = "combined"


# ---------------------------------------------------------------------------
# Shared state
# ---------------------------------------------------------------------------

class _WorkQueue:
    """FIFO of table slots. ``close`` stops further dispatch.

    Workers share one event loop and nothing here awaits, so ``pop`` is
    atomic without a lock.
    """

    def __init__(self, slots: list[int]):
        self._slots = list(slots)
        self._next = 0
        self._closed = False

    def pop(self) -> int | None:
        if self._closed or self._next >= len(self._slots):
            return None
        slot = self._slots[self._next]
        self._next += 1
        return slot

    def close(self) -> None:
        self._closed = True

    @property
    def pending(self) -> int:
        """Slots never handed to a worker."""
        return len(self._slots) - self._next


class ResultTable:
    """Index-aligned result entries plus run progress.

    Methods never await, so each one runs to completion before another
    worker resumes and a snapshot always pairs a table with the progress
    that produced it. Observers only ever see copies.
    """

    def __init__(self, entries: list[ResultEntry], total: int):
        self._entries = entries
        self._progress = ProgressState(total=total, phase=Phase.RUNNING)

    @classmethod
    def for_identifiers(cls, identifiers: list[Identifier]) -> ResultTable:
        return cls([ResultEntry.placeholder(i) for i in identifiers], total=len(identifiers))

    def entry(self, slot: int) -> ResultEntry:
        return self._entries[slot].model_copy(deep=True)

    def start(self, slot: int) -> None:
        self._progress.currently_processing = self._entries[slot].identifier.name

    def merge_partial(self, slot: int, record: PartialRecord) -> None:
        """Merge one stage's result while the item is still in flight."""
        entry = self._entries[slot]
        entry.record = entry.record.merge(record)

    def merge(self, slot: int, record: PartialRecord) -> None:
        self.merge_partial(slot, record)
        self._progress.completed += 1

    def fail(self, slot: int, message: str, raw_text: str | None = None) -> None:
        """Mark one entry failed, keeping whatever it already holds."""
        entry = self._entries[slot]
        if raw_text:
            entry.record = entry.record.merge(PartialRecord(raw_text=raw_text))
        entry.status = EntryStatus.ERROR
        entry.error = message
        self._progress.completed += 1

    def finish(self, phase: Phase) -> None:
        self._progress.phase = phase
        self._progress.currently_processing = None

    def snapshot(self, error: str | None = None) -> RunSnapshot:
        return RunSnapshot(
            entries=[e.model_copy(deep=True) for e in self._entries],
            progress=self._progress.model_copy(),
            error=error,
        )


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------

class EnrichmentScheduler:
    """Runs identifiers through the collaborators with at most K in flight."""

    def __init__(
        self,
        detail_fetcher: DetailFetcher | None = None,
        search_enricher: SearchEnricher | None = None,
        directory_lister: DirectoryLister | None = None,
        concurrency: int | None = None,
        on_snapshot: Callable[[RunSnapshot], None] | None = None,
    ):
        self.detail_fetcher = detail_fetcher
        self.search_enricher = search_enricher
        self.directory_lister = directory_lister
        self.concurrency = max(1, concurrency or default_concurrency())
        self.on_snapshot = on_snapshot
        self._queue: _WorkQueue | None = None
        self._cancelled = False

    def cancel(self) -> None:
        """Stop dispatching queued items. In-flight items still finish."""
        self._cancelled = True
        if self._queue is not None:
            self._queue.close()
        logger.info("Run cancellation requested")

    # -- public entry points ------------------------------------------------

    async def run(
        self,
        identifiers: list[Identifier],
        mode: RunMode = RunMode.SEARCH,
    ) -> AsyncIterator[RunSnapshot]:
        """Enrich ``identifiers`` and yield a snapshot after every update.

        The first snapshot reports ``validating``, the next shows every slot
        as a placeholder and the last one is ``done`` or ``failed``. Entries
        keep input order.
        """
        yield self._publish(RunSnapshot(progress=ProgressState(phase=Phase.VALIDATING)))
        valid = [i for i in identifiers if i.name and i.name.strip()]
        dropped = len(identifiers) - len(valid)
        if dropped:
            logger.info("Dropped %d blank identifier(s)", dropped)
        if not valid:
            yield self._publish(self._failed_snapshot(NO_VALID_INPUT_MESSAGE))
            return

        table = ResultTable.for_identifiers(valid)
        work = self._work_for(mode)
        async with aclosing(self._execute(table, list(range(len(valid))), work)) as stream:
            async for snapshot in stream:
                yield snapshot

    async def enhance(self, entries: list[ResultEntry]) -> AsyncIterator[RunSnapshot]:
        """Second pass: add CEO and co-founders to the OK entries of a finished table.

        ERROR entries are carried through untouched. The entry's own country
        and city are passed along as a location hint.
        """
        enricher = self._require(self.search_enricher, "search enricher")
        copied = [e.model_copy(deep=True) for e in entries]
        slots = [i for i, e in enumerate(copied) if e.status == EntryStatus.OK]
        table = ResultTable(copied, total=len(slots))

        async def work(identifier: Identifier, record: PartialRecord, stage: Stage) -> PartialRecord:
            hint = LocationHint(country=record.country, city=record.city)
            if not hint.describe():
                hint = identifier.location
            name = record.company_name or identifier.name
            return await enricher.enrich_executives(name, hint)

        async with aclosing(self._execute(table, slots, work, error_prefix="Enhance failed: ")) as stream:
            async for snapshot in stream:
                yield snapshot

    async def then_enhance(self, first_pass: AsyncIterator[RunSnapshot]) -> AsyncIterator[RunSnapshot]:
        """Run ``first_pass`` and then ``enhance`` as one continuous run.

        Progress counts two steps per company. Entries that failed the first
        pass are skipped by enhance, so both of their steps count as soon as
        the first pass ends. ``completed`` never goes back and only the final
        snapshot is ``done``. If the first pass fails, the run ends there.
        """
        observer, self.on_snapshot = self.on_snapshot, None
        try:
            first = None
            async with aclosing(first_pass) as stream:
                async for snapshot in stream:
                    if snapshot.progress.phase == Phase.DONE:
                        first = snapshot
                        break
                    yield _notify(observer, _rescaled(snapshot, 0, 2 * snapshot.progress.total))
            if first is None:
                return

            total = 2 * first.progress.total
            pending = sum(1 for e in first.entries if e.status == EntryStatus.OK)
            async with aclosing(self.enhance(first.entries)) as stream:
                async for snapshot in stream:
                    yield _notify(observer, _rescaled(snapshot, total - pending, total))
        finally:
            self.on_snapshot = observer

    async def run_directory(self, limit: int, details: bool = True) -> AsyncIterator[RunSnapshot]:
        """List the directory, then fetch each profile's details.

        A listing failure ends the batch before any work is dispatched.
        """
        lister = self._require(self.directory_lister, "directory lister")
        try:
            listed = await lister.list(limit)
        except ListingError as e:
            logger.error("%s", e)
            yield self._publish(self._failed_snapshot(str(e)))
            return

        identifiers = [
            Identifier(index=i, name=entry.name, source_url=entry.profile_url)
            for i, entry in enumerate(listed)
        ]
        if not details:
            table = ResultTable.for_identifiers(identifiers)
            table.finish(Phase.DONE)
            yield self._publish(table.snapshot())
            return

        async with aclosing(self.run(identifiers, RunMode.DETAILS)) as stream:
            async for snapshot in stream:
                yield snapshot

    # -- core loop ------------------------------------------------------------

    async def _execute(
        self,
        table: ResultTable,
        slots: list[int],
        work: Work,
        error_prefix: str = "",
    ) -> AsyncIterator[RunSnapshot]:
        self._cancelled = False
        queue = _WorkQueue(slots)
        self._queue = queue
        updates: asyncio.Queue[RunSnapshot | None] = asyncio.Queue()

        async def worker(worker_id: int) -> None:
            while True:
                slot = queue.pop()
                if slot is None:
                    return
                entry = table.entry(slot)
                table.start(slot)
                logger.debug("Worker %d processing %s", worker_id, entry.identifier.name)

                def stage(record: PartialRecord, slot: int = slot) -> None:
                    table.merge_partial(slot, record)
                    updates.put_nowait(table.snapshot())

                try:
                    record = await work(entry.identifier, entry.record, stage)
                except EnrichmentError as e:
                    logger.warning("Enrichment failed for %s: %s", entry.identifier.name, e)
                    table.fail(slot, f"{error_prefix}{e}", raw_text=e.raw_text)
                except Exception as e:
                    logger.error("Pipeline error for %s: %s", entry.identifier.name, e)
                    table.fail(slot, f"{error_prefix}{_short_reason(e)}")
                else:
                    table.merge(slot, record)
                updates.put_nowait(table.snapshot())

        k = min(self.concurrency, len(slots))
        logger.info("Processing %d item(s) with %d worker(s)", len(slots), k)
        yield self._publish(table.snapshot())

        workers = [asyncio.create_task(worker(n)) for n in range(k)]

        async def supervise() -> BaseException | None:
            try:
                await asyncio.gather(*workers)
                return None
            except Exception as e:
                return e
            finally:
                updates.put_nowait(None)

        supervisor = asyncio.create_task(supervise())
        finished = False
        try:
            while True:
                snapshot = await updates.get()
                if snapshot is None:
                    break
                yield self._publish(snapshot)

            failure = await supervisor
            error = None
            if failure is not None:
                logger.error("Scheduler failure: %s", failure)
                error = f"Run failed: {_short_reason(failure)}"
            elif self._cancelled and queue.pending:
                error = CANCELLED_MESSAGE
            table.finish(Phase.FAILED if error else Phase.DONE)
            finished = True
            yield self._publish(table.snapshot(error=error))
        finally:
            if not finished:
                # Stream closed early: stop dispatch, let in-flight items finish
                queue.close()
                self._cancelled = True
                await asyncio.gather(*workers, return_exceptions=True)
                await asyncio.gather(supervisor, return_exceptions=True)
            self._queue = None

    # -- helpers ------------------------------------------------------------

    def _work_for(self, mode: RunMode) -> Work:
        mode = RunMode(mode)

        async def details(identifier: Identifier, record: PartialRecord, stage: Stage) -> PartialRecord:
            fetcher = self._require(self.detail_fetcher, "detail fetcher")
            if not identifier.source_url:
                raise EnrichmentError("No profile URL to fetch details from")
            return await fetcher.fetch_details(identifier.source_url)

        async def search(identifier: Identifier, record: PartialRecord, stage: Stage) -> PartialRecord:
            enricher = self._require(self.search_enricher, "search enricher")
            return await enricher.enrich(identifier.name, identifier.location)

        async def executives(identifier: Identifier, record: PartialRecord, stage: Stage) -> PartialRecord:
            enricher = self._require(self.search_enricher, "search enricher")
            return await enricher.enrich_executives(identifier.name, identifier.location)

        async def combined(identifier: Identifier, record: PartialRecord, stage: Stage) -> PartialRecord:
            if identifier.source_url:
                stage(await details(identifier, record, stage))
            return await search(identifier, record, stage)

        return {
            RunMode.DETAILS: details,
            RunMode.SEARCH: search,
            RunMode.EXECUTIVES: executives,
            RunMode.COMBINED: combined,
        }[mode]

    def _failed_snapshot(self, message: str) -> RunSnapshot:
        return RunSnapshot(progress=ProgressState(phase=Phase.FAILED), error=message)

    def _publish(self, snapshot: RunSnapshot) -> RunSnapshot:
        return _notify(self.on_snapshot, snapshot)

    @staticmethod
    def _require(collaborator, what: str):
        if collaborator is None:
            raise RuntimeError(f"Scheduler has no {what} configured")
        return collaborator


async def run_to_completion(stream: AsyncIterator[RunSnapshot]) -> RunSnapshot:
    """Drain a snapshot stream and return its final snapshot."""
    last = RunSnapshot()
    async for snapshot in stream:
        last = snapshot
    return last


def _short_reason(exc: BaseException) -> str:
    message = str(exc).strip().splitlines()[0] if str(exc).strip() else ""
    return message or exc.__class__.__name__


def _notify(observer: Callable[[RunSnapshot], None] | None, snapshot: RunSnapshot) -> RunSnapshot:
    if observer is not None:
        try:
            observer(snapshot)
        except Exception as e:
            logger.warning("Snapshot observer raised: %s", e)
    return snapshot


def _rescaled(snapshot: RunSnapshot, offset: int, total: int) -> RunSnapshot:
    progress = snapshot.progress.model_copy(
        update={"completed": snapshot.progress.completed + offset, "total": total}
    )
    return snapshot.model_copy(update={"progress": progress})
