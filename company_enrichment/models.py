"""Pydantic data models for the enrichment pipeline."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------

class LocationHint(BaseModel):
    """Optional location context passed along with a company name."""
    model_config = ConfigDict(frozen=True)

    country: str | None = None
    city: str | None = None

    def describe(self) -> str:
        """'Geneva, Switzerland' style label, empty when nothing is known."""
        return ", ".join(p for p in (self.city, self.country) if p)


class Identifier(BaseModel):
    """One unit of work. Maps to exactly one result slot."""
    model_config = ConfigDict(frozen=True)

    index: int
    name: str
    source_url: str | None = None  # Directory profile URL, when known
    location: LocationHint | None = None


class DirectoryEntry(BaseModel):
    """A company discovered on the directory listing page."""
    name: str
    profile_url: str


# ---------------------------------------------------------------------------
# Partial facts
# ---------------------------------------------------------------------------

_SCALAR_FIELDS = (
    "company_name",
    "homepage",
    "contact_page",
    "phone",
    "country",
    "city",
    "ceo",
)


class PartialRecord(BaseModel):
    """Sparse bag of facts about one company, merged incrementally."""
    company_name: str | None = None
    homepage: str | None = None
    contact_page: str | None = None
    phone: str | None = None
    country: str | None = None
    city: str | None = None
    ceo: str | None = None
    cofounders: list[str] = Field(default_factory=list)
    raw_text: str | None = None
    source_urls: list[str] = Field(default_factory=list)

    @field_validator(*_SCALAR_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    def is_empty(self) -> bool:
        return not (
            any(getattr(self, f) for f in _SCALAR_FIELDS)
            or self.cofounders
            or self.source_urls
        )

    def merge(self, later: PartialRecord) -> PartialRecord:
        """Return a new record with ``later`` layered over this one.

        Scalars: a later non-empty value replaces the current one, a later
        empty value never clobbers. Between two non-empty values the later
        arrival wins. ``cofounders`` follows the same rule as a whole list,
        ``source_urls`` is an order-preserving union and ``raw_text`` is
        appended so every stage's raw output survives.
        """
        merged = self.model_copy(deep=True)
        for name in _SCALAR_FIELDS:
            value = getattr(later, name)
            if value:
                setattr(merged, name, value)

        if later.cofounders:
            merged.cofounders = list(later.cofounders)

        for url in later.source_urls:
            if url and url not in merged.source_urls:
                merged.source_urls.append(url)

        if later.raw_text:
            if merged.raw_text and later.raw_text != merged.raw_text:
                merged.raw_text = f"{merged.raw_text}\n\n{later.raw_text}"
            else:
                merged.raw_text = later.raw_text

        return merged


class ExecutiveInfo(BaseModel):
    """Schema-validated executive answer: current CEO and founders."""
    ceo: str | None = Field(default=None, description="Name of the current CEO")
    cofounders: list[str] | None = Field(
        default=None, description="Names of the founders/cofounders",
    )

    @field_validator("cofounders", mode="before")
    @classmethod
    def drop_blank_names(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            v = [v]
        return [str(n).strip() for n in v if n and str(n).strip()]


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------

class EntryStatus(str, Enum):
    OK = "ok"
    ERROR = "error"


class Phase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class ResultEntry(BaseModel):
    """Outcome for one identifier. Starts as an OK placeholder."""
    identifier: Identifier
    record: PartialRecord = Field(default_factory=PartialRecord)
    status: EntryStatus = EntryStatus.OK
    error: str | None = None

    @classmethod
    def placeholder(cls, identifier: Identifier) -> ResultEntry:
        record = PartialRecord(company_name=identifier.name)
        if identifier.source_url:
            record.source_urls.append(identifier.source_url)
        return cls(identifier=identifier, record=record)

    @property
    def ok(self) -> bool:
        return self.status == EntryStatus.OK


class ProgressState(BaseModel):
    completed: int = 0
    total: int = 0
    currently_processing: str | None = None
    phase: Phase = Phase.IDLE

    @computed_field
    @property
    def percent(self) -> int:
        """Integer percentage, floored. 100 is reserved for the ``done`` phase."""
        if self.total <= 0:
            return 100 if self.phase == Phase.DONE else 0
        percent = self.completed * 100 // self.total
        return percent if self.phase == Phase.DONE else min(percent, 99)


class RunSnapshot(BaseModel):
    """Read-only view of a run handed to observers after every update."""
    entries: list[ResultEntry] = Field(default_factory=list)
    progress: ProgressState = Field(default_factory=ProgressState)
    error: str | None = None  # Batch-level failure message

    @property
    def finished(self) -> bool:
        return self.progress.phase in (Phase.DONE, Phase.FAILED)


def error_entries(entries: list[ResultEntry]) -> list[ResultEntry]:
    """Entries that failed, for the errors-only view."""
    return [e for e in entries if e.status == EntryStatus.ERROR]


def error_identifiers(entries: list[ResultEntry]) -> list[Identifier]:
    """Identifiers of failed entries, renumbered, for a coarse-grained retry run."""
    return [
        e.identifier.model_copy(update={"index": i})
        for i, e in enumerate(error_entries(entries))
    ]
