"""CSV export of a result table."""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path

from company_enrichment.models import ResultEntry

logger = logging.getLogger(__name__)

FULL_COLUMNS = [
    "company_name",
    "homepage",
    "contact_page",
    "phone",
    "country",
    "city",
    "ceo",
    "cofounders",
    "source_urls",
    "status",
    "error",
]

# Fixed column set per run mode
EXPORT_COLUMNS: dict[str, list[str]] = {
    "details": ["company_name", "phone", "country", "city", "source_urls", "status", "error"],
    "search": ["company_name", "homepage", "contact_page", "source_urls", "status", "error"],
    "executives": ["company_name", "ceo", "cofounders", "status", "error"],
    "combined": FULL_COLUMNS,
    "full": FULL_COLUMNS,
}


def columns_for(mode: str) -> list[str]:
    return EXPORT_COLUMNS.get(str(mode).lower(), FULL_COLUMNS)


def flatten_entry(entry: ResultEntry) -> dict[str, str]:
    """One flat row with every export column; list fields are joined."""
    record = entry.record
    return {
        "company_name": record.company_name or entry.identifier.name,
        "homepage": record.homepage or "",
        "contact_page": record.contact_page or "",
        "phone": record.phone or "",
        "country": record.country or "",
        "city": record.city or "",
        "ceo": record.ceo or "",
        "cofounders": "; ".join(record.cofounders),
        "source_urls": " | ".join(record.source_urls),
        "status": entry.status.value,
        "error": entry.error or "",
    }


def flatten_entries(entries: list[ResultEntry], mode: str = "full") -> list[dict[str, str]]:
    columns = columns_for(mode)
    return [{c: row[c] for c in columns} for row in map(flatten_entry, entries)]


def to_csv_text(entries: list[ResultEntry], mode: str = "full") -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns_for(mode), lineterminator="\n")
    writer.writeheader()
    writer.writerows(flatten_entries(entries, mode))
    return buffer.getvalue()


def write_csv(entries: list[ResultEntry], output_path: str, mode: str = "full") -> Path:
    """Write the table to ``output_path`` and return the resolved path."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_csv_text(entries, mode), encoding="utf-8")
    logger.info("Wrote %d rows to %s", len(entries), path)
    return path.resolve()
