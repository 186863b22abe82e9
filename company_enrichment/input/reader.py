"""Turn pasted text or uploaded CSV/Excel/text files into run identifiers."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import pandas as pd

from company_enrichment.models import Identifier, LocationHint

logger = logging.getLogger(__name__)

MAX_INPUT_ROWS = 10000

# Flexible column name matching
COMPANY_COLUMNS = [
    "company / account",
    "company/account",
    "company name",
    "company_name",
    "company",
    "account",
    "firm",
    "organization",
    "name",
]
URL_COLUMNS = ["profile url", "profile_url", "source url", "source_url", "url", "link"]
COUNTRY_COLUMNS = ["country"]
CITY_COLUMNS = ["city", "town"]

_SEPARATORS = re.compile(r"[\r\n,]+")


def parse_names(text: str) -> list[str]:
    """Split free text on newlines and commas, dropping blank pieces."""
    return [piece.strip() for piece in _SEPARATORS.split(text or "") if piece.strip()]


def build_identifiers(
    names: list[str],
    source_urls: list[str | None] | None = None,
    locations: list[LocationHint | None] | None = None,
    max_rows: int = MAX_INPUT_ROWS,
) -> list[Identifier]:
    """Build the identifier list for one run.

    Names are trimmed and deduplicated case-insensitively; the first
    occurrence wins and keeps its casing and position. At most ``max_rows``
    identifiers are returned.
    """
    seen: set[str] = set()
    identifiers: list[Identifier] = []
    for i, raw in enumerate(names):
        name = (raw or "").strip()
        key = name.lower()
        if not name or key in seen:
            continue
        seen.add(key)

        url = source_urls[i] if source_urls and i < len(source_urls) else None
        location = locations[i] if locations and i < len(locations) else None
        identifiers.append(
            Identifier(
                index=len(identifiers),
                name=name,
                source_url=(url or "").strip() or None,
                location=location if location and location.describe() else None,
            )
        )
        if len(identifiers) >= max_rows:
            logger.warning("Input capped at %d rows", max_rows)
            break
    return identifiers


def read_input_file(file_path: str, max_rows: int = MAX_INPUT_ROWS) -> list[Identifier]:
    """Read company names from a .csv, .xlsx/.xls or .txt file.

    Spreadsheets use a recognised company column when the first row is a
    header, otherwise the first column of every row. Optional profile-URL,
    country and city columns are picked up from a header row.
    Raises ValueError on unsupported formats or files with no names.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    ext = path.suffix.lower()
    if ext == ".txt":
        identifiers = build_identifiers(parse_names(path.read_text(encoding="utf-8")), max_rows=max_rows)
    elif ext == ".csv":
        df = pd.read_csv(path, dtype=str, header=None, skip_blank_lines=True).fillna("")
        identifiers = _identifiers_from_frame(df, max_rows)
    elif ext in (".xlsx", ".xls"):
        df = pd.read_excel(path, dtype=str, header=None, engine="openpyxl").fillna("")
        identifiers = _identifiers_from_frame(df, max_rows)
    else:
        raise ValueError(
            f"Unsupported file format: {ext}. Use .csv, .xlsx, .xls or .txt"
        )

    if not identifiers:
        raise ValueError(f"No company names found in {file_path}")
    logger.info("Read %d companies from %s", len(identifiers), file_path)
    return identifiers


def _identifiers_from_frame(df: pd.DataFrame, max_rows: int) -> list[Identifier]:
    if df.empty:
        return []

    header = [str(v).strip().lower() for v in df.iloc[0].tolist()]
    company_col = _find_column(header, COMPANY_COLUMNS)
    if company_col is None:
        # No header row: first cell of every line is a company name
        return build_identifiers(df.iloc[:, 0].tolist(), max_rows=max_rows)

    url_col = _find_column(header, URL_COLUMNS)
    country_col = _find_column(header, COUNTRY_COLUMNS)
    city_col = _find_column(header, CITY_COLUMNS)
    rows = df.iloc[1:]

    names = rows.iloc[:, company_col].tolist()
    urls = rows.iloc[:, url_col].tolist() if url_col is not None else None
    locations = None
    if country_col is not None or city_col is not None:
        locations = [
            LocationHint(
                country=_cell(row, country_col),
                city=_cell(row, city_col),
            )
            for row in rows.itertuples(index=False)
        ]
    return build_identifiers(names, source_urls=urls, locations=locations, max_rows=max_rows)


def _find_column(header: list[str], candidates: list[str]) -> int | None:
    for candidate in candidates:
        if candidate in header:
            return header.index(candidate)
    return None


def _cell(row: tuple, col: int | None) -> str | None:
    if col is None:
        return None
    value = str(row[col]).strip()
    return value if value and value.lower() != "nan" else None
