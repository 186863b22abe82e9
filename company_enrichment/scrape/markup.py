"""Tolerant key/value and link extraction from directory HTML.

Works over a parse tree rather than raw regexes so nested or unclosed tags
inside cells do not break row boundaries. Nothing in here raises on bad
input: markup that does not match simply yields no rows.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from company_enrichment.models import DirectoryEntry, PartialRecord

logger = logging.getLogger(__name__)

# Directory layout hints
LISTING_CONTAINER = "div.list-group.list-group-wrap"
LISTING_TITLE = "strong.list-group-item-title"
PROFILE_CONTAINER = "section#swfiProfileSingle .table-responsive"
PROFILE_PATH = "/profile/"

# Row labels recognised per field (compared lower-cased)
FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "phone": ("phone", "telephone", "tel", "phone number"),
    "country": ("country",),
    "city": ("city", "town"),
    "homepage": ("website", "web site", "homepage", "url"),
}

_KEY_TO_FIELD = {
    synonym: field
    for field, synonyms in FIELD_SYNONYMS.items()
    for synonym in synonyms
}

_EDGE_NOISE = re.compile(r"^[\s:]+|[\s:]+$")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class KeyValueRow:
    """One table row: lower-cased label, its value, and every cell's text."""
    key: str
    value: str
    cells: tuple[str, ...]


def extract_rows(
    html: str,
    container_hint: str | None = None,
    fallback_to_document: bool = True,
) -> list[KeyValueRow]:
    """Extract label/value rows from table-like markup.

    ``container_hint`` is a CSS selector bounding the search. When it is
    missing or matches nothing the whole document is scanned, unless
    ``fallback_to_document`` is False, in which case nothing is returned.
    """
    soup = _parse(html)
    if soup is None:
        return []
    region = _region(soup, container_hint, fallback_to_document)
    if region is None:
        return []

    rows: list[KeyValueRow] = []
    for tr in region.find_all("tr"):
        cells = [
            text for text in (
                _clean_text(cell) for cell in tr.find_all(["td", "th"], recursive=False)
            )
            if text
        ]
        if len(cells) < 2:
            continue
        rows.append(KeyValueRow(key=cells[0].lower(), value=cells[1], cells=tuple(cells)))
    return rows


def rows_to_record(rows: list[KeyValueRow]) -> PartialRecord:
    """Map rows onto record fields. First non-empty match per field wins."""
    found: dict[str, str] = {}
    for row in rows:
        field = _KEY_TO_FIELD.get(row.key)
        if field and row.value and field not in found:
            found[field] = row.value
    return PartialRecord(**found)


def extract_anchors(
    html: str,
    container_hint: str | None = LISTING_CONTAINER,
    path_fragment: str = PROFILE_PATH,
    title_selector: str | None = LISTING_TITLE,
    base_url: str = "",
    dedupe_key: Callable[[DirectoryEntry], str] | None = None,
) -> list[DirectoryEntry]:
    """Collect ``{name, profile_url}`` entries from profile links.

    Only links whose href contains ``path_fragment`` are kept. The display
    name comes from the ``title_selector`` element inside the link, falling
    back to the link text. Results are deduplicated by ``dedupe_key``
    (normalized profile URL by default) in first-seen order.
    """
    soup = _parse(html)
    if soup is None:
        return []
    region = _region(soup, container_hint, fallback_to_document=True)

    entries: list[DirectoryEntry] = []
    for anchor in region.find_all("a", href=True):
        href = str(anchor.get("href", "")).strip()
        if not href or path_fragment not in href:
            continue

        title = _select_one(anchor, title_selector) if title_selector else None
        name = _clean_text(title) if title is not None else ""
        if not name:
            name = _clean_text(anchor)
        if not name:
            continue

        url = urljoin(base_url, href) if base_url else href
        entries.append(DirectoryEntry(name=name, profile_url=url))

    return dedupe_by(entries, dedupe_key or (lambda e: normalize_url(e.profile_url)))


def dedupe_by(items: list, key: Callable) -> list:
    """Keep the first item for each ``key(item)``, preserving order."""
    seen = set()
    kept = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        kept.append(item)
    return kept


def normalize_url(url: str) -> str:
    """Normalize a URL for deduplication: lower-case host, no fragment or trailing slash."""
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/")
    query = f"?{parsed.query}" if parsed.query else ""
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}{query}"


def _parse(html: str) -> BeautifulSoup | None:
    try:
        return BeautifulSoup(html or "", "lxml")
    except Exception as e:
        logger.debug("Markup parse failed: %s", e)
        return None


def _region(
    soup: BeautifulSoup,
    container_hint: str | None,
    fallback_to_document: bool,
) -> Tag | None:
    if container_hint:
        found = _select_one(soup, container_hint)
        if found is not None:
            return found
        logger.debug("Container %r not found", container_hint)
        if not fallback_to_document:
            return None
    return soup


def _select_one(node: Tag, selector: str) -> Tag | None:
    try:
        return node.select_one(selector)
    except Exception as e:
        # Bad selector syntax from a caller; treat as no match
        logger.debug("Selector %r failed: %s", selector, e)
        return None


def _clean_text(node: Tag) -> str:
    text = _WHITESPACE.sub(" ", node.get_text(" ", strip=True))
    return _EDGE_NOISE.sub("", text)
