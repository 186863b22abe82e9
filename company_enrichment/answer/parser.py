"""Parse answer-API responses into partial records.

The contact prompt asks for a labelled block::

    === CONTACT INFO ===
    Homepage: https://example.com
    Contact Page: https://example.com/contact

Answers drift from that format in small ways (bullets, bold labels, citation
markers, echoed placeholders), so parsing is lenient and never raises.
"""

from __future__ import annotations

import logging
import re

from company_enrichment.answer.prompts import (
    CONTACT_PAGE_LABEL,
    CONTACT_SECTION,
    HOMEPAGE_LABEL,
    NOT_FOUND,
)
from company_enrichment.models import ExecutiveInfo, PartialRecord

logger = logging.getLogger(__name__)

SECTION_HEADER = re.compile(r"===\s*(.+?)\s*===")
MARKDOWN_LINK = re.compile(r"^\[[^\]]*\]\((\S+?)\)$")
BRACKETED = re.compile(r"^\[(.*)\]$")
CITATION_MARKERS = re.compile(r"(?:\s*\[\d+\])+$")
NOT_FOUND_VALUE = re.compile(rf"^{re.escape(NOT_FOUND)}\.?$", re.IGNORECASE)


def parse_answer_text(answer_text: str, company_name_fallback: str) -> PartialRecord:
    """Build a record from a labelled-section answer.

    Labels are looked up in the CONTACT INFO section, or in the whole text
    when the answer left the section header out.
    """
    text = answer_text or ""
    body = extract_section(text, CONTACT_SECTION)
    if body is None:
        logger.debug("No %s section for %s, searching whole answer", CONTACT_SECTION, company_name_fallback)
        body = text

    return PartialRecord(
        company_name=company_name_fallback,
        homepage=extract_label(body, HOMEPAGE_LABEL),
        contact_page=extract_label(body, CONTACT_PAGE_LABEL),
        raw_text=answer_text,
    )


def record_from_executives(info: ExecutiveInfo, raw_text: str | None = None) -> PartialRecord:
    return PartialRecord(
        ceo=clean_value(info.ceo or ""),
        cofounders=[n for n in (clean_value(c) for c in info.cofounders or []) if n],
        raw_text=raw_text,
    )


def extract_section(text: str, name: str) -> str | None:
    """Body of the ``=== name ===`` section, up to the next header or end of text."""
    headers = list(SECTION_HEADER.finditer(text))
    for i, header in enumerate(headers):
        if header.group(1).strip().lower() != name.lower():
            continue
        end = headers[i + 1].start() if i + 1 < len(headers) else len(text)
        return text[header.end():end]
    return None


def extract_label(text: str, label: str) -> str | None:
    """Value of the first ``label: value`` line that carries a real value."""
    pattern = re.compile(
        rf"^[ \t]*(?:[-*•][ \t]*)?(?:\*\*)?[ \t]*{re.escape(label)}[ \t]*(?:\*\*)?[ \t]*:(?:\*\*)?[ \t]*(.*)$",
        re.IGNORECASE | re.MULTILINE,
    )
    for match in pattern.finditer(text):
        value = clean_value(match.group(1))
        if value:
            return value
    return None


def clean_value(raw: str) -> str | None:
    """Normalise one answer value; None when the answer means 'absent'."""
    value = raw.strip().strip("*`").strip()
    value = CITATION_MARKERS.sub("", value).strip()
    if not value:
        return None

    link = MARKDOWN_LINK.match(value)
    if link:
        value = link.group(1)
    else:
        bracketed = BRACKETED.match(value)
        if bracketed:
            inner = bracketed.group(1).strip()
            # Unfilled template placeholder, e.g. "[contact page URL if found]"
            if not _looks_like_url(inner):
                return None
            value = inner

    value = value.strip().strip("<>").strip()
    if not value or NOT_FOUND_VALUE.match(value):
        return None
    return value


def _looks_like_url(value: str) -> bool:
    return bool(re.match(r"^(https?://|www\.)\S+$", value, re.IGNORECASE))
