"""Prompt templates for the answer API: contact lookup and executive lookup."""

from __future__ import annotations

from company_enrichment.models import LocationHint

# Section and labels the contact prompt asks for, shared with the parser
CONTACT_SECTION = "CONTACT INFO"
HOMEPAGE_LABEL = "Homepage"
CONTACT_PAGE_LABEL = "Contact Page"
NOT_FOUND = "Not found"

# ---------------------------------------------------------------------------
# PROMPT 1: Homepage / contact page, fixed labelled text format
# ---------------------------------------------------------------------------

CONTACT_PROMPT = """Find the homepage and contact page for company: {company_name}

Please provide only this information in the exact format shown:

=== {section} ===
{homepage_label}: [company's main website URL]
{contact_page_label}: [contact page URL if found]

SEARCH STRATEGY:
1. Find the company's official website/homepage
2. Look for their contact page or contact us section

IMPORTANT:
- Focus ONLY on homepage and contact page URLs
- Use exact format with === {section} === header
- If not found, write "{not_found}\""""

# ---------------------------------------------------------------------------
# PROMPT 2: CEO and founders, schema-constrained answer
# ---------------------------------------------------------------------------

EXECUTIVE_PROMPT = """Find information about the CEO and founders/cofounders of the company: {company_name}{location_context}

Please provide accurate information about:
1. Current CEO name
2. Founders/cofounders names

SEARCH STRATEGY:
1. Look for current leadership information on the company's official website
2. Find founder and cofounder details from reliable sources
3. Verify information is current and accurate

IMPORTANT:
- Focus on current CEO and original founders/cofounders
- Only include verified names, not job titles
- If not found, leave the field empty"""


def build_contact_prompt(company_name: str) -> str:
    return CONTACT_PROMPT.format(
        company_name=company_name,
        section=CONTACT_SECTION,
        homepage_label=HOMEPAGE_LABEL,
        contact_page_label=CONTACT_PAGE_LABEL,
        not_found=NOT_FOUND,
    )


def build_executive_prompt(company_name: str, location: LocationHint | None = None) -> str:
    where = location.describe() if location else ""
    location_context = f" (located in {where})" if where else ""
    return EXECUTIVE_PROMPT.format(
        company_name=company_name,
        location_context=location_context,
    )
