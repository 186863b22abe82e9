"""Exception hierarchy for the enrichment pipeline."""

from __future__ import annotations


class EnrichmentPipelineError(Exception):
    """Base class for all errors raised by the package."""


class FetchError(EnrichmentPipelineError):
    """Transport-level failure: network error, timeout, redirect loop."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class ListingError(EnrichmentPipelineError):
    """The directory listing could not be fetched. Fatal to the whole batch."""


class AnswerAPIError(EnrichmentPipelineError):
    """The answer API call failed or returned something unusable."""

    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text


class EnrichmentError(EnrichmentPipelineError):
    """Enrichment of a single identifier failed.

    Carries the raw collaborator response when one was received so it can
    still be shown next to the failed row.
    """

    def __init__(self, message: str, raw_text: str | None = None):
        super().__init__(message)
        self.raw_text = raw_text
