"""Async HTTP transport for the directory site, with browser-like headers."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from company_enrichment.cache.store import ResponseCache
from company_enrichment.errors import FetchError
from company_enrichment.pacing import Pacer

logger = logging.getLogger(__name__)

# Fixed desktop browser identity; the directory blocks obvious bots
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass
class FetchResponse:
    status: int
    body: str
    url: str
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


async def fetch(
    url: str,
    *,
    timeout: float = 30,
    client: httpx.AsyncClient | None = None,
    cache: ResponseCache | None = None,
    pacer: Pacer | None = None,
) -> FetchResponse:
    """GET a page and return its status and body.

    Non-2xx responses are returned, not raised; callers decide what a bad
    status means. Transport failures (timeouts, connection errors, redirect
    loops) raise FetchError. Successful bodies are stored in ``cache``.
    ``pacer`` is only waited on when the page has to be requested.
    """
    if cache is not None:
        cached = cache.get(url)
        if cached is not None:
            status, body = cached
            logger.debug("Cache hit: %s", url[:80])
            return FetchResponse(status=status, body=body, url=url, from_cache=True)

    if pacer is not None:
        await pacer.wait()

    try:
        if client is not None:
            response = await client.get(url, headers=HEADERS, timeout=timeout)
        else:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                max_redirects=5,
            ) as own_client:
                response = await own_client.get(url, headers=HEADERS)
    except httpx.TimeoutException as e:
        raise FetchError(url, "timeout") from e
    except httpx.TooManyRedirects as e:
        raise FetchError(url, "too_many_redirects") from e
    except httpx.HTTPError as e:
        raise FetchError(url, str(e)[:100] or type(e).__name__) from e

    result = FetchResponse(status=response.status_code, body=response.text, url=url)
    if result.ok and cache is not None:
        cache.set(url, result.status, result.body)
    logger.debug("GET %s -> %d (%s chars)", url[:80], result.status, f"{len(result.body):,}")
    return result
