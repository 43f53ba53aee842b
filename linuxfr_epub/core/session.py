import asyncio
import aiohttp
import socket
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from contextlib import asynccontextmanager
from typing import Dict, Optional
from aiohttp.resolver import ThreadedResolver
from bs4 import BeautifulSoup

from ..models import (
    log, ArticlePage, FetchError, NotFoundError, USER_AGENT, MAX_RETRIES, RETRY_DELAY, MAX_RETRY_WAIT
)
from .selectors import search_one, ARTICLE

DEFAULT_HEADERS = {
    'User-Agent': USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'fr-FR,fr;q=0.9,en;q=0.5',
}

@asynccontextmanager
async def get_session(timeout: float = 30):
    # Threaded DNS avoids pycares issues on some platforms; force IPv4
    connector = aiohttp.TCPConnector(
        resolver=ThreadedResolver(),
        ttl_dns_cache=300,
        family=socket.AF_INET
    )
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout), connector=connector, headers=DEFAULT_HEADERS) as session:
        yield session

def retry_after(value: Optional[str], default: float) -> float:
    """Seconds to wait from a Retry-After header (delay-seconds or HTTP-date), capped."""
    if not value:
        return min(default, MAX_RETRY_WAIT)
    value = value.strip()
    try:
        delay = int(value)
    except ValueError:
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            log.debug(f"Unparsable Retry-After: {value!r}")
            return min(default, MAX_RETRY_WAIT)
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        delay = (when - datetime.now(timezone.utc)).total_seconds()
    return min(max(delay, default, 0), MAX_RETRY_WAIT)

async def fetch_text(
    session,
    url,
    extra_headers: Optional[Dict[str, str]] = None,
    max_retries: int = MAX_RETRIES,
    backoff: float = RETRY_DELAY,
) -> str:
    """GET `url` and return its body, retrying transient failures.

    Raises FetchError on client errors, or once the retries are exhausted.
    """
    last_error = None
    for attempt in range(max_retries):
        try:
            async with session.get(url, headers=extra_headers) as response:
                if response.status == 429:
                    wait_time = retry_after(response.headers.get("Retry-After"), backoff * (2 ** attempt))
                    log.warning(f"Rate limit hit (429). Cooling down for {wait_time}s...")
                    last_error = f"HTTP 429 for {url}"
                    if attempt + 1 < max_retries:
                        await asyncio.sleep(wait_time)
                    continue

                if 400 <= response.status < 500:
                    raise FetchError(f"HTTP {response.status} for {url}")

                if response.status >= 500:
                    last_error = f"HTTP {response.status} for {url}"
                    log.warning(f"Attempt {attempt + 1}/{max_retries}: {last_error}")
                else:
                    return await response.text(encoding='utf-8', errors='replace')

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            last_error = f"{type(e).__name__} for {url}: {e}"
            log.warning(f"Attempt {attempt + 1}/{max_retries} failed for {url}: {e}")

        if attempt + 1 < max_retries:
            await asyncio.sleep(backoff * (2 ** attempt))
    raise FetchError(last_error or f"Could not fetch {url}")

async def fetch_article(session, url: str) -> ArticlePage:
    log.info(f"Fetch {url}")
    html_content = await fetch_text(session, url)
    soup = BeautifulSoup(html_content, 'lxml')
    article = search_one(soup, ARTICLE)
    if article is None:
        soup.decompose()
        raise NotFoundError(f"No article found in {url}")
    return ArticlePage(url=url, soup=soup, article=article)
