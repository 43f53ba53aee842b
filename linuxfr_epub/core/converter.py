import io
from typing import IO, Tuple

from ..models import log
from .images import ImageHarvester
from .metadata import extract_metadata
from .packager import EpubPackager
from .session import fetch_article, get_session
from .settings import Settings

EPUB_SUFFIX = ".epub"
POLL_PREFIX = "/sondages"

def article_url(path: str, settings: Settings) -> str:
    """Upstream page for a request path such as /news/foo.epub."""
    url = settings.base_url + path.replace(EPUB_SUFFIX, "", 1)
    if path.startswith(POLL_PREFIX):
        url += "?results=1"
    return url

async def convert(session, path: str, output: IO[bytes], settings: Settings) -> str:
    """Write the EPUB for `path` into `output`; returns the upstream URL.

    Raises FetchError / NotFoundError before anything is written to `output`.
    """
    url = article_url(path, settings)
    page = await fetch_article(session, url)
    harvester = ImageHarvester(session, settings)
    try:
        packager = EpubPackager(output, path, harvester, settings)
        packager.fill_metadata(extract_metadata(page.article))
        packager.add_content(page.article)
        packager.add_comments(page.article)
        await packager.finalize()
        log.info(f"Packaged {path}: {len(packager.document.items)} items, {len(packager.document.images)} image(s) requested")
    finally:
        if harvester.pending:
            log.debug(f"Cancelling {harvester.pending} pending image harvest(s) for {path}")
        harvester.cancel()
        page.release()
    return url

async def build_epub(path: str, settings: Settings, session=None) -> Tuple[bytes, str]:
    """Convert `path` into an in-memory EPUB; returns (archive bytes, upstream URL)."""
    buffer = io.BytesIO()
    if session is not None:
        url = await convert(session, path, buffer, settings)
    else:
        async with get_session(settings.request_timeout) as own_session:
            url = await convert(own_session, path, buffer, settings)
    return buffer.getvalue(), url
