import asyncio
import hashlib
import mimetypes
import posixpath
import aiohttp
from typing import Optional, Set
from urllib.parse import urlparse, urlunparse, ParseResult

from ..models import log, Document, HarvestedImage, MAX_FILENAME_LENGTH
from .settings import Settings

def resolve_url(src: str, settings: Settings) -> str:
    """Absolute URL for `src`, filling in the configured scheme and host when missing."""
    parsed = urlparse(src)
    scheme = parsed.scheme or settings.scheme
    netloc = parsed.netloc or settings.host
    return urlunparse(ParseResult(scheme, netloc, parsed.path, parsed.params, parsed.query, parsed.fragment))

def image_filename(src: str, settings: Settings) -> str:
    """Archive-safe filename for an image.

    The URL path with its slashes removed, or the SHA-224 of the absolute URL
    (plus the original extension) when that would exceed 64 characters.
    """
    filename = urlparse(src).path.replace("/", "")
    if len(filename) > MAX_FILENAME_LENGTH:
        digest = hashlib.sha224(resolve_url(src, settings).encode('utf-8')).hexdigest()
        filename = digest + posixpath.splitext(filename)[1]
    return filename

class ImageHarvester:
    def __init__(self, session: aiohttp.ClientSession, settings: Settings):
        self.session = session
        self.settings = settings
        self._tasks: Set[asyncio.Task] = set()

    def localize(self, document: Document, src: Optional[str]) -> Optional[str]:
        """Filename under which `src` will live in the archive, or None to leave it alone.

        The first reference to a path registers it on the document and starts
        a harvest; later references get the same filename back.
        """
        if not src or src.strip().lower().startswith("data:"):
            return None
        src = src.strip()
        path = urlparse(src).path
        if path in document.images:
            return document.images[path]
        filename = image_filename(src, self.settings)
        if not filename:
            return None
        if filename in document.images.values():
            # another path flattened to the same name
            digest = hashlib.sha224(resolve_url(src, self.settings).encode('utf-8')).hexdigest()
            filename = digest + posixpath.splitext(filename)[1]
        document.images[path] = filename
        self.dispatch(document, src, filename)
        return filename

    def dispatch(self, document: Document, src: str, filename: str) -> None:
        task = asyncio.get_running_loop().create_task(self.harvest(document.queue, src, filename))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def cancel(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    async def harvest(self, queue: asyncio.Queue, src: str, filename: str) -> None:
        """Fetch one image and put the result (None on failure) on `queue`, exactly once."""
        image = None
        try:
            image = await self.fetch(src, filename)
        except Exception as e:
            log.error(f"Harvest of {src} failed: {e}")
        try:
            await asyncio.wait_for(queue.put(image), timeout=self.settings.image_delivery_window)
        except asyncio.TimeoutError:
            log.warning(f"Timeout for {filename}")

    async def fetch(self, src: str, filename: str) -> Optional[HarvestedImage]:
        url = resolve_url(src, self.settings)
        max_size = self.settings.image_max_size
        timeout = aiohttp.ClientTimeout(total=self.settings.image_timeout)
        try:
            async with self.session.get(url, timeout=timeout) as response:
                if not 200 <= response.status < 300:
                    log.warning(f"Status code of {url} is: {response.status}")
                    return None
                if response.content_length is not None and response.content_length > max_size:
                    log.warning(f"Exceeded max size for {url}: {response.content_length}")
                    return None

                chunks = []
                size = 0
                async for chunk in response.content.iter_chunked(64 * 1024):
                    size += len(chunk)
                    if size > max_size:
                        log.warning(f"Exceeded max size for {url}: more than {max_size} bytes")
                        return None
                    chunks.append(chunk)

                mimetype = response.content_type
                if not mimetype or mimetype == 'application/octet-stream':
                    mimetype = mimetypes.guess_type(filename)[0] or 'application/octet-stream'
                return HarvestedImage(filename=filename, mimetype=mimetype, content=b"".join(chunks))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.warning(f"Image fetch failed for {url}: {type(e).__name__} {e}")
            return None
