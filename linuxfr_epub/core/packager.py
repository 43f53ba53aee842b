import asyncio
import enum
import re
import zipfile
from typing import IO, Optional
from bs4 import Tag

from ..models import (
    log, Document, ManifestItem, Metadata, PackagerStateError, CONTENT_TYPE, XHTML_MEDIA_TYPE
)
from . import templates
from .images import ImageHarvester
from .sanitizer import to_xhtml
from .selectors import search, THREADS
from .settings import Settings

# ids and `{id}.xhtml` names used by the boilerplate, the content page and the cover
RESERVED_IDS = frozenset({"nav", "css", "cover", "content", "package", "item-content"})
THREAD_ID_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")

class PackagerState(enum.Enum):
    CREATED = 1
    METADATA_FILLED = 2
    CONTENT_ADDED = 3
    COMMENTS_ADDED = 4
    FINALIZED = 5

class EpubPackager:
    """Writes one EPUB into `output` while the article is being converted.

    The boilerplate entries are written on construction; then metadata,
    content, comments and finally the images and the OPF are added, in that
    order and once each.
    """

    def __init__(self, output: IO[bytes], identifier: str, harvester: ImageHarvester, settings: Settings):
        self.settings = settings
        self.harvester = harvester
        self.document = Document(identifier=identifier, queue=asyncio.Queue(maxsize=settings.image_queue_size))
        self.state = PackagerState.CREATED
        self.cover_item: Optional[ManifestItem] = None
        self.zip = zipfile.ZipFile(output, 'w', zipfile.ZIP_DEFLATED)
        self.add_mimetype()
        self.add_dir("META-INF")
        self.add_file("META-INF/container.xml", templates.CONTAINER)
        self.add_dir("EPUB")
        self.add_file("EPUB/nav.xhtml", templates.NAV)
        self.add_file(f"EPUB/{templates.STYLESHEET_HREF}", templates.STYLESHEET)

    def _advance(self, expected: PackagerState, new: PackagerState) -> None:
        if self.state is not expected:
            raise PackagerStateError(f"Cannot move to {new.name} from {self.state.name}")
        self.state = new

    # --- Archive entries ---

    def add_mimetype(self) -> None:
        try:
            self.zip.writestr(zipfile.ZipInfo("mimetype"), CONTENT_TYPE, compress_type=zipfile.ZIP_STORED)
        except Exception as e:
            log.error(f"Zip error: {e}")

    def add_dir(self, dirname: str) -> None:
        try:
            self.zip.writestr(zipfile.ZipInfo(f"{dirname}/"), b"")
        except Exception as e:
            log.error(f"Zip error: {e}")

    def add_file(self, filename: str, content) -> bool:
        try:
            self.zip.writestr(filename, content)
            return True
        except Exception as e:
            log.error(f"Zip error on {filename}: {e}")
            return False

    # --- Images ---

    def localize_image(self, src: Optional[str]) -> Optional[str]:
        return self.harvester.localize(self.document, src)

    # --- Steps ---

    def fill_metadata(self, metadata: Metadata) -> None:
        self._advance(PackagerState.CREATED, PackagerState.METADATA_FILLED)
        doc = self.document
        doc.title = metadata.title
        doc.subject = metadata.subject
        doc.date = metadata.date
        doc.creator = metadata.creator
        doc.contributors = list(metadata.contributors)
        if metadata.cover_src:
            doc.cover = self.localize_image(metadata.cover_src) or ""

    def add_content(self, article: Tag) -> None:
        self._advance(PackagerState.METADATA_FILLED, PackagerState.CONTENT_ADDED)
        html = templates.wrap_page(to_xhtml(article, self.settings, self.localize_image))
        self.document.items.append(ManifestItem("item-content", templates.CONTENT_HREF, XHTML_MEDIA_TYPE, spine=True))
        self.add_file(f"EPUB/{templates.CONTENT_HREF}", html)

    def _thread_id_taken(self, candidate: str) -> bool:
        if candidate in RESERVED_IDS:
            return True
        filename = f"{candidate}.xhtml"
        return (self.document.has_item(candidate)
                or any(item.href == filename for item in self.document.items)
                or filename in self.document.images.values())

    def _thread_id(self, thread: Tag, position: int) -> str:
        """Manifest id for a thread, also used as its `{id}.xhtml` entry name.

        The page's `id` attribute is reduced to letters, digits, `_` and `-`;
        ids of the boilerplate, the cover and the images (`img-N`) are
        never handed out.
        """
        base = THREAD_ID_UNSAFE.sub("-", thread.get('id') or "").strip("-")
        if not base:
            base = f"thread-{position}"
        elif base.startswith("img-") or not (base[0].isalpha() or base[0] == "_"):
            base = f"thread-{base}"
        candidate, n = base, 2
        while self._thread_id_taken(candidate):
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    def add_comments(self, article: Tag) -> None:
        self._advance(PackagerState.CONTENT_ADDED, PackagerState.COMMENTS_ADDED)
        threads_list = article.find_next_sibling()
        if threads_list is None:
            return
        for position, thread in enumerate(search(threads_list, THREADS), start=1):
            html = templates.wrap_page(f'<ul class="threads">{to_xhtml(thread, self.settings, self.localize_image)}</ul>')
            item_id = self._thread_id(thread, position)
            filename = f"{item_id}.xhtml"
            self.document.items.append(ManifestItem(item_id, filename, XHTML_MEDIA_TYPE, spine=True))
            self.add_file(f"EPUB/{filename}", html)

    async def finalize(self) -> None:
        """Collect every harvested image, then write the OPF and close the archive."""
        self._advance(PackagerState.COMMENTS_ADDED, PackagerState.FINALIZED)
        doc = self.document
        expected = len(doc.images)
        window = self.settings.image_timeout + self.settings.image_delivery_window
        for i in range(expected):
            try:
                image = await asyncio.wait_for(doc.queue.get(), timeout=window)
            except asyncio.TimeoutError:
                log.warning(f"Gave up waiting for {expected - i} image(s) of {doc.identifier}")
                break
            if image is None:
                continue
            if not self.add_file(f"EPUB/{image.filename}", image.content):
                continue
            if doc.cover and image.filename == doc.cover:
                self.cover_item = ManifestItem("cover", image.filename, image.mimetype)
            else:
                doc.items.append(ManifestItem(f"img-{i}", image.filename, image.mimetype))

        self.add_file(templates.PACKAGE_PATH, templates.render_package(doc, self.cover_item))
        try:
            self.zip.close()
        except Exception as e:
            log.error(f"Error on closing zip: {e}")
