import os
import re
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional

from bs4 import BeautifulSoup, Tag
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Constants ---
DEFAULT_HOST = "linuxfr.org"
DEFAULT_SCHEME = "https"
DEFAULT_ADDRESS = "127.0.0.1:9000"
CONTENT_TYPE = "application/epub+zip"
XHTML_MEDIA_TYPE = "application/xhtml+xml"
USER_AGENT = "Mozilla/5.0 (compatible; linuxfr-epub/1.0; +https://linuxfr.org/)"

MAX_RETRIES = 2
RETRY_DELAY = 0.5
MAX_RETRY_WAIT = 5

# The maximal size for an image is 5MiB
MAX_IMAGE_SIZE = 5 * (1 << 20)
IMAGE_DELIVERY_WINDOW = 30
IMAGE_QUEUE_SIZE = 16
MAX_FILENAME_LENGTH = 64

# --- Logging ---
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
_LOGLEVEL = os.getenv("LOGLEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, _LOGLEVEL, logging.INFO), format=LOG_FORMAT)
log = logging.getLogger("linuxfr_epub")

def log_to_file(path: str) -> None:
    """Send every log record to `path` instead of stderr.

    Raises OSError when the file cannot be opened; callers treat that as fatal.
    """
    handler = logging.FileHandler(path, mode='a', encoding='utf-8')
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)

# --- Errors ---

class ConversionError(Exception):
    """Base class for failures that abort a conversion."""

class FetchError(ConversionError):
    """The upstream page could not be retrieved."""

class NotFoundError(ConversionError):
    """The upstream page has no article."""

class PackagerStateError(RuntimeError):
    pass

# --- Data Structures ---

@dataclass
class ManifestItem:
    id: str
    href: str
    media_type: str
    spine: bool = False

@dataclass
class HarvestedImage:
    filename: str
    mimetype: str
    content: bytes

@dataclass
class Metadata:
    title: str = ""
    subject: str = ""
    date: str = ""
    creator: str = ""
    contributors: List[str] = field(default_factory=list)
    cover_src: Optional[str] = None

@dataclass
class Document:
    """State of one EPUB under construction, owned by a single request."""
    identifier: str
    title: str = ""
    subject: str = ""
    date: str = ""
    cover: str = ""
    creator: str = ""
    contributors: List[str] = field(default_factory=list)
    items: List[ManifestItem] = field(default_factory=list)
    # image source path -> filename inside the archive
    images: Dict[str, str] = field(default_factory=dict)
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=IMAGE_QUEUE_SIZE))

    def has_item(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self.items)

@dataclass
class ArticlePage:
    """A parsed upstream page and its article node."""
    url: str
    soup: BeautifulSoup
    article: Tag

    def release(self) -> None:
        self.soup.decompose()

# --- Helper Functions ---

def sanitize_filename(filename):
    if not filename: return "untitled"
    filename = re.sub(r'[\x00-\x1f]', '', filename)
    sanitized = re.sub(r'[<>:"/\\|?*]', '', filename)
    sanitized = re.sub(r'\s+', '_', sanitized).strip('_')
    return sanitized[:150]
