import re
from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo
from bs4 import Tag

from ..models import log, Metadata
from . import selectors
from .selectors import search, search_one

PARIS = ZoneInfo("Europe/Paris")
DATE_FORMAT = "le %d/%m/%y à %H:%M"
ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
COVER_PATTERN = re.compile(r"background(?:-image)?\s*:[^;}]*?url\(\s*['\"]?([^'\")]+?)['\"]?\s*\)", re.IGNORECASE)

def find_meta(node: Tag, selector: str) -> str:
    match = search_one(node, selector)
    if match is None:
        return ""
    return match.get_text().strip()

def find_metas(node: Tag, selector: str) -> List[str]:
    return [match.get_text().strip() for match in search(node, selector)]

def parse_date(text: str, now: Optional[datetime] = None) -> str:
    """Convert LinuxFr's "le 05/03/24 à 10:30" (Paris time) into a UTC ISO-8601 stamp.

    Unparsable text falls back to `now` (the current instant by default).
    """
    try:
        local = datetime.strptime(text.strip(), DATE_FORMAT).replace(tzinfo=PARIS)
    except ValueError:
        log.debug(f"Unparsable date {text!r}, using current time")
        local = now or datetime.now(timezone.utc)
    return local.astimezone(timezone.utc).strftime(ISO_FORMAT)

def _page_root(node: Tag) -> Tag:
    while node.parent is not None:
        node = node.parent
    return node

def find_cover(article: Tag) -> Optional[str]:
    """Source of the page's `background(-image): url(...)` cover, searched in every <style> of the page."""
    for style in _page_root(article).find_all('style'):
        match = COVER_PATTERN.search(style.get_text())
        if match:
            return match.group(1).strip()
    return None

def extract_metadata(article: Tag) -> Metadata:
    return Metadata(
        title=find_meta(article, selectors.TITLE),
        subject=find_meta(article, selectors.SUBJECT),
        date=parse_date(find_meta(article, selectors.UPDATED)),
        creator=find_meta(article, selectors.CREATOR),
        contributors=find_metas(article, selectors.CONTRIBUTORS),
        cover_src=find_cover(article),
    )
