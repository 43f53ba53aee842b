"""CSS selector compilation, memoized for the whole process.

Selectors are compiled once with soupsieve and the compiled pattern is shared
by every request, so the cache is guarded by a lock.
"""
import threading
from typing import Dict, List, Optional

import soupsieve
from bs4 import Tag

ARTICLE = "#contents article"
TITLE = "header h1 a:last-child"
SUBJECT = "header h1 a.topic"
UPDATED = "header time.updated"
CREATOR = 'header .meta a[rel="author"]'
CONTRIBUTORS = "header .meta .edited_by a"
THREADS = ".threads > li"
CHROME = ".actions, a.close, a.anchor, a.parent, .datePourCss, figure.score, meta"

_cache: Dict[str, soupsieve.SoupSieve] = {}
_lock = threading.Lock()

def translate(selector: str) -> soupsieve.SoupSieve:
    compiled = _cache.get(selector)
    if compiled is None:
        with _lock:
            compiled = _cache.get(selector)
            if compiled is None:
                compiled = soupsieve.compile(selector)
                _cache[selector] = compiled
    return compiled

def search(node: Tag, selector: str) -> List[Tag]:
    """All descendants of `node` matching `selector`, in document order."""
    return translate(selector).select(node)

def search_one(node: Tag, selector: str) -> Optional[Tag]:
    return translate(selector).select_one(node)
