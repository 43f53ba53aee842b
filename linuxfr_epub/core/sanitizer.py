import copy
from typing import Callable, Optional
from bs4 import Tag

from ..models import log
from .selectors import search, CHROME
from .settings import Settings

MICRODATA_ATTRIBUTES = ("itemprop", "itemscope", "itemtype")

def remove_chrome(node: Tag) -> None:
    for element in search(node, CHROME):
        element.decompose()

def strip_microdata(node: Tag) -> None:
    for element in [node] + node.find_all(True):
        for attr in MICRODATA_ATTRIBUTES:
            if element.has_attr(attr):
                del element[attr]

def absolutize_links(node: Tag, settings: Settings) -> None:
    for link in node.find_all('a', href=True):
        href = link['href']
        if href.startswith('//'):
            link['href'] = f"{settings.scheme}:{href}"
        elif href.startswith('/'):
            link['href'] = f"{settings.base_url}{href}"

def localize_images(node: Tag, localize_image: Callable[[str], Optional[str]]) -> None:
    for img in node.find_all('img'):
        filename = localize_image(img.get('src'))
        if filename:
            img['src'] = filename

def to_xhtml(node: Tag, settings: Settings, localize_image: Callable[[str], Optional[str]]) -> str:
    """Clean copy of `node` serialized as XHTML.

    Chrome such as action links and score figures is dropped, microdata
    attributes are stripped, site-relative links are made absolute and images
    point at their archive filenames. Returns "" when serialization fails.
    """
    node = copy.copy(node)
    remove_chrome(node)
    strip_microdata(node)
    absolutize_links(node, settings)
    localize_images(node, localize_image)
    try:
        return node.decode(formatter="minimal")
    except Exception as e:
        log.error(f"Serialization failed for <{node.name} id={node.get('id')!r}>: {e}")
        return ""
