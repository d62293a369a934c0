"""Read song text from a file, stdin or a web page.

Web pages are reduced to the text of their ``<pre>`` blocks, which is where
chord sheets live on most tab sites.  Tags embedded in a ``<pre>`` block
(links, ``<em>`` notes) are skipped and ``<br>`` becomes a newline.
"""

import logging
import sys
from pathlib import Path

import httpx
from bs4 import BeautifulSoup, NavigableString, Tag

from .exceptions import FetchError

logger = logging.getLogger(__name__)


def is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def read_source(location: str) -> str:
    """Return the text at *location*: a URL, ``-`` for stdin, or a file path.

    Raises FetchError for failed HTTP requests and OSError for unreadable files.
    """
    if location == "-":
        return sys.stdin.read()
    if is_url(location):
        resp = fetch(location)
        if "html" in resp.headers.get("content-type", ""):
            return page_text(resp.text)
        return resp.text
    return Path(location).expanduser().read_text(encoding="utf-8")


def fetch(url: str) -> httpx.Response:
    try:
        resp = httpx.get(url, follow_redirects=True, timeout=15)
    except httpx.RequestError as exc:
        raise FetchError(url, 0) from exc
    if resp.status_code != 200:
        raise FetchError(url, resp.status_code)
    logger.debug("Fetched %s (%d bytes)", url, len(resp.text))
    return resp


def page_text(html: str) -> str:
    """Return the joined ``<pre>`` text of *html*, or its full text when there is no ``<pre>``."""
    soup = BeautifulSoup(html, "html.parser")
    blocks = [_pre_text(pre) for pre in soup.find_all("pre")]
    blocks = [b.strip("\n") for b in blocks if b.strip()]
    if blocks:
        return "\n\n".join(blocks) + "\n"
    return soup.get_text("\n")


def _pre_text(pre_element: Tag) -> str:
    """Collect the direct text of a ``<pre>`` block, treating ``<br>`` as a newline."""
    parts: list[str] = []
    for child in pre_element.children:
        if isinstance(child, NavigableString):
            parts.append(str(child))
        elif isinstance(child, Tag) and child.name == "br":
            parts.append("\n")
    return "".join(parts)
