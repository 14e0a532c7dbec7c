"""HTML helpers shared by the content extractor and ingestion strategies."""

from __future__ import annotations

import copy
import re
from datetime import datetime
from typing import Iterable, Optional, Sequence

from bs4 import BeautifulSoup, Tag

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

REMOVE_SELECTORS = (
    "script, style, nav, header, footer, aside, iframe, .ad, .advertisement, "
    ".social-share, .comments, .related-posts, [class*=\"sidebar\"], [class*=\"widget\"]"
)

CONTENT_SELECTORS: tuple[str, ...] = (
    "article",
    "[role=\"main\"]",
    "main",
    ".article-content",
    ".post-content",
    ".entry-content",
    ".content",
    "#content",
    ".article-body",
    ".post-body",
)

CONTENT_NOT_AVAILABLE = "Content not available"

_BLOCK_TAGS = ["div", "section", "article"]
_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def normalize_text(text: str) -> str:
    """Trim lines, drop blank ones and separate the rest by a blank line."""
    lines = [line.strip() for line in text.split("\n")]
    joined = "\n\n".join(line for line in lines if line)
    return _EXCESS_NEWLINES.sub("\n\n", joined).strip()


def _strip_unwanted(element: Tag) -> Tag:
    clone = copy.copy(element)
    for node in clone.select(REMOVE_SELECTORS):
        # descendants of an already removed node are gone too
        if node.decomposed:
            continue
        node.decompose()
    return clone


def clean_element(element: Tag) -> str:
    """Return the readable text of ``element`` without chrome such as nav or ads."""
    return normalize_text(_strip_unwanted(element).get_text())


def clean_elements(elements: Iterable[Tag]) -> str:
    raw = "\n".join(_strip_unwanted(el).get_text() for el in elements)
    return normalize_text(raw)


def extract_title(soup: BeautifulSoup) -> str:
    """h1, then og:title, then <title>, then "Untitled"."""
    h1 = soup.find("h1")
    if h1 is not None:
        text = h1.get_text(strip=True)
        if text:
            return text
    og = soup.find("meta", attrs={"property": "og:title"})
    if og is not None and og.get("content", "").strip():
        return og["content"].strip()
    if soup.title is not None:
        text = soup.title.get_text(strip=True)
        if text:
            return text
    return "Untitled"


def _largest_block(soup: BeautifulSoup, min_length: int) -> Optional[Tag]:
    blocks: list[tuple[int, Tag]] = []
    for element in soup.find_all(_BLOCK_TAGS):
        clone = copy.copy(element)
        # nested containers are ranked on their own
        for nested in clone.find_all(_BLOCK_TAGS):
            if not nested.decomposed:
                nested.decompose()
        length = len(clone.get_text().strip())
        if length > min_length:
            blocks.append((length, element))
    if not blocks:
        return None
    blocks.sort(key=lambda item: item[0], reverse=True)
    return blocks[0][1]


def extract_main_content(
    soup: BeautifulSoup,
    selectors: Sequence[str] = CONTENT_SELECTORS,
    *,
    min_length: int = 200,
    paragraph_min_length: int = 50,
    use_largest_block: bool = True,
) -> str:
    """Three-tier main content extraction.

    1. First selector whose cleaned text is longer than ``min_length``.
    2. Largest block container (nested containers stripped) over ``min_length``.
    3. Paragraphs longer than ``paragraph_min_length`` joined in document order.

    Falls back to ``"Content not available"``.
    """
    for selector in selectors:
        elements = soup.select(selector)
        if not elements:
            continue
        text = clean_elements(elements)
        if len(text) > min_length:
            return text

    if use_largest_block:
        block = _largest_block(soup, min_length)
        if block is not None:
            text = clean_element(block)
            if len(text) > min_length:
                return text

    paragraphs = [p.get_text().strip() for p in soup.find_all("p")]
    joined = "\n\n".join(p for p in paragraphs if len(p) > paragraph_min_length)
    return joined or CONTENT_NOT_AVAILABLE


def extract_author(soup: BeautifulSoup) -> Optional[str]:
    meta = soup.find("meta", attrs={"name": "author"})
    if meta is not None and meta.get("content", "").strip():
        return meta["content"].strip()
    for selector in ("[rel=\"author\"]", ".author"):
        node = soup.select_one(selector)
        if node is not None and node.get_text(strip=True):
            return node.get_text(strip=True)
    return None


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def extract_published_at(soup: BeautifulSoup) -> Optional[datetime]:
    meta = soup.find("meta", attrs={"property": "article:published_time"})
    if meta is not None and meta.get("content"):
        return parse_datetime(meta["content"])
    time_tag = soup.find("time")
    if time_tag is not None and time_tag.get("datetime"):
        return parse_datetime(time_tag["datetime"])
    node = soup.select_one(".date")
    if node is not None:
        return parse_datetime(node.get_text(strip=True))
    return None
