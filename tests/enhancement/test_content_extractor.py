from __future__ import annotations

import asyncio

import pytest

from enhancement.errors import ScrapeError
from enhancement.services.content_extractor import ContentExtractor
from ingestion.settings import Settings

BODY = "Reference articles explain the topic in more depth than the original. " * 4


def _page(title: str) -> str:
    return (
        f"<html><head><title>{title} | Site</title></head><body>"
        f"<nav>Home</nav><h1>{title}</h1><main>\n<p>{BODY}</p>\n<aside>Related</aside>\n</main>"
        "</body></html>"
    )


def test_scrape_article_extracts_title_and_content(httpx_mock):
    httpx_mock.add_response(url="https://a.example/guide", text=_page("Guide A"))

    scraped = asyncio.run(ContentExtractor(Settings()).scrape_article("https://a.example/guide"))

    assert scraped.title == "Guide A"
    assert scraped.content == BODY.strip()
    assert scraped.url == "https://a.example/guide"


def test_scrape_many_preserves_order(httpx_mock):
    httpx_mock.add_response(url="https://a.example/guide", text=_page("Guide A"))
    httpx_mock.add_response(url="https://b.example/guide", text=_page("Guide B"))

    scraped = asyncio.run(
        ContentExtractor(Settings()).scrape_many(["https://a.example/guide", "https://b.example/guide"])
    )

    assert [s.title for s in scraped] == ["Guide A", "Guide B"]


def test_scrape_article_http_error(httpx_mock):
    httpx_mock.add_response(url="https://a.example/gone", status_code=410)

    with pytest.raises(ScrapeError) as exc:
        asyncio.run(ContentExtractor(Settings()).scrape_article("https://a.example/gone"))

    assert str(exc.value).startswith("Failed to scrape article:")
