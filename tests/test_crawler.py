"""Tests for HTML text extraction and the site crawler."""

import asyncio
import json

import httpx
import pytest

from content_engine.schemas.content import CrawledPage
from content_engine.services.crawler import (
    crawl_site,
    discover_blog_paths,
    extract_text_content,
    fallback_title,
    fetch_page,
    page_filename,
    save_page,
)
from content_engine.services.errors import FetchError


PAGE_HTML = """
<html>
  <head>
    <title>Custom Domain</title>
    <style>.hidden { display: none; }</style>
    <script>window.analytics = true;</script>
  </head>
  <body>
    <h1>Connect   your domain</h1>
    <p>Open   the settings
       panel.</p>
    <ul><li>Buy a domain</li><li>Point DNS records</li></ul>
    <noscript>Enable JavaScript</noscript>
  </body>
</html>
"""

BLOG_INDEX_HTML = """
<html><body>
  <a href="/blog/launch">Launch</a>
  <a href="/blog/launch">Launch again</a>
  <a href="/blog/seo-tips">SEO tips</a>
  <a href="/pricing">Pricing</a>
  <a href="https://elsewhere.com/blog/x">External</a>
</body></html>
"""


class TestExtractTextContent:

    def test_strips_scripts_and_keeps_block_structure(self) -> None:
        title, text = extract_text_content(PAGE_HTML)

        assert title == "Custom Domain"
        assert text.split("\n") == [
            "Connect your domain",
            "Open the settings panel.",
            "• Buy a domain",
            "• Point DNS records",
        ]
        assert "analytics" not in text
        assert "display" not in text
        assert "Enable JavaScript" not in text

    def test_title_falls_back_to_h1_then_og_title(self) -> None:
        title, _ = extract_text_content("<body><h1>Heading</h1></body>")
        assert title == "Heading"

        og_html = '<head><meta property="og:title" content=" Social Title "></head><body><p>x</p></body>'
        title, text = extract_text_content(og_html)
        assert title == "Social Title"
        assert text == "x"

    def test_empty_document(self) -> None:
        assert extract_text_content("") == ("", "")


class TestPageNaming:

    @pytest.mark.parametrize("path, expected", [
        ("/start-edit-manually/edit-pages", "start-edit-manually--edit-pages.json"),
        ("/faqs", "faqs.json"),
        ("/blog/what's new", "blog--what-s-new.json"),
    ])
    def test_page_filename(self, path, expected) -> None:
        assert page_filename(path) == expected

    @pytest.mark.parametrize("path, expected", [
        ("/publish-and-management/custom-domain", "custom-domain"),
        ("/faqs/", "faqs"),
        ("/", "Untitled"),
    ])
    def test_fallback_title(self, path, expected) -> None:
        assert fallback_title(path) == expected


class TestSavePage:

    def test_writes_json_under_type_directory(self, tmp_path) -> None:
        page = CrawledPage(
            path="/blog/launch", title="Launch", content="We launched.",
            url="https://wegic.ai/blog/launch", type="blog",
        )

        filepath = asyncio.run(save_page(page, tmp_path, "wegic"))

        assert filepath == tmp_path / "wegic-blog" / "blog--launch.json"
        assert json.loads(filepath.read_text(encoding="utf-8")) == {
            "path": "/blog/launch",
            "title": "Launch",
            "content": "We launched.",
            "url": "https://wegic.ai/blog/launch",
            "type": "blog",
        }


def make_transport(pages):
    def handler(request: httpx.Request) -> httpx.Response:
        body = pages.get(str(request.url))
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=body, headers={"content-type": "text/html"})
    return httpx.MockTransport(handler)


class TestFetching:

    def test_fetch_page_raises_fetch_error_on_http_error(self) -> None:
        async def scenario():
            async with httpx.AsyncClient(transport=make_transport({})) as client:
                await fetch_page(client, "https://help.example.com/missing")

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(scenario())

        assert "404" in str(exc_info.value)

    def test_discover_blog_paths_dedupes_relative_links(self) -> None:
        async def scenario():
            transport = make_transport({"https://wegic.example/blog": BLOG_INDEX_HTML})
            async with httpx.AsyncClient(transport=transport) as client:
                return await discover_blog_paths(client, "https://wegic.example")

        assert asyncio.run(scenario()) == ["/blog/launch", "/blog/seo-tips"]

    def test_discover_blog_paths_tolerates_failure(self) -> None:
        async def scenario():
            async with httpx.AsyncClient(transport=make_transport({})) as client:
                return await discover_blog_paths(client, "https://wegic.example")

        assert asyncio.run(scenario()) == []


class TestCrawlSite:

    def test_failed_page_does_not_stop_the_crawl(self, tmp_path) -> None:
        pages = {
            "https://help.example.com/faqs": "<title>FAQ</title><p>Answers.</p>",
            "https://help.example.com/publish": "<body><p>No title here.</p></body>",
            "https://wegic.example/blog": '<a href="/blog/launch">Launch</a>',
            "https://wegic.example/blog/launch": "<h1>Launch day</h1><p>Live now.</p>",
        }

        async def scenario():
            async with httpx.AsyncClient(transport=make_transport(pages)) as client:
                return await crawl_site(
                    output_root=tmp_path,
                    prefix="wegic",
                    docs_base_url="https://help.example.com",
                    blog_base_url="https://wegic.example",
                    doc_paths=["/faqs", "/broken", "/publish"],
                    concurrency=2,
                    client=client,
                )

        summary = asyncio.run(scenario())

        assert summary.saved_count == 3
        assert list(summary.failed) == ["/broken"]
        assert sorted(p.name for p in (tmp_path / "wegic-docs").iterdir()) == ["faqs.json", "publish.json"]
        publish = json.loads((tmp_path / "wegic-docs" / "publish.json").read_text(encoding="utf-8"))
        assert publish["title"] == "publish"
        assert publish["type"] == "doc"
        blog = json.loads((tmp_path / "wegic-blog" / "blog--launch.json").read_text(encoding="utf-8"))
        assert blog["title"] == "Launch day"
        assert blog["url"] == "https://wegic.example/blog/launch"

    def test_blog_discovery_can_be_skipped(self, tmp_path) -> None:
        pages = {"https://help.example.com/faqs": "<title>FAQ</title><p>Answers.</p>"}

        async def scenario():
            async with httpx.AsyncClient(transport=make_transport(pages)) as client:
                return await crawl_site(
                    output_root=tmp_path,
                    docs_base_url="https://help.example.com",
                    blog_base_url=None,
                    doc_paths=["/faqs"],
                    client=client,
                )

        summary = asyncio.run(scenario())

        assert summary.saved_count == 1
        assert not (tmp_path / "wegic-blog").exists()
