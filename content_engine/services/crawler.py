"""
Content crawler.

Fetches documentation and blog pages, reduces them to plain text and persists
one JSON file per page (`{path, title, content, url, type}`) under
`<prefix>-docs` / `<prefix>-blog`. Pages are fetched concurrently; a failed
page is logged and skipped.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import httpx
from bs4 import BeautifulSoup, NavigableString

from content_engine.schemas.content import ContentType, CrawledPage, PageContent
from content_engine.services.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_DOCS_BASE_URL = "https://help.wegic.ai"
DEFAULT_BLOG_BASE_URL = "https://wegic.ai"
DEFAULT_PREFIX = "wegic"
DEFAULT_CONCURRENCY = 8
FETCH_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

DOC_PATHS: Tuple[str, ...] = (
    "/whats-wegic",
    "/start-build-your-website/beginners-guide",
    "/start-build-your-website/navigate-the-interface",
    "/start-edit-manually/edit-pages",
    "/start-edit-manually/modify-site-header",
    "/start-edit-manually/change-fonts-and-theme",
    "/start-edit-manually/edit-text-and-links",
    "/start-edit-manually/replace-images-and-icons",
    "/start-edit-manually/modify-the-footer",
    "/chat-with-ai-to-edit/commonly-used-prompts",
    "/chat-with-ai-to-edit/modify-style-and-layout",
    "/chat-with-ai-to-edit/add-web-animations",
    "/section-circling-drawing/mark-section-with-drawing",
    "/section-circling-drawing/draw-reference-sketch",
    "/section-circling-drawing/upload-reference-image",
    "/embed-media-and-third-party-tools/add-video-and-audio",
    "/embed-media-and-third-party-tools/forms-and-booking",
    "/embed-media-and-third-party-tools/embed-other-tools",
    "/publish-and-management/publish-your-website",
    "/publish-and-management/custom-domain",
    "/publish-and-management/update-and-unpublish",
    "/publish-and-management/website-settings",
    "/publish-and-management/account-management",
    "/seo-marketing/custom-head-code",
    "/seo-marketing/add-google-analytics",
    "/seo-marketing/get-embed-codes-for-google-tools",
    "/manage-your-wegic-plan/upgrade-your-wegic-plan",
    "/manage-your-wegic-plan/subscription-and-payment-faq",
    "/content-auto-sync/create-content-auto-sync",
    "/content-auto-sync/errors-and-solutions",
    "/faqs",
)

# Closing these tags ends a line of text
BLOCK_TAGS = ["div", "p", "li", "h1", "h2", "h3", "h4", "h5", "h6",
              "section", "article", "main", "header", "footer"]


@dataclass
class CrawlSummary:
    """Outcome of a crawl run."""

    saved: List[Path] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def saved_count(self) -> int:
        return len(self.saved)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


def _extract_title(soup: BeautifulSoup) -> str:
    for tag_name in ("title", "h1"):
        tag = soup.find(tag_name)
        if tag:
            text = tag.get_text(" ", strip=True)
            if text:
                return text

    og_title = soup.find("meta", attrs={"property": "og:title"})
    if og_title and og_title.get("content"):
        return og_title["content"].strip()

    return ""


def extract_text_content(html: str) -> Tuple[str, str]:
    """
    Reduce an HTML document to (title, plain text).

    Only the body is kept (the title is returned separately). Scripts and
    styles are dropped, block elements end a line, list items are prefixed
    with a bullet and blank lines are removed.
    """
    if not html:
        return "", ""

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    title = _extract_title(soup)

    root = soup.body or soup

    # Source formatting whitespace must not break lines
    for node in root.find_all(string=True):
        if type(node) is NavigableString:
            node.replace_with(re.sub(r"\s+", " ", str(node)))

    for li in root.find_all("li"):
        li.insert(0, "• ")
    for block in root.find_all(BLOCK_TAGS):
        block.append("\n")

    text = root.get_text(separator=" ")

    lines = []
    for line in text.split("\n"):
        line = re.sub(r"\s+", " ", line).strip()
        if line:
            lines.append(line)

    return title, "\n".join(lines)


def fallback_title(path: str) -> str:
    """Last path segment, or "Untitled"."""
    segments = [s for s in path.split("/") if s]
    return segments[-1] if segments else "Untitled"


def page_filename(path: str) -> str:
    """
    Derive the JSON filename for a page path.

    Examples:
        "/start-edit-manually/edit-pages" -> "start-edit-manually--edit-pages.json"
        "/blog/what's-new" -> "blog--what-s-new.json"
    """
    name = re.sub(r"^/", "", path)
    name = name.replace("/", "--")
    name = re.sub(r"[^a-zA-Z0-9-]", "-", name)
    return f"{name}.json"


async def fetch_page(client: httpx.AsyncClient, url: str) -> PageContent:
    """
    Fetch one page and reduce it to plain text.

    Raises:
        FetchError: Transport failure or non-success status
    """
    logger.info(f"Crawling {url}...")
    try:
        response = await client.get(url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise FetchError(url, f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise FetchError(url, f"{type(e).__name__}: {e}") from e

    title, content = extract_text_content(response.text)
    return PageContent(title=title, content=content, source_url=url)


async def crawl_page(
    client: httpx.AsyncClient,
    base_url: str,
    path: str,
    content_type: ContentType,
) -> CrawledPage:
    url = f"{base_url.rstrip('/')}{path}"
    page = await fetch_page(client, url)
    return CrawledPage(
        path=path,
        title=page.title or fallback_title(path),
        content=page.content,
        url=url,
        type=content_type,
    )


async def discover_blog_paths(client: httpx.AsyncClient, blog_base_url: str) -> List[str]:
    """
    Collect unique `/blog/...` links from the blog index page.

    A failed index fetch yields an empty list; docs crawling still proceeds.
    """
    index_url = f"{blog_base_url.rstrip('/')}/blog"
    try:
        response = await client.get(index_url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Error extracting blog paths from {index_url}: {e}")
        return []

    soup = BeautifulSoup(response.text, "html.parser")
    paths: List[str] = []
    seen = set()
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if href.startswith("/blog/") and href not in seen:
            seen.add(href)
            paths.append(href)

    logger.info(f"Found {len(paths)} blog posts")
    return paths


def content_dir(output_root: Path, prefix: str, content_type: ContentType) -> Path:
    suffix = "docs" if content_type == "doc" else "blog"
    return Path(output_root) / f"{prefix}-{suffix}"


async def save_page(
    page: CrawledPage,
    output_root: Path = Path("."),
    prefix: str = DEFAULT_PREFIX,
) -> Path:
    """Write the page as pretty-printed JSON; returns the file path."""
    directory = content_dir(output_root, prefix, page.type)
    filepath = directory / page_filename(page.path)

    def _write():
        directory.mkdir(parents=True, exist_ok=True)
        filepath.write_text(
            json.dumps(page.model_dump(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    await asyncio.to_thread(_write)
    logger.info(f"Saved {filepath}")
    return filepath


async def crawl_site(
    output_root: Path = Path("."),
    prefix: str = DEFAULT_PREFIX,
    docs_base_url: str = DEFAULT_DOCS_BASE_URL,
    blog_base_url: Optional[str] = DEFAULT_BLOG_BASE_URL,
    doc_paths: Sequence[str] = DOC_PATHS,
    concurrency: int = DEFAULT_CONCURRENCY,
    client: Optional[httpx.AsyncClient] = None,
) -> CrawlSummary:
    """
    Crawl the documentation paths plus every discovered blog post.

    Args:
        output_root: Directory that receives `<prefix>-docs` / `<prefix>-blog`
        blog_base_url: Site hosting `/blog`; None skips blog discovery
        client: Shared HTTP client (created and closed here when omitted)

    Returns:
        CrawlSummary with saved files and per-URL failures
    """
    summary = CrawlSummary()
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _process(http: httpx.AsyncClient, base_url: str, path: str, content_type: ContentType):
        async with semaphore:
            try:
                page = await crawl_page(http, base_url, path, content_type)
                summary.saved.append(await save_page(page, output_root, prefix))
            except (FetchError, OSError) as e:
                logger.error(
                    f"Failed to process {content_type} {path}: {e}",
                    extra={"source": path, "error": str(e)},
                )
                summary.failed[path] = str(e)

    async def _run(http: httpx.AsyncClient):
        blog_paths: List[str] = []
        if blog_base_url:
            logger.info("Extracting blog paths...")
            blog_paths = await discover_blog_paths(http, blog_base_url)

        tasks = [_process(http, docs_base_url, p, "doc") for p in doc_paths]
        tasks += [_process(http, blog_base_url, p, "blog") for p in blog_paths]
        await asyncio.gather(*tasks)

    if client is not None:
        await _run(client)
    else:
        async with httpx.AsyncClient(timeout=FETCH_TIMEOUT) as http:
            await _run(http)

    logger.info(
        f"Crawling completed: saved={summary.saved_count}, failed={summary.failed_count}"
    )
    return summary
