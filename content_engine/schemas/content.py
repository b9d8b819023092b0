"""Crawled page models shared by the crawler and the ingestion pipeline."""

from typing import Literal

from pydantic import BaseModel, Field


ContentType = Literal["doc", "blog"]


class PageContent(BaseModel):
    """A fetched page reduced to plain text."""

    title: str = Field(..., description="Page title")
    content: str = Field(..., description="Plain text content")
    source_url: str = Field(..., description="URL the page was fetched from")


class CrawledPage(BaseModel):
    """One crawled page as persisted on disk (one JSON file per page)."""

    path: str = Field(..., description="Logical path on the site, e.g. /faqs")
    title: str = Field(default="", description="Page title")
    content: str = Field(..., description="Plain text content")
    url: str = Field(..., description="Absolute page URL")
    type: ContentType = Field(..., description="Content type (doc or blog)")
