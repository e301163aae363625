"""Pydantic schemas for crawler output."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResourceInfo(BaseModel):
    """A sub-resource referenced by a page."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image", "script", "stylesheet", "font", "other"]
    url: str
    size: int = 0


class PageSnapshot(BaseModel):
    """The crawler's read-only capture of one fetched page.

    Attributes:
        url: The URL that was requested.
        final_url: The URL after redirects.
        status_code: HTTP status of the final response.
        headers: Response headers with lower-cased names.
        html: Raw response body.
        load_time: Time to fetch the page in milliseconds.
        page_size: Size of the HTML body in bytes.
        resources: Images, scripts, stylesheets referenced by the page.
        internal_links: Absolute links to the same host.
        external_links: Absolute links to other hosts.
        json_ld: Parsed JSON-LD objects embedded in the page.
        console_errors: Script errors reported while rendering, if any.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    final_url: str
    status_code: int
    headers: Dict[str, str] = Field(default_factory=dict)
    html: str = ""
    load_time: float = 0.0
    page_size: int = 0
    resources: List[ResourceInfo] = Field(default_factory=list)
    internal_links: List[str] = Field(default_factory=list)
    external_links: List[str] = Field(default_factory=list)
    json_ld: List[Dict[str, Any]] = Field(default_factory=list)
    console_errors: List[str] = Field(default_factory=list)


class SiteFacts(BaseModel):
    """Site-wide observations gathered once per crawl.

    Site-level rules read these instead of fetching robots.txt or
    the sitemap themselves.
    """

    model_config = ConfigDict(frozen=True)

    robots_txt_url: Optional[str] = None
    robots_txt_status: Optional[int] = None
    robots_txt: Optional[str] = None
    robots_txt_error: Optional[str] = None
    sitemap_url: Optional[str] = None
    sitemap_candidates: List[str] = Field(default_factory=list)


class CrawlOutput(BaseModel):
    """Everything a crawl produced for one audit."""

    pages: List[PageSnapshot]
    site: SiteFacts = Field(default_factory=SiteFacts)
