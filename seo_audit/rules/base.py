"""Base class and helpers shared by all audit rules."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field

from seo_audit.schemas.crawl import PageSnapshot, SiteFacts
from seo_audit.schemas.performance import PerformanceResult
from seo_audit.schemas.rules import (
    Category,
    IssueDraft,
    RuleCheckResult,
    RuleInfo,
    RuleScope,
    Severity,
)


class RuleContext(BaseModel):
    """Everything a rule may look at.

    Attributes:
        page: The page under evaluation.
        all_pages: Every page crawled for the audit, in crawl order.
        project_domain: The project's registered domain.
        site: robots.txt and sitemap observations.
        performance: PageSpeed result, None when not fetched.
        page_titles: Title of every crawled page keyed by final URL,
            extracted once per audit run.
    """

    model_config = ConfigDict(frozen=True)

    page: PageSnapshot
    all_pages: Tuple[PageSnapshot, ...]
    project_domain: str = ""
    site: SiteFacts = Field(default_factory=SiteFacts)
    performance: Optional[PerformanceResult] = None
    page_titles: Dict[str, str] = Field(default_factory=dict)

    def title_of(self, page: PageSnapshot) -> str:
        """Title of a crawled page, parsing it only if it was not extracted up front."""
        title = self.page_titles.get(page.final_url)
        return page_title(page.html) if title is None else title


class AuditRule(ABC):
    """A single weighted check.

    Subclasses set the class attributes and implement ``check``.
    ``check`` must be pure: no network I/O, no mutation of the
    context, same result for the same context.
    """

    id: str
    category: Category
    name: str
    description: str
    weight: int
    scope: RuleScope = RuleScope.PAGE
    requires_performance: bool = False
    is_active: bool = True

    @abstractmethod
    def check(self, context: RuleContext) -> RuleCheckResult:
        """Evaluate the rule against the context."""

    def issue(
        self,
        severity: Severity,
        message: str,
        recommendation: str = "",
        **metadata: Any,
    ) -> IssueDraft:
        """Build an issue attributed to this rule."""
        return IssueDraft(
            rule_id=self.id,
            severity=severity,
            message=message,
            recommendation=recommendation,
            metadata=metadata,
        )

    def result(
        self,
        passed: bool,
        fraction: float = 1.0,
        issues: Iterable[IssueDraft] = (),
        score: Optional[float] = None,
    ) -> RuleCheckResult:
        """Build a result worth ``fraction`` of the weight, or an explicit score."""
        return RuleCheckResult(
            passed=passed,
            score=self.weight * fraction if score is None else score,
            issues=list(issues),
        )

    def to_info(self) -> RuleInfo:
        return RuleInfo(
            id=self.id,
            category=self.category,
            name=self.name,
            description=self.description,
            weight=self.weight,
            scope=self.scope,
            requires_performance=self.requires_performance,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id}, weight={self.weight})>"


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML into a fresh tree the caller may modify."""
    return BeautifulSoup(html, "html.parser")


def page_title(html: str) -> str:
    """Text of the page's <title>, stripped."""
    title = parse_html(html).find("title")
    return title.get_text().strip() if title else ""


def meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    """Content attribute of the first <meta> matching ``attrs``."""
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = tag.get("content")
    return content if isinstance(content, str) else None


def schema_types(item: Dict[str, Any]) -> List[str]:
    """The @type of a JSON-LD object as a list (it may be a string or list)."""
    value = item.get("@type")
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def iter_schema_items(json_ld: Sequence[Dict[str, Any]]) -> Iterable[Dict[str, Any]]:
    """Yield each top-level JSON-LD object, then the members of its @graph."""
    for data in json_ld:
        if not isinstance(data, dict):
            continue
        yield data
        graph = data.get("@graph")
        if isinstance(graph, list):
            for item in graph:
                if isinstance(item, dict):
                    yield item


def find_schema(
    json_ld: Sequence[Dict[str, Any]],
    matches: Callable[[List[str]], bool],
) -> Optional[Dict[str, Any]]:
    """First JSON-LD object whose types satisfy ``matches``."""
    for item in iter_schema_items(json_ld):
        if matches(schema_types(item)):
            return item
    return None


def property_coverage(
    schema: Dict[str, Any],
    required: Sequence[str],
    recommended: Sequence[str],
) -> Tuple[List[str], List[str]]:
    """Split required + recommended properties into (present, missing)."""
    present: List[str] = []
    missing: List[str] = []
    for prop in [*required, *recommended]:
        if schema.get(prop):
            present.append(prop)
        else:
            missing.append(prop)
    return present, missing
