"""Pydantic schemas for rules and their results."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    """Scoring dimensions an audit reports on."""

    TECHNICAL = "technical"
    ONPAGE = "onpage"
    STRUCTURED_DATA = "structured-data"
    PERFORMANCE = "performance"
    LOCAL_SEO = "local-seo"


class Severity(str, Enum):
    """How urgent an issue is."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class RuleScope(str, Enum):
    """Whether a rule runs against every page or once per audit."""

    PAGE = "page"
    AUDIT = "audit"


class IssueDraft(BaseModel):
    """An issue produced by a rule, before it is persisted.

    Attributes:
        rule_id: Id of the rule that produced the issue.
        severity: Issue severity.
        message: Short description of the problem.
        recommendation: How to fix it.
        metadata: Free-form details (measured values, offending URLs).
        page_url: URL of the page the issue belongs to, if any.
    """

    model_config = ConfigDict(frozen=True)

    rule_id: str
    severity: Severity
    message: str
    recommendation: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    page_url: Optional[str] = None


class RuleCheckResult(BaseModel):
    """Outcome of one rule for one audit run."""

    model_config = ConfigDict(frozen=True)

    passed: bool
    score: float
    issues: List[IssueDraft] = Field(default_factory=list)


class RuleInfo(BaseModel):
    """Catalog entry as exposed by the API."""

    id: str
    category: Category
    name: str
    description: str
    weight: int
    scope: RuleScope
    requires_performance: bool
    is_active: bool


class RuleCatalogResponse(BaseModel):
    """Response listing the active rule catalog."""

    version: str
    total_weight: int
    category_weights: Dict[Category, int]
    rules: List[RuleInfo]
