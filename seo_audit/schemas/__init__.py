"""Pydantic schemas for API request/response validation."""

from seo_audit.schemas.audit import (
    AuditCreateRequest,
    AuditCreateResponse,
    AuditDetailResponse,
    AuditListResponse,
    AuditResponse,
    AuditStage,
    AuditStatus,
    CategoryScores,
    IssueResponse,
    PageResponse,
    ProgressEvent,
)
from seo_audit.schemas.crawl import CrawlOutput, PageSnapshot, ResourceInfo, SiteFacts
from seo_audit.schemas.performance import (
    PerformanceFinding,
    PerformanceMetrics,
    PerformanceResult,
)
from seo_audit.schemas.rules import (
    Category,
    IssueDraft,
    RuleCatalogResponse,
    RuleCheckResult,
    RuleInfo,
    RuleScope,
    Severity,
)

__all__ = [
    "AuditCreateRequest",
    "AuditCreateResponse",
    "AuditDetailResponse",
    "AuditListResponse",
    "AuditResponse",
    "AuditStage",
    "AuditStatus",
    "CategoryScores",
    "IssueResponse",
    "PageResponse",
    "ProgressEvent",
    "CrawlOutput",
    "PageSnapshot",
    "ResourceInfo",
    "SiteFacts",
    "PerformanceFinding",
    "PerformanceMetrics",
    "PerformanceResult",
    "Category",
    "IssueDraft",
    "RuleCatalogResponse",
    "RuleCheckResult",
    "RuleInfo",
    "RuleScope",
    "Severity",
]
