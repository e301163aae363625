"""Pydantic schemas for audit endpoints and progress events."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from seo_audit.schemas.performance import PerformanceResult
from seo_audit.schemas.rules import Category, Severity


class AuditStatus(str, Enum):
    """Lifecycle status of an audit."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AuditStatus.COMPLETED, AuditStatus.FAILED)


# Allowed status transitions; terminal statuses have none.
AUDIT_TRANSITIONS: Dict[AuditStatus, frozenset] = {
    AuditStatus.QUEUED: frozenset({AuditStatus.RUNNING, AuditStatus.FAILED}),
    AuditStatus.RUNNING: frozenset({AuditStatus.COMPLETED, AuditStatus.FAILED}),
    AuditStatus.COMPLETED: frozenset(),
    AuditStatus.FAILED: frozenset(),
}


class AuditStage(str, Enum):
    """Phase of a running audit job."""

    CRAWLING = "crawling"
    ANALYZING = "analyzing"
    SCORING = "scoring"
    COMPLETED = "completed"


class ProgressEvent(BaseModel):
    """Progress update emitted by an audit job.

    Attributes:
        audit_id: Audit the event belongs to.
        status: Audit status at the time of the event.
        stage: Current stage, None before the first stage starts.
        progress: Percentage complete (0-100).
        message: Human-readable description of what is happening.
        total_score: Final total score, set on completion only.
        category_scores: Final category scores, set on completion only.
        error: Failure message, set on failure only.
        timestamp: When the event was emitted.
    """

    audit_id: UUID
    status: AuditStatus
    stage: Optional[AuditStage] = None
    progress: int = Field(0, ge=0, le=100)
    message: str = ""
    total_score: Optional[int] = None
    category_scores: Optional[Dict[Category, int]] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditCreateRequest(BaseModel):
    """Request body for starting an audit.

    Attributes:
        url: The URL to audit.
        project_id: Optional existing project to attach the audit to.
        max_pages: Optional page cap, defaults to the configured cap.
    """

    url: str = Field(..., min_length=1, max_length=2048)
    project_id: Optional[UUID] = None
    max_pages: Optional[int] = Field(None, ge=1, le=500)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            v = f"https://{v}"
        return v


class AuditCreateResponse(BaseModel):
    """Response after enqueuing an audit."""

    audit_id: UUID
    project_id: UUID
    status: AuditStatus
    url: str
    message: str


class CategoryScores(BaseModel):
    """Per-category scores of a completed audit."""

    technical: Optional[int] = None
    onpage: Optional[int] = None
    structured_data: Optional[int] = None
    performance: Optional[int] = None
    local_seo: Optional[int] = None


class IssueResponse(BaseModel):
    """An issue found by an audit."""

    id: UUID
    page_id: Optional[UUID] = None
    rule_id: str
    severity: Severity
    message: str
    recommendation: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class PageResponse(BaseModel):
    """A crawled page summary."""

    id: UUID
    url: str
    status_code: int
    load_time: Optional[float] = None
    page_size: Optional[int] = None
    crawled_at: datetime


class AuditResponse(BaseModel):
    """Audit summary.

    Attributes:
        audit_id: Unique identifier for the audit.
        project_id: Owning project.
        url: The URL that was audited.
        status: Current status of the audit.
        total_score: Total score from 0-100.
        grade: Letter grade of the total score.
        category_scores: Scores per category.
        error_message: Error message if audit failed.
        metadata: Pages crawled, catalog version and similar facts.
        started_at: When the audit was created.
        completed_at: When the audit finished.
    """

    audit_id: UUID
    project_id: UUID
    url: str
    status: AuditStatus
    total_score: Optional[int] = None
    grade: Optional[str] = None
    category_scores: CategoryScores
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    started_at: datetime
    completed_at: Optional[datetime] = None


class AuditDetailResponse(AuditResponse):
    """Full audit result with issues, pages and performance data."""

    issues: List[IssueResponse] = Field(default_factory=list)
    pages: List[PageResponse] = Field(default_factory=list)
    performance: Optional[PerformanceResult] = None


class AuditListResponse(BaseModel):
    """Response containing a list of audits."""

    audits: List[AuditResponse]
    total: int
