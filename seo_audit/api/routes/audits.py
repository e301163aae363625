"""Audit endpoints: start, inspect, follow and delete SEO audits."""

import asyncio
import logging
from typing import List, Optional
from urllib.parse import urlparse
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload
from starlette.websockets import WebSocketState

from seo_audit.api.deps import BrokerDep, DatabaseDep, RunnerDep
from seo_audit.core.config import settings
from seo_audit.models.audit import Audit
from seo_audit.models.project import Project
from seo_audit.schemas.audit import (
    AuditCreateRequest,
    AuditCreateResponse,
    AuditDetailResponse,
    AuditListResponse,
    AuditResponse,
    AuditStatus,
    CategoryScores,
    IssueResponse,
    PageResponse,
    ProgressEvent,
)
from seo_audit.schemas.performance import PerformanceResult
from seo_audit.schemas.rules import Category
from seo_audit.services.progress import progress_broker
from seo_audit.services.scoring import score_grade

logger = logging.getLogger(__name__)

router = APIRouter()

# Seconds between keep-alive pings on an idle progress socket
WEBSOCKET_PING_INTERVAL = 30.0


def _category_scores(audit: Audit) -> CategoryScores:
    scores = audit.category_scores()
    return CategoryScores(
        technical=scores[Category.TECHNICAL],
        onpage=scores[Category.ONPAGE],
        structured_data=scores[Category.STRUCTURED_DATA],
        performance=scores[Category.PERFORMANCE],
        local_seo=scores[Category.LOCAL_SEO],
    )


def _audit_response(audit: Audit) -> AuditResponse:
    return AuditResponse(
        audit_id=audit.id,
        project_id=audit.project_id,
        url=audit.url,
        status=audit.status,
        total_score=audit.total_score,
        grade=score_grade(audit.total_score) if audit.total_score is not None else None,
        category_scores=_category_scores(audit),
        error_message=audit.error_message,
        metadata=audit.audit_metadata or {},
        started_at=audit.started_at,
        completed_at=audit.completed_at,
    )


@router.post("/audits", response_model=AuditCreateResponse, status_code=201)
async def create_audit(
    request: AuditCreateRequest,
    background_tasks: BackgroundTasks,
    db: DatabaseDep,
    runner: RunnerDep,
) -> AuditCreateResponse:
    """Start a new audit.

    Creates the audit record and queues the job in the background.
    Returns immediately with the audit id for polling.

    Args:
        request: AuditCreateRequest with the URL and optional project.
        background_tasks: FastAPI background tasks.
        db: Database session.
        runner: Audit job runner.

    Returns:
        AuditCreateResponse with audit_id and status.

    Raises:
        HTTPException: If the URL has no host or the project does not exist.
    """
    host = urlparse(request.url).netloc.lower()
    if not host:
        raise HTTPException(status_code=422, detail="URL must include a host")

    if request.project_id:
        project = await db.get(Project, request.project_id)
        if not project:
            raise HTTPException(status_code=404, detail="Project not found")
    else:
        # Reuse the project registered for this host, if any
        result = await db.execute(select(Project).where(Project.domain == host).limit(1))
        project = result.scalar_one_or_none()
        if not project:
            project = Project(name=host, domain=host)
            db.add(project)
            await db.flush()

    audit = Audit(
        project_id=project.id,
        url=request.url,
        status=AuditStatus.QUEUED.value,
        audit_metadata={"max_pages": request.max_pages or settings.CRAWL_MAX_PAGES},
    )
    db.add(audit)
    await db.commit()
    await db.refresh(audit)

    await progress_broker.publish(
        ProgressEvent(audit_id=audit.id, status=AuditStatus.QUEUED, message="Audit queued")
    )
    background_tasks.add_task(runner.run, audit.id)
    logger.info(f"[Audits] Queued audit {audit.id} for {audit.url}")

    return AuditCreateResponse(
        audit_id=audit.id,
        project_id=project.id,
        status=AuditStatus.QUEUED,
        url=audit.url,
        message="Audit queued",
    )


@router.get("/audits/{audit_id}", response_model=AuditDetailResponse)
async def get_audit(audit_id: UUID, db: DatabaseDep) -> AuditDetailResponse:
    """Get an audit with its issues, pages and scores.

    Args:
        audit_id: The UUID of the audit.
        db: Database session.

    Returns:
        AuditDetailResponse with full status and results.

    Raises:
        HTTPException: If audit not found.
    """
    result = await db.execute(
        select(Audit)
        .where(Audit.id == audit_id)
        .options(selectinload(Audit.pages), selectinload(Audit.issues))
    )
    audit = result.scalar_one_or_none()

    if not audit:
        raise HTTPException(status_code=404, detail="Audit not found")

    performance = None
    if audit.performance_data:
        performance = PerformanceResult.model_validate(audit.performance_data)

    return AuditDetailResponse(
        **_audit_response(audit).model_dump(),
        issues=[
            IssueResponse(
                id=issue.id,
                page_id=issue.page_id,
                rule_id=issue.rule_id,
                severity=issue.severity,
                message=issue.message,
                recommendation=issue.recommendation,
                metadata=issue.issue_metadata or {},
            )
            for issue in audit.issues
        ],
        pages=[
            PageResponse(
                id=page.id,
                url=page.url,
                status_code=page.status_code,
                load_time=page.load_time,
                page_size=page.page_size,
                crawled_at=page.crawled_at,
            )
            for page in audit.pages
        ],
        performance=performance,
    )


@router.get("/audits", response_model=AuditListResponse)
async def list_audits(
    db: DatabaseDep,
    project_id: Optional[UUID] = None,
    status: Optional[AuditStatus] = None,
    limit: int = 50,
    offset: int = 0,
) -> AuditListResponse:
    """List audits, newest first.

    Args:
        db: Database session.
        project_id: Only return audits of this project.
        status: Only return audits with this status.
        limit: Page size (max 100).
        offset: Number of audits to skip.

    Returns:
        AuditListResponse with the page of audits and the total count.
    """
    limit = max(1, min(limit, 100))
    query = select(Audit)
    if project_id:
        query = query.where(Audit.project_id == project_id)
    if status:
        query = query.where(Audit.status == status.value)

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(
        query.order_by(Audit.started_at.desc()).limit(limit).offset(offset)
    )
    audits: List[Audit] = list(result.scalars().all())

    return AuditListResponse(
        audits=[_audit_response(audit) for audit in audits],
        total=total or 0,
    )


@router.delete("/audits/{audit_id}")
async def delete_audit(
    audit_id: UUID,
    db: DatabaseDep,
    runner: RunnerDep,
    broker: BrokerDep,
) -> dict:
    """Delete an audit, cancelling its job first if it is still running.

    Raises:
        HTTPException: If audit not found.
    """
    audit = await db.get(Audit, audit_id)
    if not audit:
        raise HTTPException(status_code=404, detail="Audit not found")

    cancelled = runner.cancel(audit_id)
    await db.delete(audit)
    await db.commit()
    broker.forget(audit_id)

    logger.info(f"[Audits] Deleted audit {audit_id} (job cancelled: {cancelled})")
    return {"audit_id": str(audit_id), "deleted": True, "cancelled": cancelled}


@router.get("/audits/{audit_id}/progress", response_model=ProgressEvent)
async def get_audit_progress(audit_id: UUID, db: DatabaseDep, broker: BrokerDep) -> ProgressEvent:
    """Get the latest progress event of an audit.

    Falls back to the stored audit row when this process has no event
    for it (e.g. after a restart).

    Raises:
        HTTPException: If audit not found.
    """
    event = broker.latest(audit_id)
    if event is not None:
        return event

    audit = await db.get(Audit, audit_id)
    if not audit:
        raise HTTPException(status_code=404, detail="Audit not found")

    status = AuditStatus(audit.status)
    scores = audit.category_scores() if status == AuditStatus.COMPLETED else None
    return ProgressEvent(
        audit_id=audit.id,
        status=status,
        progress=100 if status.is_terminal else 0,
        message=f"Audit {status.value}",
        total_score=audit.total_score,
        category_scores=scores,
        error=audit.error_message,
    )


@router.websocket("/audits/{audit_id}/events")
async def audit_events(websocket: WebSocket, audit_id: UUID) -> None:
    """Stream progress events of an audit until it finishes."""
    await websocket.accept()
    queue = progress_broker.subscribe(audit_id)
    try:
        while True:
            try:
                event: ProgressEvent = await asyncio.wait_for(queue.get(), WEBSOCKET_PING_INTERVAL)
            except asyncio.TimeoutError:
                await websocket.send_json({"type": "ping"})
                continue

            await websocket.send_json(event.model_dump(mode="json"))
            if event.status.is_terminal:
                break
    except WebSocketDisconnect:
        logger.debug(f"[Audits] Progress socket for {audit_id} disconnected")
    finally:
        progress_broker.unsubscribe(audit_id, queue)

    if websocket.client_state == WebSocketState.CONNECTED:
        await websocket.close()
