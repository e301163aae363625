"""Persistence boundary between audit jobs and the database."""

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seo_audit.core.database import AsyncSessionLocal
from seo_audit.models.audit import Audit
from seo_audit.models.issue import Issue
from seo_audit.models.page import MAX_STORED_HTML, Page
from seo_audit.models.project import Project
from seo_audit.models.rule import Rule
from seo_audit.rules import RuleCatalog
from seo_audit.schemas.crawl import PageSnapshot
from seo_audit.schemas.performance import PerformanceResult
from seo_audit.schemas.rules import Category, IssueDraft

logger = logging.getLogger(__name__)


class AuditTarget(BaseModel):
    """What a job needs to know to run an audit."""

    audit_id: UUID
    url: str
    project_domain: str
    max_pages: Optional[int] = None


class AuditStore(Protocol):
    """Storage operations an audit job depends on."""

    async def get_target(self, audit_id: UUID) -> Optional[AuditTarget]:
        ...

    async def mark_running(self, audit_id: UUID) -> None:
        ...

    async def save_pages(self, audit_id: UUID, pages: Sequence[PageSnapshot]) -> Dict[str, UUID]:
        ...

    async def complete(
        self,
        audit_id: UUID,
        total_score: int,
        category_scores: Dict[Category, int],
        issues: Sequence[IssueDraft],
        page_ids: Dict[str, UUID],
        metadata: Dict[str, Any],
        performance: Optional[PerformanceResult],
    ) -> bool:
        ...

    async def fail(self, audit_id: UUID, error: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        ...


class SqlAuditStore:
    """AuditStore backed by SQLAlchemy async sessions.

    Every operation uses its own short-lived session so a long-running
    job never holds a connection between stages.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory or AsyncSessionLocal

    async def get_target(self, audit_id: UUID) -> Optional[AuditTarget]:
        async with self._session_factory() as session:
            audit = await session.get(Audit, audit_id)
            if not audit:
                return None
            project = await session.get(Project, audit.project_id)
            metadata = audit.audit_metadata or {}
            return AuditTarget(
                audit_id=audit.id,
                url=audit.url,
                project_domain=project.domain if project else "",
                max_pages=metadata.get("max_pages"),
            )

    async def mark_running(self, audit_id: UUID) -> None:
        async with self._session_factory() as session:
            audit = await session.get(Audit, audit_id)
            if not audit:
                raise LookupError(f"Audit {audit_id} not found")
            audit.mark_running()
            await session.commit()

    async def save_pages(self, audit_id: UUID, pages: Sequence[PageSnapshot]) -> Dict[str, UUID]:
        """Store crawled pages.

        Returns:
            Mapping of requested page URL to the stored page id.
        """
        async with self._session_factory() as session:
            rows: List[Page] = []
            for snapshot in pages:
                page = Page(
                    audit_id=audit_id,
                    url=snapshot.url,
                    final_url=snapshot.final_url,
                    status_code=snapshot.status_code,
                    load_time=snapshot.load_time,
                    page_size=snapshot.page_size,
                    headers=dict(snapshot.headers),
                    html=snapshot.html[:MAX_STORED_HTML],
                    resources=[resource.model_dump() for resource in snapshot.resources],
                    internal_links=list(snapshot.internal_links),
                    external_links=list(snapshot.external_links),
                    json_ld=list(snapshot.json_ld),
                    console_errors=list(snapshot.console_errors),
                )
                session.add(page)
                rows.append(page)
            await session.flush()
            page_ids = {page.url: page.id for page in rows}
            await session.commit()
            return page_ids

    async def complete(
        self,
        audit_id: UUID,
        total_score: int,
        category_scores: Dict[Category, int],
        issues: Sequence[IssueDraft],
        page_ids: Dict[str, UUID],
        metadata: Dict[str, Any],
        performance: Optional[PerformanceResult],
    ) -> bool:
        """Store scores and issues and mark the audit completed.

        Returns:
            False if the audit no longer exists.
        """
        async with self._session_factory() as session:
            audit = await session.get(Audit, audit_id)
            if not audit:
                return False

            for draft in issues:
                session.add(
                    Issue(
                        audit_id=audit_id,
                        page_id=page_ids.get(draft.page_url) if draft.page_url else None,
                        rule_id=draft.rule_id,
                        severity=draft.severity.value,
                        message=draft.message,
                        recommendation=draft.recommendation,
                        issue_metadata=dict(draft.metadata),
                    )
                )

            audit.mark_complete(
                total_score=total_score,
                category_scores=category_scores,
                metadata=metadata,
                performance_data=performance.model_dump(mode="json") if performance else None,
            )
            await session.commit()
            return True

    async def fail(self, audit_id: UUID, error: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Mark the audit failed.

        Returns:
            False if the audit no longer exists or already finished.
        """
        async with self._session_factory() as session:
            audit = await session.get(Audit, audit_id)
            if not audit:
                return False
            if audit.is_complete:
                logger.warning(f"[AuditStore] Audit {audit_id} already {audit.status}, not marking failed")
                return False
            audit.mark_failed(error, metadata)
            await session.commit()
            return True


async def sync_rules(session: AsyncSession, catalog: RuleCatalog) -> int:
    """Write the code catalog into the rules table.

    Rules no longer in the catalog are kept but flagged inactive so
    issues of past audits still resolve.

    Returns:
        Number of active rules written.
    """
    existing = {rule.id: rule for rule in (await session.execute(select(Rule))).scalars()}

    for rule in catalog.rules:
        row = existing.pop(rule.id, None) or Rule(id=rule.id)
        row.category = rule.category.value
        row.name = rule.name
        row.description = rule.description
        row.weight = rule.weight
        row.scope = rule.scope.value
        row.is_active = True
        session.add(row)

    for stale in existing.values():
        stale.is_active = False

    await session.commit()
    logger.info(f"[AuditStore] Synced {len(catalog)} rules (catalog {catalog.version})")
    return len(catalog)
