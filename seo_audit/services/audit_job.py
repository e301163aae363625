"""Audit job orchestration: crawl, analyze, score, publish."""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple
from uuid import UUID

from seo_audit.core.config import settings
from seo_audit.core.exceptions import (
    AuditCancelledError,
    CrawlError,
    InvalidTransitionError,
)
from seo_audit.schemas.audit import (
    AUDIT_TRANSITIONS,
    AuditStage,
    AuditStatus,
    ProgressEvent,
)
from seo_audit.schemas.crawl import CrawlOutput
from seo_audit.schemas.performance import PerformanceResult
from seo_audit.schemas.rules import IssueDraft
from seo_audit.services.audit_store import AuditStore, AuditTarget, SqlAuditStore
from seo_audit.services.crawler import Crawler, HttpCrawler
from seo_audit.services.progress import ProgressBroker, progress_broker
from seo_audit.services.rule_engine import RuleEngine
from seo_audit.services.scoring import category_scores, total_score

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500
CANCELLED_MESSAGE = "Audit was cancelled"
TIMEOUT_MESSAGE = "Audit timed out"
INTERNAL_ERROR_MESSAGE = "Audit failed due to an internal error"

# Progress percentage at each stage boundary
CRAWL_START = 10
CRAWL_END = 50
ANALYZE_START = 55
ANALYZE_END = 65
SCORE_START = 80
SCORE_END = 95
DONE = 100


class PerformanceProvider(Protocol):
    async def analyze(self, url: str) -> PerformanceResult:
        ...


class AuditJob:
    """Runs one audit from queued to completed or failed.

    The job owns the audit's status while it runs. Rule and provider
    failures are absorbed into the result; crawl, storage and other
    unexpected errors fail the audit with a short message.

    Args:
        audit_id: Audit to run.
        store: Persistence for the audit row, pages and issues.
        crawler: Produces page snapshots.
        engine: Evaluates the rule catalog.
        performance_provider: Fetches PageSpeed data when a rule needs it.
        broker: Receives progress events.
        cancel_event: Set to stop the job at its next checkpoint.
    """

    def __init__(
        self,
        audit_id: UUID,
        store: AuditStore,
        crawler: Crawler,
        engine: RuleEngine,
        performance_provider: PerformanceProvider,
        broker: ProgressBroker,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.audit_id = audit_id
        self.store = store
        self.crawler = crawler
        self.engine = engine
        self.performance_provider = performance_provider
        self.broker = broker
        self.cancel_event = cancel_event or asyncio.Event()

        self.status = AuditStatus.QUEUED
        self.stage: Optional[AuditStage] = None
        self.progress = 0
        self._started = time.monotonic()

    def _transition(self, target: AuditStatus) -> None:
        if target not in AUDIT_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, target.value)
        self.status = target

    async def _emit(
        self,
        stage: Optional[AuditStage],
        progress: int,
        message: str,
        **extra: Any,
    ) -> None:
        # Progress never moves backwards within a job
        self.stage = stage
        self.progress = max(self.progress, progress)
        await self.broker.publish(
            ProgressEvent(
                audit_id=self.audit_id,
                status=self.status,
                stage=stage,
                progress=self.progress,
                message=message,
                **extra,
            )
        )

    def _checkpoint(self) -> None:
        if self.cancel_event.is_set():
            raise AuditCancelledError(CANCELLED_MESSAGE)

    def _duration(self) -> float:
        return round(time.monotonic() - self._started, 2)

    async def run(self) -> AuditStatus:
        """Run the audit to a terminal status.

        Returns:
            The final status. An audit whose row is missing stays queued.
        """
        target = await self.store.get_target(self.audit_id)
        if target is None:
            logger.warning(f"[AuditJob] Audit {self.audit_id} not found")
            return self.status

        logger.info(f"[AuditJob] Starting audit {self.audit_id} for {target.url}")

        try:
            self._checkpoint()
            await self.store.mark_running(self.audit_id)
            self._transition(AuditStatus.RUNNING)
            await self._emit(None, 0, "Audit started")

            crawl = await self._crawl(target)
            self._checkpoint()
            page_ids, performance = await self._analyze(crawl)
            self._checkpoint()
            await self._score_and_complete(target, crawl, page_ids, performance)

        except AuditCancelledError:
            logger.info(f"[AuditJob] Audit {self.audit_id} cancelled")
            await self.fail(CANCELLED_MESSAGE)
        except CrawlError as e:
            logger.warning(f"[AuditJob] Crawl failed for audit {self.audit_id}: {e}")
            await self.fail(str(e) or "Could not crawl the site")
        except Exception as e:
            if self.cancel_event.is_set():
                # Deleting the row mid-write surfaces as a storage error
                logger.info(f"[AuditJob] Audit {self.audit_id} cancelled during {self.stage}: {e!r}")
                await self.fail(CANCELLED_MESSAGE)
            else:
                logger.exception(f"[AuditJob] Audit {self.audit_id} failed: {e!r}")
                await self.fail(INTERNAL_ERROR_MESSAGE)

        return self.status

    async def _crawl(self, target: AuditTarget) -> CrawlOutput:
        max_pages = target.max_pages or settings.CRAWL_MAX_PAGES
        await self._emit(AuditStage.CRAWLING, CRAWL_START, f"Crawling {target.url}")

        async def on_page(done: int, limit: int) -> None:
            self._checkpoint()
            fraction = min(done / max(limit, 1), 1.0)
            progress = CRAWL_START + int((CRAWL_END - CRAWL_START) * fraction)
            await self._emit(AuditStage.CRAWLING, progress, f"Crawled {done} page(s)")

        crawl = await self.crawler.crawl(target.url, max_pages, on_page)
        if not crawl.pages:
            raise CrawlError(f"No pages could be crawled from {target.url}")

        await self._emit(AuditStage.CRAWLING, CRAWL_END, f"Crawled {len(crawl.pages)} page(s)")
        return crawl

    async def _analyze(self, crawl: CrawlOutput) -> Tuple[Dict[str, UUID], Optional[PerformanceResult]]:
        await self._emit(AuditStage.ANALYZING, ANALYZE_START, "Saving pages")
        page_ids = await self.store.save_pages(self.audit_id, crawl.pages)

        performance: Optional[PerformanceResult] = None
        if self.engine.needs_performance():
            entry_url = crawl.pages[0].final_url
            await self._emit(AuditStage.ANALYZING, ANALYZE_START, f"Measuring performance of {entry_url}")
            try:
                performance = await self.performance_provider.analyze(entry_url)
            except Exception as e:
                logger.error(f"[AuditJob] Performance provider failed for {entry_url}: {e!r}")
                performance = PerformanceResult.empty()

        await self._emit(AuditStage.ANALYZING, ANALYZE_END, "Analysis complete")
        return page_ids, performance

    async def _score_and_complete(
        self,
        target: AuditTarget,
        crawl: CrawlOutput,
        page_ids: Dict[str, UUID],
        performance: Optional[PerformanceResult],
    ) -> None:
        await self._emit(AuditStage.SCORING, SCORE_START, "Running rules")
        results = await self.engine.run(
            crawl.pages,
            target.project_domain,
            site=crawl.site,
            performance=performance,
        )

        catalog = self.engine.catalog
        total = total_score(results)
        categories = category_scores(results, catalog.category_of, catalog.category_weights)
        issues: List[IssueDraft] = [issue for result in results.values() for issue in result.issues]
        await self._emit(AuditStage.SCORING, SCORE_END, f"Scored {len(results)} rules")
        self._checkpoint()

        metadata = {
            "pages_crawled": len(crawl.pages),
            "rules_evaluated": len(results),
            "issues_found": len(issues),
            "catalog_version": catalog.version,
            "performance_available": bool(performance and performance.available),
            "duration_seconds": self._duration(),
        }
        saved = await self.store.complete(
            self.audit_id,
            total_score=total,
            category_scores=categories,
            issues=issues,
            page_ids=page_ids,
            metadata=metadata,
            performance=performance,
        )
        if not saved:
            raise AuditCancelledError(CANCELLED_MESSAGE)

        self._transition(AuditStatus.COMPLETED)
        await self._emit(
            AuditStage.COMPLETED,
            DONE,
            "Audit completed",
            total_score=total,
            category_scores=categories,
        )
        logger.info(f"[AuditJob] Audit {self.audit_id} completed with score {total}")

    async def fail(self, message: str) -> None:
        """Move the audit to failed and publish the terminal event.

        Storage errors here are logged; the terminal event is still
        published so subscribers are released. If the audit row is gone,
        the event is not retained for pollers.
        """
        if self.status.is_terminal:
            return

        message = message[:MAX_ERROR_LENGTH]
        saved = True
        try:
            saved = await self.store.fail(
                self.audit_id,
                message,
                {"duration_seconds": self._duration()},
            )
            if not saved:
                logger.info(f"[AuditJob] Audit {self.audit_id} no longer stored, skipped failure update")
        except Exception as e:
            logger.exception(f"[AuditJob] Could not store failure of audit {self.audit_id}: {e!r}")

        self._transition(AuditStatus.FAILED)
        await self._emit(self.stage, self.progress, message, error=message)
        if not saved:
            self.broker.forget(self.audit_id)


class AuditJobRunner:
    """Runs audit jobs in the background with bounded concurrency.

    At most ``max_concurrent`` jobs run at once; the rest wait on a
    semaphore in arrival order. Each job gets a cancel event and a
    whole-job timeout.
    """

    def __init__(
        self,
        store: Optional[AuditStore] = None,
        crawler_factory: Optional[Callable[[], Crawler]] = None,
        engine: Optional[RuleEngine] = None,
        performance_provider: Optional[PerformanceProvider] = None,
        broker: Optional[ProgressBroker] = None,
        max_concurrent: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.crawler_factory = crawler_factory or HttpCrawler
        self.engine = engine
        self.performance_provider = performance_provider
        self.broker = broker or progress_broker
        self.max_concurrent = max_concurrent or settings.MAX_CONCURRENT_AUDITS
        self.timeout = timeout if timeout is not None else settings.AUDIT_TIMEOUT_SECONDS
        self.semaphore = asyncio.Semaphore(self.max_concurrent)
        self._cancel_events: Dict[UUID, asyncio.Event] = {}

    def _resolve(self) -> None:
        # Defaults that touch the database or network are created on first use
        if self.store is None:
            self.store = SqlAuditStore()
        if self.engine is None:
            self.engine = RuleEngine()
        if self.performance_provider is None:
            from seo_audit.services.performance_service import psi_service

            self.performance_provider = psi_service

    @property
    def pending(self) -> List[UUID]:
        return list(self._cancel_events)

    async def run(self, audit_id: UUID) -> AuditStatus:
        """Run an audit job; meant to be scheduled as a background task.

        Args:
            audit_id: Audit to run.

        Returns:
            Final status of the job.
        """
        self._resolve()
        cancel_event = self._cancel_events.setdefault(audit_id, asyncio.Event())

        try:
            async with self.semaphore:
                crawler = self.crawler_factory()
                job = AuditJob(
                    audit_id=audit_id,
                    store=self.store,
                    crawler=crawler,
                    engine=self.engine,
                    performance_provider=self.performance_provider,
                    broker=self.broker,
                    cancel_event=cancel_event,
                )
                try:
                    return await asyncio.wait_for(job.run(), timeout=self.timeout)
                except asyncio.TimeoutError:
                    logger.error(f"[AuditRunner] Audit {audit_id} timed out after {self.timeout:.0f}s")
                    await job.fail(TIMEOUT_MESSAGE)
                    return job.status
                finally:
                    await crawler.close()
        finally:
            self._cancel_events.pop(audit_id, None)

    def cancel(self, audit_id: UUID) -> bool:
        """Ask a queued or running job to stop.

        Returns:
            True if a job for the audit was found.
        """
        event = self._cancel_events.get(audit_id)
        if event is None:
            return False
        event.set()
        logger.info(f"[AuditRunner] Cancellation requested for audit {audit_id}")
        return True

    def cancel_all(self) -> None:
        for audit_id in list(self._cancel_events):
            self.cancel(audit_id)


# Singleton instance
audit_runner = AuditJobRunner()
