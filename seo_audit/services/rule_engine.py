"""Rule engine that evaluates the rule catalog against crawled pages."""

import asyncio
import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from seo_audit.core.config import settings
from seo_audit.core.exceptions import RuleExecutionError
from seo_audit.rules import AuditRule, RuleCatalog, RuleContext, get_catalog
from seo_audit.rules.base import page_title
from seo_audit.schemas.crawl import PageSnapshot, SiteFacts
from seo_audit.schemas.performance import PerformanceResult
from seo_audit.schemas.rules import (
    Category,
    IssueDraft,
    RuleCheckResult,
    RuleScope,
    Severity,
)

logger = logging.getLogger(__name__)


class RuleEngine:
    """Runs every active rule and collects one result per rule id.

    Rules are pure, so they are evaluated concurrently in worker
    threads, at most ``max_concurrent`` at a time. A rule that raises
    scores 0 with a single informational issue; the other rules are
    unaffected. Results come back ordered by rule id regardless of
    completion order.
    """

    def __init__(
        self,
        catalog: Optional[RuleCatalog] = None,
        max_concurrent: Optional[int] = None,
    ):
        """Initialize the engine.

        Args:
            catalog: Rule catalog, defaults to the process-wide catalog.
            max_concurrent: Concurrent rule evaluations, defaults to RULE_CONCURRENCY.
        """
        self.catalog = catalog or get_catalog()
        self.max_concurrent = max_concurrent or settings.RULE_CONCURRENCY

    def needs_performance(self) -> bool:
        """Whether any active rule needs PageSpeed data."""
        return self.catalog.needs_performance

    def get_rule(self, rule_id: str) -> Optional[AuditRule]:
        return self.catalog.get(rule_id)

    @property
    def rules(self) -> List[AuditRule]:
        return list(self.catalog.rules)

    def rules_by_category(self, category: Category) -> List[AuditRule]:
        return self.catalog.by_category(category)

    async def run(
        self,
        pages: Sequence[PageSnapshot],
        project_domain: str,
        site: Optional[SiteFacts] = None,
        performance: Optional[PerformanceResult] = None,
    ) -> Dict[str, RuleCheckResult]:
        """Run all active rules against crawled pages.

        Args:
            pages: Crawled pages; the first one is the entry page.
            project_domain: The project's registered domain.
            site: robots.txt and sitemap facts from the crawl.
            performance: PageSpeed result shared by every rule.

        Returns:
            Rule check results keyed by rule id, sorted by id.

        Raises:
            ValueError: If no pages are given.
        """
        if not pages:
            raise ValueError("At least one page is required to run rules")

        all_pages = tuple(pages)
        site = site or SiteFacts()
        # Parsed once here; per-page title lookups are shared by every rule
        titles = await asyncio.to_thread(self._extract_titles, all_pages)
        semaphore = asyncio.Semaphore(self.max_concurrent)
        results: Dict[str, RuleCheckResult] = {}

        async def evaluate(rule: AuditRule) -> None:
            async with semaphore:
                results[rule.id] = await asyncio.to_thread(
                    self._evaluate, rule, all_pages, project_domain, site, performance, titles
                )

        logger.info(f"[RuleEngine] Running {len(self.catalog)} rules against {len(all_pages)} page(s)")
        await asyncio.gather(*(evaluate(rule) for rule in self.catalog.rules))

        return {rule_id: results[rule_id] for rule_id in sorted(results)}

    def _evaluate(
        self,
        rule: AuditRule,
        pages: Tuple[PageSnapshot, ...],
        project_domain: str,
        site: SiteFacts,
        performance: Optional[PerformanceResult],
        titles: Dict[str, str],
    ) -> RuleCheckResult:
        """Evaluate one rule over its pages, isolating any failure."""
        targets = pages[:1] if rule.scope == RuleScope.AUDIT else pages
        page_results: List[Tuple[PageSnapshot, RuleCheckResult]] = []

        try:
            for page in targets:
                context = RuleContext(
                    page=page,
                    all_pages=pages,
                    project_domain=project_domain,
                    site=site,
                    performance=performance,
                    page_titles=titles,
                )
                result = rule.check(context)
                if not isinstance(result, RuleCheckResult):
                    raise RuleExecutionError(
                        f"check() returned {type(result).__name__}, expected RuleCheckResult"
                    )
                page_results.append((page, self._clamp(rule, result, page.url)))
        except Exception as e:
            logger.error(f"[RuleEngine] Error running rule {rule.id}: {e!r}")
            return self.failure_result(rule, e)

        return self._merge(rule, page_results)

    @staticmethod
    def _extract_titles(pages: Sequence[PageSnapshot]) -> Dict[str, str]:
        return {page.final_url: page_title(page.html) for page in pages}

    def _clamp(self, rule: AuditRule, result: RuleCheckResult, page_url: str) -> RuleCheckResult:
        """Force the score into [0, weight], logging any violation.

        NaN and infinite scores are treated as 0.
        """
        score = result.score
        if math.isfinite(score) and 0 <= score <= rule.weight:
            return result

        clamped = min(max(score, 0), rule.weight) if math.isfinite(score) else 0
        logger.warning(
            f"[RuleEngine] Rule {rule.id} returned score {score} outside [0, {rule.weight}] "
            f"for {page_url}; clamped to {clamped}"
        )
        return result.model_copy(update={"score": clamped})

    def _merge(
        self,
        rule: AuditRule,
        page_results: List[Tuple[PageSnapshot, RuleCheckResult]],
    ) -> RuleCheckResult:
        """Combine per-page results: mean score, all must pass, issues in page order."""
        issues: List[IssueDraft] = []
        for page, result in page_results:
            for issue in result.issues:
                if rule.scope == RuleScope.PAGE and issue.page_url is None:
                    issue = issue.model_copy(update={"page_url": page.url})
                issues.append(issue)

        if len(page_results) == 1:
            result = page_results[0][1]
            return RuleCheckResult(passed=result.passed, score=result.score, issues=issues)

        scores = [result.score for _, result in page_results]
        return RuleCheckResult(
            passed=all(result.passed for _, result in page_results),
            score=sum(scores) / len(scores),
            issues=issues,
        )

    @staticmethod
    def failure_result(rule: AuditRule, error: Exception) -> RuleCheckResult:
        """Zero-score result carrying one informational issue about the failure."""
        return RuleCheckResult(
            passed=False,
            score=0,
            issues=[
                IssueDraft(
                    rule_id=rule.id,
                    severity=Severity.INFO,
                    message=f"Rule execution failed: {error}",
                    recommendation="Please contact support if this issue persists.",
                    metadata={"error_type": type(error).__name__},
                )
            ],
        )
