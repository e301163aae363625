"""PageSpeed Insights service for Core Web Vitals measurements."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from seo_audit.core.config import settings
from seo_audit.schemas.performance import (
    PerformanceFinding,
    PerformanceMetrics,
    PerformanceResult,
)
from seo_audit.services.scoring import round_half_up

logger = logging.getLogger(__name__)

LIGHTHOUSE_CATEGORIES = ("performance", "accessibility", "best-practices", "seo")

# Diagnostics are reported in this order, not by score
DIAGNOSTIC_KEYS = (
    "uses-long-cache-ttl",
    "total-byte-weight",
    "dom-size",
    "critical-request-chains",
    "user-timings",
    "diagnostics",
)

MAX_OPPORTUNITIES = 10
MAX_DIAGNOSTICS = 5


class PageSpeedInsightsService:
    """Service for Google's PageSpeed Insights v5 API.

    Runs the mobile and desktop analyses concurrently. Any failure
    (non-2xx, timeout, transport error, malformed body) makes
    ``analyze`` return the empty result instead of raising, so a
    flaky provider never aborts an audit. No retries: each strategy
    gets one attempt bounded by the configured timeout.
    """

    BASE_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the PageSpeed service.

        Args:
            api_key: API key, defaults to PSI_API_KEY. Optional.
            timeout: Per-strategy timeout in seconds, defaults to PSI_TIMEOUT_SECONDS.
            transport: Custom httpx transport (used by tests).
        """
        self.api_key = settings.PSI_API_KEY if api_key is None else api_key
        self.timeout = timeout if timeout is not None else settings.PSI_TIMEOUT_SECONDS
        self._transport = transport

    def has_credential(self) -> bool:
        """Check if an API key is configured (affects rate limits only)."""
        return bool(self.api_key)

    async def analyze(self, url: str) -> PerformanceResult:
        """Analyze a URL with both mobile and desktop strategies.

        Args:
            url: The page to analyze.

        Returns:
            PerformanceResult with metrics, or the empty result on failure.
        """
        logger.info(f"[PSI] Analyzing {url}...")

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            mobile_data, desktop_data = await asyncio.gather(
                self._fetch(client, url, "mobile"),
                self._fetch(client, url, "desktop"),
                return_exceptions=True,
            )

        failed = False
        for strategy, outcome in (("mobile", mobile_data), ("desktop", desktop_data)):
            if isinstance(outcome, BaseException):
                failed = True
                logger.error(f"[PSI] {strategy} analysis failed for {url}: {outcome!r}")
        if failed:
            return PerformanceResult.empty()

        try:
            result = PerformanceResult(
                available=True,
                mobile=extract_metrics(mobile_data),
                desktop=extract_metrics(desktop_data),
                # Mobile runs carry the more detailed findings
                opportunities=extract_opportunities(mobile_data),
                diagnostics=extract_diagnostics(mobile_data),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"[PSI] Malformed response for {url}: {e!r}")
            return PerformanceResult.empty()

        logger.info(
            f"[PSI] Completed analysis for {url}. Mobile score: "
            f"{result.mobile.performance_score}, desktop score: {result.desktop.performance_score}"
        )
        return result

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        strategy: str,
    ) -> Dict[str, Any]:
        """Fetch one strategy's Lighthouse report.

        Raises:
            asyncio.TimeoutError: If the request exceeds the timeout.
            httpx.HTTPError: On transport errors or non-2xx responses.
            ValueError: If the body is not a Lighthouse report.
        """
        params: List[Tuple[str, str]] = [("url", url), ("strategy", strategy)]
        params.extend(("category", category) for category in LIGHTHOUSE_CATEGORIES)
        if self.api_key:
            params.append(("key", self.api_key))

        try:
            response = await asyncio.wait_for(
                client.get(self.BASE_URL, params=params),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[PSI] {strategy} analysis timed out after {self.timeout:.0f}s")
            raise

        if response.status_code == 429:
            logger.warning("[PSI] Rate limit exceeded, consider adding an API key")
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("lighthouseResult"), dict):
            raise ValueError("Response does not contain a lighthouseResult")
        return data


def _audits(data: Dict[str, Any]) -> Dict[str, Any]:
    audits = data["lighthouseResult"].get("audits") or {}
    if not isinstance(audits, dict):
        raise ValueError("lighthouseResult.audits is not an object")
    return audits


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _category_percent(categories: Dict[str, Any], key: str) -> int:
    score = (categories.get(key) or {}).get("score")
    return round_half_up(score * 100) if _is_number(score) else 0


def _metric_value(audit: Optional[Dict[str, Any]], is_cls: bool = False) -> Optional[float]:
    """numericValue of an audit: ms rounded to int, CLS to 3 decimals."""
    if not audit:
        return None
    value = audit.get("numericValue")
    if not _is_number(value):
        return None
    if is_cls:
        return round_half_up(value * 1000) / 1000
    return round_half_up(value)


def extract_metrics(data: Dict[str, Any]) -> PerformanceMetrics:
    """Read category scores and timing metrics from a Lighthouse report."""
    categories = data["lighthouseResult"].get("categories") or {}
    audits = _audits(data)

    return PerformanceMetrics(
        performance_score=_category_percent(categories, "performance"),
        accessibility=_category_percent(categories, "accessibility"),
        best_practices=_category_percent(categories, "best-practices"),
        seo=_category_percent(categories, "seo"),
        lcp=_metric_value(audits.get("largest-contentful-paint")),
        cls=_metric_value(audits.get("cumulative-layout-shift"), is_cls=True),
        inp=_metric_value(audits.get("interaction-to-next-paint")),
        fcp=_metric_value(audits.get("first-contentful-paint")),
        tbt=_metric_value(audits.get("total-blocking-time")),
        speed_index=_metric_value(audits.get("speed-index")),
        tti=_metric_value(audits.get("interactive")),
    )


def _finding(key: str, audit: Dict[str, Any]) -> PerformanceFinding:
    return PerformanceFinding(
        id=audit.get("id") or key,
        title=audit.get("title") or "",
        description=audit.get("description") or "",
        display_value=audit.get("displayValue"),
        score=audit["score"],
    )


def extract_opportunities(data: Dict[str, Any]) -> List[PerformanceFinding]:
    """Opportunities with room for improvement, worst (lowest score) first."""
    opportunities = []
    for key, audit in _audits(data).items():
        if not isinstance(audit, dict):
            continue
        details = audit.get("details") or {}
        score = audit.get("score")
        if details.get("type") == "opportunity" and _is_number(score) and score < 1:
            opportunities.append(_finding(key, audit))

    opportunities.sort(key=lambda finding: finding.score)
    return opportunities[:MAX_OPPORTUNITIES]


def extract_diagnostics(data: Dict[str, Any]) -> List[PerformanceFinding]:
    """Allow-listed diagnostics scoring below 1, in allow-list order."""
    audits = _audits(data)
    diagnostics = []
    for key in DIAGNOSTIC_KEYS:
        audit = audits.get(key)
        if isinstance(audit, dict) and _is_number(audit.get("score")) and audit["score"] < 1:
            diagnostics.append(_finding(key, audit))
    return diagnostics[:MAX_DIAGNOSTICS]


# Singleton instance
psi_service = PageSpeedInsightsService()
