"""Performance rules based on crawl timing and PageSpeed Insights."""

from seo_audit.rules.base import AuditRule, RuleContext
from seo_audit.schemas.rules import Category, RuleCheckResult, RuleScope, Severity

MEGABYTE = 1024 * 1024


class LoadTimeRule(AuditRule):
    id = "perf-load-time"
    category = Category.PERFORMANCE
    name = "Page Load Time"
    description = "Verify page loads in under 3 seconds"
    weight = 5

    def check(self, context: RuleContext) -> RuleCheckResult:
        seconds = context.page.load_time / 1000

        if seconds <= 2:
            return self.result(True)

        if seconds <= 3:
            return self.result(
                True,
                0.8,
                [
                    self.issue(
                        Severity.INFO,
                        f"Page load time is acceptable ({seconds:.2f}s)",
                        "Consider optimizing to get under 2 seconds for better user experience.",
                        load_time=seconds,
                    )
                ],
            )

        if seconds <= 5:
            return self.result(
                False,
                0.5,
                [
                    self.issue(
                        Severity.WARNING,
                        f"Page loads slowly ({seconds:.2f}s)",
                        "Optimize page load time. Compress images, minify CSS/JS, enable caching, and use a CDN.",
                        load_time=seconds,
                    )
                ],
            )

        return self.result(
            False,
            0,
            [
                self.issue(
                    Severity.CRITICAL,
                    f"Page loads very slowly ({seconds:.2f}s)",
                    "Urgent: Reduce page load time. Check server response time, optimize images, "
                    "minimize HTTP requests, and enable compression.",
                    load_time=seconds,
                )
            ],
        )


class PageSizeRule(AuditRule):
    id = "perf-page-size"
    category = Category.PERFORMANCE
    name = "Page Size"
    description = "Check that page size is under 2MB"
    weight = 3

    def check(self, context: RuleContext) -> RuleCheckResult:
        page = context.page
        total = page.page_size + sum(resource.size for resource in page.resources)
        size_mb = total / MEGABYTE

        if size_mb <= 1:
            return self.result(True)

        if size_mb <= 2:
            return self.result(
                True,
                0.7,
                [
                    self.issue(
                        Severity.INFO,
                        f"Page size is acceptable ({size_mb:.2f}MB)",
                        "Consider reducing page size to under 1MB for faster loading on slower connections.",
                        size_mb=size_mb,
                    )
                ],
            )

        if size_mb <= 3:
            return self.result(
                False,
                0.3,
                [
                    self.issue(
                        Severity.WARNING,
                        f"Page size is large ({size_mb:.2f}MB)",
                        "Reduce page size. Compress and optimize images, remove unused CSS/JS, and enable Gzip compression.",
                        size_mb=size_mb,
                    )
                ],
            )

        return self.result(
            False,
            0,
            [
                self.issue(
                    Severity.CRITICAL,
                    f"Page size is too large ({size_mb:.2f}MB)",
                    "Urgent: Significantly reduce page size. Optimize all images, lazy-load resources, and remove unnecessary assets.",
                    size_mb=size_mb,
                )
            ],
        )


class RequestCountRule(AuditRule):
    id = "perf-requests"
    category = Category.PERFORMANCE
    name = "Request Count"
    description = "Ensure fewer than 50 HTTP requests"
    weight = 3

    def check(self, context: RuleContext) -> RuleCheckResult:
        count = len(context.page.resources)

        if count <= 30:
            return self.result(True)

        if count <= 50:
            return self.result(
                True,
                0.7,
                [
                    self.issue(
                        Severity.INFO,
                        f"Moderate number of HTTP requests ({count})",
                        "Consider reducing requests by combining files, using CSS sprites, or implementing lazy loading.",
                        request_count=count,
                    )
                ],
            )

        if count <= 100:
            return self.result(
                False,
                0.3,
                [
                    self.issue(
                        Severity.WARNING,
                        f"High number of HTTP requests ({count})",
                        "Reduce HTTP requests. Combine CSS/JS files, use sprite sheets, lazy-load images, and remove unused resources.",
                        request_count=count,
                    )
                ],
            )

        return self.result(
            False,
            0,
            [
                self.issue(
                    Severity.CRITICAL,
                    f"Excessive HTTP requests ({count})",
                    "Urgent: Too many requests are slowing down your page. Audit and remove unnecessary resources, "
                    "combine files, and implement aggressive caching.",
                    request_count=count,
                )
            ],
        )


class PsiMetricsRule(AuditRule):
    """Scores the mobile Lighthouse performance score.

    Without provider data the rule scores 0 with an informational
    issue; a missing measurement is not an error.
    """

    id = "perf-psi-metrics"
    category = Category.PERFORMANCE
    name = "PageSpeed Insights Score"
    description = "Mobile Lighthouse performance score from Google PageSpeed Insights"
    weight = 4
    scope = RuleScope.AUDIT
    requires_performance = True

    def check(self, context: RuleContext) -> RuleCheckResult:
        performance = context.performance
        if performance is None or not performance.available:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.INFO,
                        "PageSpeed Insights data unavailable",
                        "PageSpeed Insights could not analyze this page. Configure an API key or re-run the audit later.",
                    )
                ],
            )

        mobile_score = performance.mobile.performance_score
        fraction = max(0, min(100, mobile_score)) / 100
        top_opportunities = [finding.title for finding in performance.opportunities[:3]]

        if mobile_score >= 90:
            return self.result(True, fraction)

        return self.result(
            False,
            fraction,
            [
                self.issue(
                    Severity.WARNING if mobile_score >= 50 else Severity.CRITICAL,
                    f"Mobile performance score is {mobile_score}/100",
                    "Work through the PageSpeed Insights opportunities, starting with the highest impact ones.",
                    mobile_score=mobile_score,
                    desktop_score=performance.desktop.performance_score,
                    top_opportunities=top_opportunities,
                )
            ],
        )
