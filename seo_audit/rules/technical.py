"""Technical and indexing rules."""

from typing import List, Optional
from urllib.parse import urlparse

from seo_audit.rules.base import AuditRule, RuleContext, parse_html
from seo_audit.schemas.rules import Category, RuleCheckResult, RuleScope, Severity
from seo_audit.services.scoring import round_half_up

# Core Web Vitals "good" thresholds (lab data)
LCP_GOOD_MS = 2500
CLS_GOOD = 0.1
TBT_GOOD_MS = 200

SECURITY_HEADERS = {
    "strict-transport-security": "HSTS",
    "content-security-policy": "CSP",
    "x-frame-options": "X-Frame-Options",
    "x-content-type-options": "X-Content-Type-Options",
    "referrer-policy": "Referrer-Policy",
}

SECURITY_HEADER_ADVICE = {
    "HSTS": 'Add Strict-Transport-Security header: "Strict-Transport-Security: max-age=31536000; includeSubDomains"',
    "CSP": "Add Content-Security-Policy header to prevent XSS attacks. Start with: \"Content-Security-Policy: default-src 'self'\"",
    "X-Frame-Options": 'Add X-Frame-Options header to prevent clickjacking: "X-Frame-Options: SAMEORIGIN"',
    "X-Content-Type-Options": 'Add X-Content-Type-Options header: "X-Content-Type-Options: nosniff"',
    "Referrer-Policy": 'Add Referrer-Policy header: "Referrer-Policy: strict-origin-when-cross-origin"',
}


def _normalize_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path or "/"
    query = f"?{parsed.query}" if parsed.query else ""
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}{query}"


class HttpStatusRule(AuditRule):
    id = "tech-http-status"
    category = Category.TECHNICAL
    name = "HTTP Status Check"
    description = "Verify that the page returns a successful HTTP status code (200)"
    weight = 5

    def check(self, context: RuleContext) -> RuleCheckResult:
        status_code = context.page.status_code

        if status_code == 200:
            return self.result(True)

        severity = Severity.CRITICAL if status_code >= 400 else Severity.WARNING
        if status_code >= 500:
            recommendation = "Server error detected. Check your server logs and fix any configuration issues."
        elif status_code == 404:
            recommendation = "Page not found. Ensure the URL is correct or implement a 301 redirect to the correct page."
        elif status_code >= 400:
            recommendation = "Client error detected. Verify the URL and ensure the page is accessible."
        elif status_code >= 300:
            recommendation = "Redirect detected. Ensure redirects are properly configured and use 301 for permanent moves."
        else:
            recommendation = "Return HTTP 200 for pages that should be indexed."

        return self.result(
            False,
            0,
            [
                self.issue(
                    severity,
                    f"Page returned HTTP status {status_code}",
                    recommendation,
                    status_code=status_code,
                )
            ],
        )


class HttpsRule(AuditRule):
    id = "tech-https"
    category = Category.TECHNICAL
    name = "HTTPS Enforcement"
    description = "Ensure the website uses HTTPS for secure connections"
    weight = 5

    def check(self, context: RuleContext) -> RuleCheckResult:
        page = context.page
        scheme = urlparse(page.final_url).scheme

        if scheme == "https":
            if "strict-transport-security" in page.headers:
                return self.result(True)
            return self.result(
                True,
                issues=[
                    self.issue(
                        Severity.INFO,
                        "HTTPS is enabled but HSTS header is missing",
                        'Add the Strict-Transport-Security header to enforce HTTPS: "Strict-Transport-Security: max-age=31536000; includeSubDomains"',
                    )
                ],
            )

        return self.result(
            False,
            0,
            [
                self.issue(
                    Severity.CRITICAL,
                    "Website does not use HTTPS",
                    "Enable HTTPS by obtaining an SSL/TLS certificate. You can get a free certificate from Let's Encrypt. "
                    "Configure your server to redirect all HTTP traffic to HTTPS.",
                    protocol=f"{scheme}:",
                )
            ],
        )


class CanonicalRule(AuditRule):
    id = "tech-canonical"
    category = Category.TECHNICAL
    name = "Canonical Tag"
    description = "Check for proper canonical tag implementation to prevent duplicate content"
    weight = 4

    def check(self, context: RuleContext) -> RuleCheckResult:
        page = context.page
        link = parse_html(page.html).find("link", rel="canonical")
        canonical = (link.get("href") or "").strip() if link else ""

        if not canonical:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.WARNING,
                        "No canonical tag found",
                        'Add a canonical tag to specify the preferred version of this page: <link rel="canonical" href="https://example.com/page" />. '
                        "This helps prevent duplicate content issues.",
                    )
                ],
            )

        if not canonical.startswith("http"):
            return self.result(
                False,
                0.5,
                [
                    self.issue(
                        Severity.WARNING,
                        "Canonical tag uses relative URL",
                        "Use an absolute URL in the canonical tag to avoid ambiguity. "
                        "Change from relative path to full URL (e.g., https://example.com/page).",
                        canonical=canonical,
                    )
                ],
            )

        if _normalize_url(canonical) != _normalize_url(page.final_url):
            return self.result(
                True,
                issues=[
                    self.issue(
                        Severity.INFO,
                        "Canonical tag points to a different URL",
                        "The canonical tag points to a different URL. Ensure this is intentional if this is a duplicate or variant page.",
                        canonical=canonical,
                        current_url=page.final_url,
                    )
                ],
            )

        return self.result(True)


class RobotsTxtRule(AuditRule):
    id = "tech-robots-txt"
    category = Category.TECHNICAL
    name = "Robots.txt"
    description = "Verify robots.txt file exists and is properly configured"
    weight = 3
    scope = RuleScope.AUDIT

    def check(self, context: RuleContext) -> RuleCheckResult:
        site = context.site
        robots_url = site.robots_txt_url

        if site.robots_txt_error or site.robots_txt_status is None or site.robots_txt_status >= 500:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.WARNING,
                        "Could not access robots.txt",
                        "Ensure your robots.txt file is accessible. Check server configuration and permissions.",
                        robots_url=robots_url,
                        error=site.robots_txt_error,
                    )
                ],
            )

        if site.robots_txt_status == 404 or site.robots_txt is None:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.WARNING,
                        "robots.txt file not found",
                        "Create a robots.txt file in your website root to control search engine crawling. "
                        'At minimum, include your sitemap: "Sitemap: https://example.com/sitemap.xml"',
                        robots_url=robots_url,
                    )
                ],
            )

        lines = [line.strip().lower() for line in site.robots_txt.splitlines()]
        disallows_root = any(line.replace(" ", "") == "disallow:/" for line in lines)
        has_allow = any(line.startswith("allow:") for line in lines)

        if disallows_root and not has_allow:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.CRITICAL,
                        "robots.txt blocks all crawlers",
                        'Your robots.txt file blocks all search engines from crawling your site. Remove or modify "Disallow: /" to allow crawling.',
                        robots_url=robots_url,
                    )
                ],
            )

        if any(line.startswith("sitemap:") for line in lines):
            return self.result(True)

        return self.result(
            True,
            issues=[
                self.issue(
                    Severity.INFO,
                    "robots.txt found but no sitemap reference",
                    'Add a sitemap reference to your robots.txt file: "Sitemap: https://example.com/sitemap.xml"',
                    robots_url=robots_url,
                )
            ],
        )


class SitemapRule(AuditRule):
    id = "tech-sitemap"
    category = Category.TECHNICAL
    name = "XML Sitemap"
    description = "Check for XML sitemap presence and accessibility"
    weight = 3
    scope = RuleScope.AUDIT

    def check(self, context: RuleContext) -> RuleCheckResult:
        if context.site.sitemap_url:
            return self.result(True)

        return self.result(
            False,
            0,
            [
                self.issue(
                    Severity.WARNING,
                    "XML sitemap not found",
                    "Create an XML sitemap to help search engines discover and index your pages. "
                    "Place it at /sitemap.xml and reference it in robots.txt.",
                    checked_urls=list(context.site.sitemap_candidates),
                )
            ],
        )


class SecurityHeadersRule(AuditRule):
    id = "tech-security-headers"
    category = Category.TECHNICAL
    name = "Security Headers"
    description = "Verify presence of security headers (HSTS, CSP, X-Frame-Options)"
    weight = 5

    def check(self, context: RuleContext) -> RuleCheckResult:
        headers = context.page.headers
        present = [name for header, name in SECURITY_HEADERS.items() if headers.get(header)]
        missing = [name for header, name in SECURITY_HEADERS.items() if not headers.get(header)]

        if not missing:
            return self.result(True)

        score = round_half_up(len(present) / len(SECURITY_HEADERS) * self.weight)
        return self.result(
            len(present) > 0,
            score=score,
            issues=[
                self.issue(
                    Severity.CRITICAL if len(missing) > 3 else Severity.WARNING,
                    f"Missing security headers: {', '.join(missing)}",
                    " | ".join(SECURITY_HEADER_ADVICE[name] for name in missing),
                    present=present,
                    missing=missing,
                )
            ],
        )


class MobileFriendlyRule(AuditRule):
    id = "tech-mobile-friendly"
    category = Category.TECHNICAL
    name = "Mobile Friendliness"
    description = "Check viewport meta tag and mobile responsiveness"
    weight = 5

    def check(self, context: RuleContext) -> RuleCheckResult:
        tag = parse_html(context.page.html).find("meta", attrs={"name": "viewport"})
        viewport = tag.get("content") if tag else None

        if not viewport:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.CRITICAL,
                        "No viewport meta tag found",
                        'Add a viewport meta tag to make your site mobile-friendly: <meta name="viewport" content="width=device-width, initial-scale=1">',
                    )
                ],
            )

        compact = viewport.replace(" ", "")
        if "width=device-width" not in compact or "initial-scale" not in compact:
            return self.result(
                False,
                0.5,
                [
                    self.issue(
                        Severity.WARNING,
                        "Viewport meta tag is not properly configured",
                        'Update your viewport meta tag to: <meta name="viewport" content="width=device-width, initial-scale=1">',
                        viewport=viewport,
                    )
                ],
            )

        return self.result(True)


class CoreWebVitalsRule(AuditRule):
    id = "tech-core-web-vitals"
    category = Category.TECHNICAL
    name = "Core Web Vitals"
    description = "Measure Core Web Vitals via Google PageSpeed Insights"
    weight = 5
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
                        "Core Web Vitals data unavailable",
                        "PageSpeed Insights could not analyze this page. Re-run the audit later to measure Core Web Vitals.",
                    )
                ],
            )

        metrics = performance.mobile
        checks = {
            "lcp": (metrics.lcp, LCP_GOOD_MS),
            "cls": (metrics.cls, CLS_GOOD),
            "tbt": (metrics.tbt, TBT_GOOD_MS),
        }
        failing: List[str] = [
            name
            for name, (value, limit) in checks.items()
            if not _within(value, limit)
        ]

        if not failing:
            return self.result(True)

        good = len(checks) - len(failing)
        return self.result(
            False,
            good / len(checks),
            [
                self.issue(
                    Severity.CRITICAL if good == 0 else Severity.WARNING,
                    f"Core Web Vitals need improvement: {', '.join(m.upper() for m in failing)}",
                    "Aim for LCP under 2.5s, CLS under 0.1 and Total Blocking Time under 200ms on mobile. "
                    "Optimize images, defer non-critical JavaScript and reserve space for dynamic content.",
                    lcp=metrics.lcp,
                    cls=metrics.cls,
                    tbt=metrics.tbt,
                )
            ],
        )


def _within(value: Optional[float], limit: float) -> bool:
    return value is not None and value <= limit
