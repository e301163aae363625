"""On-page content rules."""

from typing import List

from seo_audit.rules.base import AuditRule, RuleContext, meta_content, parse_html
from seo_audit.schemas.rules import Category, IssueDraft, RuleCheckResult, Severity
from seo_audit.services.scoring import round_half_up

REQUIRED_OG_TAGS = ["og:title", "og:description", "og:image", "og:url"]
REQUIRED_TWITTER_TAGS = ["twitter:card", "twitter:title", "twitter:description"]


class TitleTagRule(AuditRule):
    """Title presence and length, plus duplicate titles across the crawl."""

    id = "onpage-title"
    category = Category.ONPAGE
    name = "Title Tag"
    description = "Verify title tag exists and is 30-60 characters long"
    weight = 5

    DUPLICATE_FRACTION = 0.8

    def check(self, context: RuleContext) -> RuleCheckResult:
        page = context.page
        title = context.title_of(page)

        if not title:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.CRITICAL,
                        "No title tag found",
                        "Add a title tag to your page: <title>Your Page Title - Brand Name</title>. "
                        "The title should be descriptive and include your target keywords.",
                    )
                ],
            )

        length = len(title)
        passed = True
        fraction = 1.0
        issues: List[IssueDraft] = []

        if length < 30:
            passed, fraction = False, 0.5
            issues.append(
                self.issue(
                    Severity.WARNING,
                    f"Title tag is too short ({length} characters)",
                    "Expand your title tag to 30-60 characters. Include descriptive keywords and your brand name.",
                    title=title,
                    length=length,
                )
            )
        elif length > 60:
            passed, fraction = False, 0.7
            issues.append(
                self.issue(
                    Severity.WARNING,
                    f"Title tag is too long ({length} characters)",
                    "Shorten your title tag to 30-60 characters. Search engines may truncate longer titles in search results.",
                    title=title,
                    length=length,
                )
            )

        duplicates = [
            other.final_url
            for other in context.all_pages
            if other.final_url != page.final_url and context.title_of(other) == title
        ]
        if duplicates:
            passed = False
            fraction = min(fraction, self.DUPLICATE_FRACTION)
            issues.append(
                self.issue(
                    Severity.WARNING,
                    f"Title tag is shared with {len(duplicates)} other page(s)",
                    "Give every page a unique title that describes its own content.",
                    title=title,
                    duplicate_urls=duplicates[:10],
                )
            )

        return self.result(passed, fraction, issues)


class MetaDescriptionRule(AuditRule):
    id = "onpage-meta-description"
    category = Category.ONPAGE
    name = "Meta Description"
    description = "Check meta description exists and is 120-160 characters"
    weight = 4

    def check(self, context: RuleContext) -> RuleCheckResult:
        soup = parse_html(context.page.html)
        description = (meta_content(soup, name="description") or "").strip()

        if not description:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.WARNING,
                        "No meta description found",
                        'Add a meta description: <meta name="description" content="Your compelling description here">. '
                        "This helps improve click-through rates from search results.",
                    )
                ],
            )

        length = len(description)
        if length < 120:
            return self.result(
                False,
                0.5,
                [
                    self.issue(
                        Severity.INFO,
                        f"Meta description is too short ({length} characters)",
                        "Expand your meta description to 120-160 characters for better visibility in search results.",
                        description=description,
                        length=length,
                    )
                ],
            )

        if length > 160:
            return self.result(
                False,
                0.7,
                [
                    self.issue(
                        Severity.INFO,
                        f"Meta description is too long ({length} characters)",
                        "Shorten your meta description to 120-160 characters. Search engines may truncate longer descriptions.",
                        description=description,
                        length=length,
                    )
                ],
            )

        return self.result(True)


class H1TagRule(AuditRule):
    id = "onpage-h1"
    category = Category.ONPAGE
    name = "H1 Tag"
    description = "Ensure exactly one H1 tag exists on the page"
    weight = 4

    def check(self, context: RuleContext) -> RuleCheckResult:
        h1_tags = parse_html(context.page.html).find_all("h1")
        count = len(h1_tags)

        if count == 0:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.CRITICAL,
                        "No H1 tag found",
                        "Add an H1 tag to your page. The H1 should describe the main topic and include your primary keyword.",
                    )
                ],
            )

        if count > 1:
            return self.result(
                False,
                0.5,
                [
                    self.issue(
                        Severity.WARNING,
                        f"Multiple H1 tags found ({count})",
                        "Use only one H1 tag per page. Multiple H1s can dilute the page focus. "
                        "Consider changing additional H1s to H2 or H3.",
                        count=count,
                        h1_texts=[tag.get_text().strip() for tag in h1_tags],
                    )
                ],
            )

        h1_text = h1_tags[0].get_text().strip()
        if len(h1_text) < 10:
            return self.result(
                False,
                0.7,
                [
                    self.issue(
                        Severity.INFO,
                        "H1 tag is too short",
                        "Make your H1 more descriptive. It should clearly describe the page content and include relevant keywords.",
                        h1_text=h1_text,
                    )
                ],
            )

        return self.result(True)


class WordCountRule(AuditRule):
    id = "onpage-word-count"
    category = Category.ONPAGE
    name = "Content Length"
    description = "Check that page has at least 300 words of content"
    weight = 3

    def check(self, context: RuleContext) -> RuleCheckResult:
        soup = parse_html(context.page.html)
        for tag in soup.find_all(["script", "style", "nav", "footer", "header"]):
            tag.decompose()

        body = soup.body or soup
        word_count = len(body.get_text(" ").split())

        if word_count < 300:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.WARNING,
                        f"Page has insufficient content ({word_count} words)",
                        "Add more content to your page. Aim for at least 300 words. "
                        "Quality content helps with SEO and provides value to visitors.",
                        word_count=word_count,
                    )
                ],
            )

        if word_count < 500:
            return self.result(
                True,
                0.7,
                [
                    self.issue(
                        Severity.INFO,
                        f"Page has minimal content ({word_count} words)",
                        "Consider adding more content. Pages with 500+ words typically perform better in search rankings.",
                        word_count=word_count,
                    )
                ],
            )

        return self.result(True)


class ImageAltTextRule(AuditRule):
    id = "onpage-images-alt"
    category = Category.ONPAGE
    name = "Image Alt Text"
    description = "Verify all images have alt text attributes"
    weight = 3

    def check(self, context: RuleContext) -> RuleCheckResult:
        images = parse_html(context.page.html).find_all("img")
        if not images:
            return self.result(True)

        missing_alt = [img.get("src") or "unknown" for img in images if img.get("alt") is None]
        if not missing_alt:
            return self.result(True)

        total = len(images)
        coverage = (total - len(missing_alt)) / total * 100

        return self.result(
            coverage >= 80,
            score=round_half_up(coverage / 100 * self.weight),
            issues=[
                self.issue(
                    Severity.WARNING if coverage < 50 else Severity.INFO,
                    f"{len(missing_alt)} of {total} images missing alt text ({round_half_up(coverage)}% coverage)",
                    "Add descriptive alt text to all images. Alt text improves accessibility and helps search engines "
                    'understand image content. Format: <img src="..." alt="Descriptive text here">',
                    total_images=total,
                    missing_alt=len(missing_alt),
                    coverage=coverage,
                    examples=missing_alt[:5],
                )
            ],
        )


class OpenGraphRule(AuditRule):
    id = "onpage-open-graph"
    category = Category.ONPAGE
    name = "Open Graph Tags"
    description = "Check for Open Graph and Twitter Card meta tags"
    weight = 3

    def check(self, context: RuleContext) -> RuleCheckResult:
        soup = parse_html(context.page.html)

        missing_og = [tag for tag in REQUIRED_OG_TAGS if soup.find("meta", attrs={"property": tag}) is None]
        missing_twitter = [tag for tag in REQUIRED_TWITTER_TAGS if soup.find("meta", attrs={"name": tag}) is None]

        if not missing_og and not missing_twitter:
            return self.result(True)

        og_coverage = (len(REQUIRED_OG_TAGS) - len(missing_og)) / len(REQUIRED_OG_TAGS) * 100
        twitter_coverage = (len(REQUIRED_TWITTER_TAGS) - len(missing_twitter)) / len(REQUIRED_TWITTER_TAGS) * 100
        total_coverage = (og_coverage + twitter_coverage) / 2

        issues = []
        if missing_og:
            issues.append(
                self.issue(
                    Severity.INFO,
                    f"Missing Open Graph tags: {', '.join(missing_og)}",
                    'Add Open Graph meta tags to improve social media sharing. Example: <meta property="og:title" content="Your Title">',
                    missing_og_tags=missing_og,
                )
            )
        if missing_twitter:
            issues.append(
                self.issue(
                    Severity.INFO,
                    f"Missing Twitter Card tags: {', '.join(missing_twitter)}",
                    'Add Twitter Card meta tags. Example: <meta name="twitter:card" content="summary_large_image">',
                    missing_twitter_tags=missing_twitter,
                )
            )

        return self.result(
            total_coverage >= 70,
            score=round_half_up(total_coverage / 100 * self.weight),
            issues=issues,
        )


class LinksRule(AuditRule):
    id = "onpage-links"
    category = Category.ONPAGE
    name = "Internal/External Links"
    description = "Analyze link structure"
    weight = 3

    def check(self, context: RuleContext) -> RuleCheckResult:
        internal = len(context.page.internal_links)
        external = len(context.page.external_links)

        if internal + external == 0:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.WARNING,
                        "No links found on the page",
                        "Add internal and external links. Internal links help with site navigation and SEO. "
                        "External links to authoritative sources add value.",
                    )
                ],
            )

        issues = []
        if internal < 3:
            issues.append(
                self.issue(
                    Severity.INFO,
                    f"Low number of internal links ({internal})",
                    "Add more internal links to related pages on your site. "
                    "This improves site navigation and helps distribute page authority.",
                    internal_links=internal,
                )
            )
        if external == 0:
            issues.append(
                self.issue(
                    Severity.INFO,
                    "No external links found",
                    "Consider adding external links to authoritative sources. This can add credibility and value to your content.",
                )
            )

        fraction = 1.0
        if internal == 0:
            fraction = 0.3
        elif internal < 3:
            fraction = 0.7

        return self.result(
            internal >= 3,
            score=round_half_up(self.weight * fraction),
            issues=issues,
        )
