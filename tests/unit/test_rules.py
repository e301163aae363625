"""Unit tests for individual audit rules and the catalog."""

from typing import Dict, Optional, Sequence

import pytest

from conftest import StaticRule, make_page
from seo_audit.rules import RuleCatalog, RuleContext, get_catalog
from seo_audit.rules.local_seo import BusinessProfileRule, GoogleMapsRule, NapConsistencyRule
from seo_audit.rules.onpage import (
    H1TagRule,
    ImageAltTextRule,
    LinksRule,
    MetaDescriptionRule,
    OpenGraphRule,
    TitleTagRule,
    WordCountRule,
)
from seo_audit.rules.performance import (
    MEGABYTE,
    LoadTimeRule,
    PageSizeRule,
    PsiMetricsRule,
    RequestCountRule,
)
from seo_audit.rules.structured_data import (
    ArticleSchemaRule,
    JsonLdRule,
    LocalBusinessSchemaRule,
    OrganizationSchemaRule,
    ProductSchemaRule,
)
from seo_audit.rules.technical import (
    CanonicalRule,
    CoreWebVitalsRule,
    HttpStatusRule,
    HttpsRule,
    MobileFriendlyRule,
    RobotsTxtRule,
    SecurityHeadersRule,
    SitemapRule,
)
from seo_audit.schemas.crawl import PageSnapshot, ResourceInfo, SiteFacts
from seo_audit.schemas.performance import PerformanceMetrics, PerformanceResult
from seo_audit.schemas.rules import Category, Severity


def context(
    page: Optional[PageSnapshot] = None,
    pages: Sequence[PageSnapshot] = (),
    site: Optional[SiteFacts] = None,
    performance: Optional[PerformanceResult] = None,
    titles: Optional[Dict[str, str]] = None,
) -> RuleContext:
    page = page or make_page()
    return RuleContext(
        page=page,
        all_pages=tuple(pages) or (page,),
        project_domain="example.com",
        site=site or SiteFacts(),
        performance=performance,
        page_titles=titles or {},
    )


class TestTechnicalRules:
    """Test technical rules."""

    def test_http_status_ok(self):
        """Test a 200 page scores full weight."""
        result = HttpStatusRule().check(context())
        assert result.passed is True
        assert result.score == 5

    def test_http_status_not_found(self):
        """Test a 404 is a critical issue scoring 0."""
        result = HttpStatusRule().check(context(make_page(status_code=404)))

        assert result.score == 0
        assert result.issues[0].severity == Severity.CRITICAL
        assert result.issues[0].metadata["status_code"] == 404

    def test_https_without_hsts_passes_with_info(self):
        """Test HTTPS without HSTS still scores full weight."""
        result = HttpsRule().check(context())

        assert result.passed is True
        assert result.score == 5
        assert result.issues[0].severity == Severity.INFO

    def test_plain_http_fails(self):
        """Test a page served over HTTP scores 0."""
        page = make_page("http://example.com/")
        result = HttpsRule().check(context(page))

        assert result.score == 0
        assert result.issues[0].severity == Severity.CRITICAL

    def test_security_headers_partial(self):
        """Test two of five headers earn two points."""
        page = make_page(
            headers={"x-frame-options": "DENY", "strict-transport-security": "max-age=31536000"}
        )
        result = SecurityHeadersRule().check(context(page))

        assert result.score == 2
        assert result.passed is True
        assert result.issues[0].severity == Severity.WARNING
        assert result.issues[0].metadata["missing"] == ["CSP", "X-Content-Type-Options", "Referrer-Policy"]

    def test_security_headers_none(self):
        """Test no security headers is critical."""
        result = SecurityHeadersRule().check(context())

        assert result.score == 0
        assert result.passed is False
        assert result.issues[0].severity == Severity.CRITICAL

    def test_robots_blocking_everything(self):
        """Test a robots.txt disallowing all crawlers is critical."""
        site = SiteFacts(robots_txt_status=200, robots_txt="User-agent: *\nDisallow: /")
        result = RobotsTxtRule().check(context(site=site))

        assert result.score == 0
        assert result.issues[0].message == "robots.txt blocks all crawlers"

    def test_robots_with_sitemap(self):
        """Test a permissive robots.txt with a sitemap reference passes cleanly."""
        site = SiteFacts(
            robots_txt_status=200,
            robots_txt="User-agent: *\nAllow: /\nSitemap: https://example.com/sitemap.xml",
        )
        result = RobotsTxtRule().check(context(site=site))

        assert result.passed is True
        assert result.issues == []

    def test_robots_missing(self):
        """Test a 404 robots.txt scores 0."""
        result = RobotsTxtRule().check(context(site=SiteFacts(robots_txt_status=404)))
        assert result.issues[0].message == "robots.txt file not found"

    def test_robots_unreachable(self):
        """Test a fetch error is reported as inaccessible."""
        site = SiteFacts(robots_txt_error="ConnectTimeout")
        result = RobotsTxtRule().check(context(site=site))
        assert result.issues[0].message == "Could not access robots.txt"

    def test_sitemap_missing_lists_checked_urls(self):
        """Test a missing sitemap reports where it looked."""
        site = SiteFacts(sitemap_candidates=["https://example.com/sitemap.xml"])
        result = SitemapRule().check(context(site=site))

        assert result.score == 0
        assert result.issues[0].metadata["checked_urls"] == ["https://example.com/sitemap.xml"]

    def test_sitemap_found(self):
        """Test a discovered sitemap passes."""
        site = SiteFacts(sitemap_url="https://example.com/sitemap.xml")
        assert SitemapRule().check(context(site=site)).score == 3
    def test_canonical_missing(self):
        """Test a page without a canonical tag scores 0 with a warning."""
        page = make_page(html="<html><head><title>x</title></head></html>")
        result = CanonicalRule().check(context(page))

        assert result.passed is False
        assert result.score == 0
        assert result.issues[0].severity == Severity.WARNING

    def test_canonical_relative_keeps_half(self):
        """Test a relative canonical URL keeps half the weight."""
        page = make_page(html='<html><head><link rel="canonical" href="/products"></head></html>')
        result = CanonicalRule().check(context(page))

        assert result.passed is False
        assert result.score == pytest.approx(2)
        assert result.issues[0].metadata["canonical"] == "/products"

    def test_canonical_elsewhere_passes_with_info(self):
        """Test a canonical pointing to another URL passes with an info issue."""
        page = make_page("https://example.com/about")
        result = CanonicalRule().check(context(page))

        assert result.passed is True
        assert result.score == 4
        assert result.issues[0].severity == Severity.INFO
        assert result.issues[0].metadata["current_url"] == "https://example.com/about"

    def test_canonical_self_reference_normalized(self):
        """Test host case and an empty path do not count as a different URL."""
        page = make_page(html='<html><head><link rel="canonical" href="https://EXAMPLE.com"></head></html>')
        result = CanonicalRule().check(context(page))

        assert result.passed is True
        assert result.score == 4
        assert result.issues == []

    def test_mobile_without_viewport(self):
        """Test a missing viewport tag is critical and scores 0."""
        page = make_page(html="<html><head><title>x</title></head></html>")
        result = MobileFriendlyRule().check(context(page))

        assert result.score == 0
        assert result.issues[0].severity == Severity.CRITICAL

    def test_mobile_incomplete_viewport(self):
        """Test a viewport without initial-scale keeps half the weight."""
        page = make_page(html='<html><head><meta name="viewport" content="width=device-width"></head></html>')
        result = MobileFriendlyRule().check(context(page))

        assert result.passed is False
        assert result.score == pytest.approx(2.5)
        assert result.issues[0].severity == Severity.WARNING

    def test_mobile_viewport_spacing_ignored(self):
        """Test spaces inside the viewport content are tolerated."""
        page = make_page(html='<html><head><meta name="viewport" content="width = device-width, initial-scale = 1"></head></html>')
        result = MobileFriendlyRule().check(context(page))

        assert result.passed is True
        assert result.score == 5


class TestPerformanceDependentRules:
    """Test rules that read PageSpeed data."""

    @pytest.mark.parametrize("rule", [CoreWebVitalsRule(), PsiMetricsRule()])
    @pytest.mark.parametrize("performance", [None, PerformanceResult.empty()])
    def test_no_data_scores_zero_with_info(self, rule, performance):
        """Test missing provider data scores 0 with one info issue."""
        result = rule.check(context(performance=performance))

        assert result.score == 0
        assert result.passed is False
        assert [issue.severity for issue in result.issues] == [Severity.INFO]

    def test_core_web_vitals_good(self, good_performance):
        """Test good lab metrics pass."""
        result = CoreWebVitalsRule().check(context(performance=good_performance))
        assert result.passed is True
        assert result.score == 5

    def test_core_web_vitals_partial(self):
        """Test one failing metric out of three keeps two thirds of the weight."""
        performance = PerformanceResult(
            available=True,
            mobile=PerformanceMetrics(performance_score=70, lcp=4000, cls=0.05, tbt=100),
        )
        result = CoreWebVitalsRule().check(context(performance=performance))

        assert result.score == pytest.approx(5 * 2 / 3)
        assert "LCP" in result.issues[0].message

    def test_psi_score_scaled(self, good_performance):
        """Test the mobile score scales the weight."""
        result = PsiMetricsRule().check(context(performance=good_performance))
        assert result.score == pytest.approx(3.8)
        assert result.passed is True

    def test_load_time_thresholds(self):
        """Test load time bands."""
        assert LoadTimeRule().check(context(make_page(load_time=1500))).score == 5
        assert LoadTimeRule().check(context(make_page(load_time=2500))).score == pytest.approx(4)
        assert LoadTimeRule().check(context(make_page(load_time=4000))).score == pytest.approx(2.5)
        assert LoadTimeRule().check(context(make_page(load_time=8000))).score == 0


class TestOnPageRules:
    """Test on-page content rules."""

    def test_good_title(self):
        """Test a 30-60 character unique title passes."""
        result = TitleTagRule().check(context())
        assert result.passed is True
        assert result.score == 5

    def test_missing_title(self):
        """Test a page without a title is critical."""
        result = TitleTagRule().check(context(make_page(html="<html><body>hi</body></html>")))

        assert result.score == 0
        assert result.issues[0].severity == Severity.CRITICAL

    def test_short_title(self):
        """Test a short title keeps half the weight."""
        page = make_page(html="<html><head><title>Home</title></head></html>")
        result = TitleTagRule().check(context(page))

        assert result.score == pytest.approx(2.5)
        assert result.issues[0].metadata["length"] == 4

    def test_duplicate_titles_across_pages(self):
        """Test pages sharing a title lose points."""
        home = make_page("https://example.com/")
        about = make_page("https://example.com/about")
        result = TitleTagRule().check(context(home, pages=[home, about]))

        assert result.passed is False
        assert result.score == pytest.approx(4)
        assert result.issues[0].metadata["duplicate_urls"] == ["https://example.com/about"]

    def test_meta_description_good(self):
        """Test a description within 120-160 characters passes."""
        assert MetaDescriptionRule().check(context()).passed is True

    def test_meta_description_missing(self):
        """Test a missing description scores 0."""
        page = make_page(html="<html><head><title>x</title></head></html>")
        assert MetaDescriptionRule().check(context(page)).score == 0
    def test_duplicate_titles_from_extracted_titles(self):
        """Test duplicate detection uses the titles extracted for the run."""
        home = make_page("https://example.com/")
        about = make_page("https://example.com/about", html="<html><head><title>About</title></head></html>")
        shared = "Acme Widgets - Handmade Widgets Since 1999"
        titles = {home.final_url: shared, about.final_url: shared}
        result = TitleTagRule().check(context(home, pages=[home, about], titles=titles))

        assert result.passed is False
        assert result.issues[0].metadata["duplicate_urls"] == ["https://example.com/about"]

    def test_h1_missing(self):
        """Test a page without an H1 is critical."""
        page = make_page(html="<html><body><h2>Subheading</h2></body></html>")
        result = H1TagRule().check(context(page))

        assert result.score == 0
        assert result.issues[0].severity == Severity.CRITICAL

    def test_h1_multiple(self):
        """Test several H1 tags keep half the weight and list their text."""
        page = make_page(html="<html><body><h1>First heading</h1><h1>Second heading</h1></body></html>")
        result = H1TagRule().check(context(page))

        assert result.passed is False
        assert result.score == pytest.approx(2)
        assert result.issues[0].metadata["h1_texts"] == ["First heading", "Second heading"]

    def test_h1_too_short(self):
        """Test an H1 under 10 characters keeps 70% of the weight."""
        page = make_page(html="<html><body><h1>Welcome</h1></body></html>")
        result = H1TagRule().check(context(page))

        assert result.passed is False
        assert result.score == pytest.approx(2.8)
        assert result.issues[0].severity == Severity.INFO

    def test_h1_good(self):
        """Test a single descriptive H1 passes."""
        result = H1TagRule().check(context())
        assert result.passed is True
        assert result.score == 4

    @pytest.mark.parametrize(
        "words, passed, score",
        [(299, False, 0), (300, True, 2.1), (499, True, 2.1), (500, True, 3)],
    )
    def test_word_count_thresholds(self, words, passed, score):
        """Test content length bands at 300 and 500 words."""
        page = make_page(html=f"<html><body><p>{'word ' * words}</p></body></html>")
        result = WordCountRule().check(context(page))

        assert result.passed is passed
        assert result.score == pytest.approx(score)

    def test_word_count_ignores_navigation_and_scripts(self):
        """Test words in nav, header, footer and script are not counted."""
        chrome = "word " * 600
        html = (
            f"<html><body><header>{chrome}</header><nav>{chrome}</nav>"
            f"<script>var a = '{chrome}';</script><p>ten words of real content on this page right here</p>"
            f"<footer>{chrome}</footer></body></html>"
        )
        result = WordCountRule().check(context(make_page(html=html)))

        assert result.score == 0
        assert result.issues[0].metadata["word_count"] == 10

    def test_images_without_images_pass(self):
        """Test a page with no images scores full weight."""
        page = make_page(html="<html><body><p>text</p></body></html>")
        assert ImageAltTextRule().check(context(page)).score == 3

    def test_images_mostly_described(self):
        """Test 90% alt coverage passes with a rounded score and an info issue."""
        images = '<img src="a.png" alt="">' * 9 + '<img src="b.png">'
        result = ImageAltTextRule().check(context(make_page(html=f"<html><body>{images}</body></html>")))

        assert result.passed is True
        assert result.score == 3
        assert result.issues[0].severity == Severity.INFO
        assert result.issues[0].metadata["examples"] == ["b.png"]

    def test_images_mostly_missing_alt(self):
        """Test 25% alt coverage fails with a warning."""
        images = '<img src="a.png" alt="A">' + '<img src="b.png">' * 3
        result = ImageAltTextRule().check(context(make_page(html=f"<html><body>{images}</body></html>")))

        assert result.passed is False
        assert result.score == 1
        assert result.issues[0].severity == Severity.WARNING
        assert result.issues[0].message == "3 of 4 images missing alt text (25% coverage)"

    def test_open_graph_without_twitter_cards(self):
        """Test full Open Graph but no Twitter tags averages to half coverage."""
        result = OpenGraphRule().check(context())

        assert result.passed is False
        assert result.score == 2
        assert len(result.issues) == 1
        assert result.issues[0].metadata["missing_twitter_tags"] == ["twitter:card", "twitter:title", "twitter:description"]

    def test_open_graph_complete(self):
        """Test all Open Graph and Twitter tags pass."""
        tags = "".join(f'<meta property="{tag}" content="x">' for tag in ("og:title", "og:description", "og:image", "og:url"))
        tags += "".join(f'<meta name="{tag}" content="x">' for tag in ("twitter:card", "twitter:title", "twitter:description"))
        result = OpenGraphRule().check(context(make_page(html=f"<html><head>{tags}</head></html>")))

        assert result.passed is True
        assert result.score == 3
        assert result.issues == []

    def test_open_graph_missing_everything(self):
        """Test a page with no social tags scores 0 with two issues."""
        result = OpenGraphRule().check(context(make_page(html="<html></html>")))

        assert result.score == 0
        assert len(result.issues) == 2

    def test_links_none(self):
        """Test a page without links scores 0 with a warning."""
        result = LinksRule().check(context(make_page()))

        assert result.score == 0
        assert result.issues[0].severity == Severity.WARNING

    @pytest.mark.parametrize(
        "internal, external, passed, score, issue_count",
        [
            (0, 1, False, 1, 1),
            (2, 0, False, 2, 2),
            (3, 0, True, 3, 1),
            (5, 2, True, 3, 0),
        ],
    )
    def test_links_thresholds(self, internal, external, passed, score, issue_count):
        """Test internal link bands at 0, under 3, and 3 or more."""
        page = make_page(
            internal_links=[f"https://example.com/p{i}" for i in range(internal)],
            external_links=[f"https://other{i}.org/" for i in range(external)],
        )
        result = LinksRule().check(context(page))

        assert result.passed is passed
        assert result.score == score
        assert len(result.issues) == issue_count


class TestStructuredDataRules:
    """Test JSON-LD rules."""

    def test_no_json_ld(self):
        """Test pages without JSON-LD fail the detection rule."""
        result = JsonLdRule().check(context())
        assert result.score == 0

    def test_json_ld_types_reported(self):
        """Test detected types, including @graph members, are listed."""
        page = make_page(json_ld=[{"@graph": [{"@type": "Organization"}, {"@type": ["Product", "Thing"]}]}])
        result = JsonLdRule().check(context(page))

        assert result.passed is True
        assert result.issues[0].metadata["schema_types"] == ["Organization", "Product", "Thing"]

    def test_product_missing_required(self):
        """Test Product schema without required properties is critical and scores 0."""
        page = make_page(json_ld=[{"@type": "Product", "name": "Widget"}])
        result = ProductSchemaRule().check(context(page))

        assert result.score == 0
        assert result.issues[0].severity == Severity.CRITICAL
        assert "image" in result.issues[0].message

    def test_product_absent_passes(self):
        """Test pages without Product schema are not penalized."""
        result = ProductSchemaRule().check(context())
        assert result.passed is True
        assert result.score == 4

    def test_organization_partial_coverage(self):
        """Test Organization with only required properties scores its coverage."""
        page = make_page(json_ld=[{"@type": "Organization", "name": "Acme", "url": "https://example.com"}])
        result = OrganizationSchemaRule().check(context(page))

        assert result.passed is True
        assert result.score == 2
        assert result.issues[0].severity == Severity.INFO
    def test_article_required_only(self):
        """Test an article with only required properties scores half its weight."""
        page = make_page(json_ld=[{"@type": "BlogPosting", "headline": "News", "author": "Ann", "datePublished": "2026-01-01"}])
        result = ArticleSchemaRule().check(context(page))

        assert result.passed is True
        assert result.score == 2
        assert result.issues[0].metadata["missing"] == ["image", "publisher", "dateModified"]

    def test_article_missing_author(self):
        """Test an article without an author scores 0 with a warning."""
        page = make_page(json_ld=[{"@type": "NewsArticle", "headline": "News", "datePublished": "2026-01-01"}])
        result = ArticleSchemaRule().check(context(page))

        assert result.passed is False
        assert result.score == 0
        assert result.issues[0].severity == Severity.WARNING
        assert "author" in result.issues[0].message

    def test_article_absent_passes(self):
        """Test pages without Article schema are not penalized."""
        result = ArticleSchemaRule().check(context())
        assert result.passed is True
        assert result.score == 4
        assert result.issues == []

    def test_local_business_required_only(self):
        """Test a business with name and address earns its coverage score."""
        page = make_page(json_ld=[{"@type": "LocalBusiness", "name": "Acme", "address": {"streetAddress": "1 Main St"}}])
        result = LocalBusinessSchemaRule().check(context(page))

        assert result.passed is True
        assert result.score == 1
        assert result.issues[0].severity == Severity.INFO

    def test_local_business_missing_address(self):
        """Test a business subtype without an address scores 0."""
        page = make_page(json_ld=[{"@graph": [{"@type": "HomeAndConstructionBusiness", "name": "Acme"}]}])
        result = LocalBusinessSchemaRule().check(context(page))

        assert result.passed is False
        assert result.score == 0
        assert "address" in result.issues[0].message

    def test_local_business_complete(self):
        """Test a business with every property passes without issues."""
        page = make_page(
            json_ld=[
                {
                    "@type": "LocalBusiness",
                    "name": "Acme",
                    "address": {"streetAddress": "1 Main St"},
                    "telephone": "+1-555-123-4567",
                    "openingHours": "Mo-Fr 09:00-17:00",
                    "geo": {"latitude": 1, "longitude": 2},
                    "priceRange": "$$",
                }
            ]
        )
        result = LocalBusinessSchemaRule().check(context(page))

        assert result.passed is True
        assert result.score == 3
        assert result.issues == []


class TestPageWeightRules:
    """Test page size and request count rules."""

    @pytest.mark.parametrize(
        "size_mb, passed, score, severity",
        [
            (0.5, True, 3, None),
            (1.5, True, 2.1, Severity.INFO),
            (2.5, False, 0.9, Severity.WARNING),
            (4, False, 0, Severity.CRITICAL),
        ],
    )
    def test_page_size_thresholds(self, size_mb, passed, score, severity):
        """Test page size bands at 1, 2 and 3 MB."""
        page = make_page(page_size=int(size_mb * MEGABYTE))
        result = PageSizeRule().check(context(page))

        assert result.passed is passed
        assert result.score == pytest.approx(score)
        assert [issue.severity for issue in result.issues] == ([severity] if severity else [])

    def test_page_size_counts_resources(self):
        """Test resource sizes are added to the HTML size."""
        page = make_page(
            page_size=MEGABYTE // 2,
            resources=[ResourceInfo(type="image", url="https://example.com/hero.jpg", size=MEGABYTE)],
        )
        result = PageSizeRule().check(context(page))

        assert result.score == pytest.approx(2.1)
        assert result.issues[0].metadata["size_mb"] == pytest.approx(1.5)

    @pytest.mark.parametrize(
        "count, passed, score",
        [(30, True, 3), (31, True, 2.1), (50, True, 2.1), (51, False, 0.9), (100, False, 0.9), (101, False, 0)],
    )
    def test_request_count_thresholds(self, count, passed, score):
        """Test request count bands at 30, 50 and 100."""
        resources = [ResourceInfo(type="script", url=f"https://example.com/{i}.js") for i in range(count)]
        result = RequestCountRule().check(context(make_page(resources=resources)))

        assert result.passed is passed
        assert result.score == pytest.approx(score)


class TestLocalSeoRules:
    """Test local SEO rules."""

    NAP_TEXT = "<p>Call (555) 123-4567 or visit 12 Main Street.</p>"

    def test_nap_complete(self):
        """Test visible and schema NAP details pass."""
        page = make_page(
            html=f"<html><body>{self.NAP_TEXT}</body></html>",
            json_ld=[{"@type": "LocalBusiness", "address": "12 Main Street", "telephone": "555-123-4567"}],
        )
        result = NapConsistencyRule().check(context(page))

        assert result.passed is True
        assert result.score == 2
        assert result.issues == []

    def test_nap_without_schema_keeps_half(self):
        """Test visible NAP without schema properties keeps half the weight."""
        page = make_page(html=f"<html><body>{self.NAP_TEXT}</body></html>")
        result = NapConsistencyRule().check(context(page))

        assert result.passed is False
        assert result.score == pytest.approx(1)
        assert result.issues[0].message == "Incomplete NAP information. Missing: schema address, schema phone"

    def test_nap_organization_schema_counts(self):
        """Test an Organization with address and telephone satisfies the schema checks."""
        page = make_page(
            html=f"<html><body>{self.NAP_TEXT}</body></html>",
            json_ld=[{"@type": "Organization", "address": "12 Main Street", "telephone": "555-123-4567"}],
        )
        assert NapConsistencyRule().check(context(page)).passed is True

    def test_nap_absent_is_informational(self):
        """Test a site without phone or address is not penalized."""
        page = make_page(html="<html><body><p>We sell widgets online.</p></body></html>")
        result = NapConsistencyRule().check(context(page))

        assert result.passed is True
        assert result.score == 2
        assert result.issues[0].severity == Severity.INFO

    def test_maps_embed_passes(self):
        """Test an embedded Google Map scores full weight without issues."""
        page = make_page(html='<html><body><iframe src="https://www.google.com/maps/embed?pb=1"></iframe></body></html>')
        result = GoogleMapsRule().check(context(page))

        assert result.score == 2
        assert result.issues == []

    @pytest.mark.parametrize(
        "item",
        [
            {"@type": "LocalBusiness", "geo": {"latitude": 1, "longitude": 2}},
            {"@type": "LocalBusiness", "address": {"geo": {"latitude": 1, "longitude": 2}}},
        ],
    )
    def test_maps_geo_only(self, item):
        """Test schema geo coordinates without a map keep 70% of the weight."""
        result = GoogleMapsRule().check(context(make_page(json_ld=[item])))

        assert result.passed is True
        assert result.score == pytest.approx(1.4)
        assert result.issues[0].message == "Geo coordinates found in schema but no embedded map"

    def test_maps_absent_is_informational(self):
        """Test no map and no geo still scores full weight with an info issue."""
        result = GoogleMapsRule().check(context())

        assert result.score == 2
        assert result.issues[0].severity == Severity.INFO

    @pytest.mark.parametrize("href", ["https://g.page/acme", "https://www.google.com/maps/place/Acme", "https://business.google.com/n/1"])
    def test_business_profile_link(self, href):
        """Test any Google Business Profile or Maps link passes without issues."""
        page = make_page(html=f'<html><body><a href="{href}">Find us</a></body></html>')
        result = BusinessProfileRule().check(context(page))

        assert result.score == 1
        assert result.issues == []

    def test_business_profile_missing(self):
        """Test no profile link passes with an info issue."""
        result = BusinessProfileRule().check(context())

        assert result.passed is True
        assert result.score == 1
        assert result.issues[0].severity == Severity.INFO


class TestRuleCatalog:
    """Test catalog construction."""

    def test_duplicate_ids_rejected(self):
        """Test two rules with one id raise ValueError."""
        with pytest.raises(ValueError, match="Duplicate"):
            RuleCatalog([StaticRule("same", 1, 1), StaticRule("same", 2, 2)])

    def test_negative_weight_rejected(self):
        """Test negative weights raise ValueError."""
        with pytest.raises(ValueError, match="negative"):
            RuleCatalog([StaticRule("neg", -1, 0)])

    def test_inactive_rules_dropped(self):
        """Test inactive rules are excluded from lookups and weights."""
        inactive = StaticRule("off", 10, 10, category=Category.ONPAGE)
        inactive.is_active = False
        catalog = RuleCatalog([StaticRule("on", 5, 5), inactive])

        assert [rule.id for rule in catalog] == ["on"]
        assert catalog.get("off") is None
        assert catalog.category_weights[Category.ONPAGE] == 0

    def test_shipped_catalog(self):
        """Test the shipped catalog has unique ids and is cached."""
        catalog = get_catalog()

        assert len(catalog) == 27
        assert len({rule.id for rule in catalog}) == 27
        assert get_catalog() is catalog
        assert all(rule.weight > 0 for rule in catalog)
