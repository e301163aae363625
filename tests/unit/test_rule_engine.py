"""Unit tests for the rule engine."""

import pytest

from conftest import ExplodingRule, StaticRule, info_issue, make_page
from seo_audit.rules import AuditRule, RuleCatalog, RuleContext, get_catalog
from seo_audit.rules.base import page_title
from seo_audit.schemas.rules import Category, RuleCheckResult, RuleScope, Severity
from seo_audit.services.rule_engine import RuleEngine
from seo_audit.services.scoring import category_scores, total_score


class PerPageRule(AuditRule):
    """Scores full weight on the entry page only."""

    id = "per-page"
    category = Category.ONPAGE
    name = "Per page"
    description = "Full marks on the home page only"
    weight = 4

    def check(self, context: RuleContext) -> RuleCheckResult:
        if context.page.url.endswith("/"):
            return self.result(True)
        return self.result(False, 0.5, [self.issue(Severity.WARNING, "Not the home page")])


class SiteRule(AuditRule):
    id = "site-wide"
    category = Category.TECHNICAL
    name = "Site"
    description = "Runs once"
    weight = 2
    scope = RuleScope.AUDIT

    def __init__(self):
        self.seen = []

    def check(self, context: RuleContext) -> RuleCheckResult:
        self.seen.append(context.page.url)
        return self.result(False, 0, [self.issue(Severity.WARNING, "Site problem")])


class TestRuleEngineRun:
    """Test running the catalog."""

    async def test_weighted_scenario_totals_six(self, page, scenario_catalog):
        """Test rules weighted 5/3/2 scoring 5/0/1 total 6."""
        engine = RuleEngine(catalog=scenario_catalog)
        results = await engine.run([page], "example.com")

        assert results["rule-a"].score == 5
        assert results["rule-b"].score == 0
        assert results["rule-c"].score == 1
        assert total_score(results) == 6

    async def test_results_sorted_by_rule_id(self, page):
        """Test results come back ordered by id."""
        catalog = RuleCatalog([StaticRule("zeta", 1, 1), StaticRule("alpha", 1, 1), StaticRule("mid", 1, 1)])
        results = await RuleEngine(catalog=catalog, max_concurrent=1).run([page], "example.com")

        assert list(results) == ["alpha", "mid", "zeta"]

    async def test_empty_pages_rejected(self, scenario_catalog):
        """Test running without pages raises ValueError."""
        with pytest.raises(ValueError):
            await RuleEngine(catalog=scenario_catalog).run([], "example.com")

    async def test_full_catalog_runs_every_rule(self, page):
        """Test the shipped catalog produces one result per rule."""
        catalog = get_catalog()
        results = await RuleEngine(catalog=catalog).run([page], "example.com")

        assert set(results) == {rule.id for rule in catalog.rules}
        for rule_id, result in results.items():
            assert 0 <= result.score <= catalog.get(rule_id).weight


class TestRuleIsolation:
    """Test that one failing rule does not affect the others."""

    async def test_exploding_rule_scores_zero_with_one_info_issue(self, page):
        """Test a raising rule yields exactly one info issue and score 0."""
        catalog = RuleCatalog([StaticRule("ok", 5, 5), ExplodingRule("boom", 3)])
        results = await RuleEngine(catalog=catalog).run([page], "example.com")

        failed = results["boom"]
        assert failed.score == 0
        assert failed.passed is False
        assert len(failed.issues) == 1
        assert failed.issues[0].severity == Severity.INFO
        assert failed.issues[0].message.startswith("Rule execution failed")
        assert results["ok"].score == 5

    async def test_exploding_rule_on_many_pages_reports_once(self):
        """Test a rule failing on every page still reports a single issue."""
        pages = [make_page("https://example.com/"), make_page("https://example.com/a")]
        catalog = RuleCatalog([ExplodingRule("boom", 3)])
        results = await RuleEngine(catalog=catalog).run(pages, "example.com")

        assert len(results["boom"].issues) == 1

    async def test_non_result_return_is_a_failure(self, page):
        """Test returning the wrong type is treated as a rule failure."""

        class WrongType(StaticRule):
            def check(self, context):
                return {"score": 1}

        catalog = RuleCatalog([WrongType("wrong", 2, 2)])
        results = await RuleEngine(catalog=catalog).run([page], "example.com")

        assert results["wrong"].score == 0
        assert results["wrong"].issues[0].severity == Severity.INFO


class TestScoreClamping:
    """Test out-of-range rule scores."""

    async def test_score_above_weight_clamped(self, page, caplog):
        """Test a score above the weight is clamped with a warning."""
        catalog = RuleCatalog([StaticRule("greedy", 3, 9)])
        results = await RuleEngine(catalog=catalog).run([page], "example.com")

        assert results["greedy"].score == 3
        assert "outside" in caplog.text

    async def test_negative_score_clamped(self, page):
        """Test a negative score is clamped to 0."""
        catalog = RuleCatalog([StaticRule("negative", 3, -2, passed=False)])
        results = await RuleEngine(catalog=catalog).run([page], "example.com")

        assert results["negative"].score == 0

    @pytest.mark.parametrize("bad_score", [float("nan"), float("inf"), float("-inf")])
    async def test_non_finite_score_becomes_zero(self, page, caplog, bad_score):
        """Test NaN and infinite scores are clamped to 0 and logged."""
        catalog = RuleCatalog([StaticRule("a", 5, 1, passed=False), StaticRule("b", 5, bad_score, passed=False)])
        results = await RuleEngine(catalog=catalog).run([page], "example.com")

        assert results["b"].score == 0
        assert "outside" in caplog.text

    async def test_nan_score_does_not_break_aggregation(self, page):
        """Test a NaN rule score leaves total and category scores well defined."""
        catalog = RuleCatalog([StaticRule("a", 5, 1, passed=False), StaticRule("b", 5, float("nan"), passed=False)])
        results = await RuleEngine(catalog=catalog).run([page], "example.com")

        assert total_score(results) == 1
        scores = category_scores(results, catalog.category_of, catalog.category_weights)
        assert scores[Category.TECHNICAL] == 10


class TestPageMerging:
    """Test how per-page results are combined."""

    async def test_page_scores_averaged(self):
        """Test page-scoped scores are averaged and issues tagged with the page."""
        pages = [make_page("https://example.com/"), make_page("https://example.com/about")]
        catalog = RuleCatalog([PerPageRule()])
        results = await RuleEngine(catalog=catalog).run(pages, "example.com")

        merged = results["per-page"]
        assert merged.score == pytest.approx(3.0)
        assert merged.passed is False
        assert [issue.page_url for issue in merged.issues] == ["https://example.com/about"]

    async def test_audit_scope_runs_once_on_entry_page(self):
        """Test audit-scoped rules see only the first page and stay untagged."""
        rule = SiteRule()
        pages = [make_page("https://example.com/"), make_page("https://example.com/about")]
        results = await RuleEngine(catalog=RuleCatalog([rule])).run(pages, "example.com")

        assert rule.seen == ["https://example.com/"]
        assert results["site-wide"].issues[0].page_url is None

    async def test_existing_page_url_kept(self, page):
        """Test issues that already name a page keep it."""
        issue = info_issue("tagged").model_copy(update={"page_url": "https://example.com/other"})
        catalog = RuleCatalog([StaticRule("tagged", 1, 1, issues=[issue])])
        results = await RuleEngine(catalog=catalog).run([page], "example.com")

        assert results["tagged"].issues[0].page_url == "https://example.com/other"


class TitleRecorder(AuditRule):
    id = "titles"
    category = Category.ONPAGE
    name = "Titles"
    description = "Records the titles it was given"
    weight = 1
    scope = RuleScope.AUDIT

    def __init__(self):
        self.titles = None

    def check(self, context: RuleContext) -> RuleCheckResult:
        self.titles = dict(context.page_titles)
        return self.result(True)


class TestPageTitles:
    """Test titles extracted once per run."""

    async def test_titles_of_every_page_passed_to_rules(self):
        """Test rules receive the title of every crawled page keyed by final URL."""
        rule = TitleRecorder()
        pages = [
            make_page("https://example.com/", html="<title> Home </title>"),
            make_page("https://example.com/a", html="<p>no title</p>", final_url="https://example.com/a/"),
        ]
        await RuleEngine(catalog=RuleCatalog([rule])).run(pages, "example.com")

        assert rule.titles == {"https://example.com/": "Home", "https://example.com/a/": ""}

    def test_titles_not_cached_across_runs(self):
        """Test title extraction keeps no process-wide cache of page HTML."""
        assert not hasattr(page_title, "cache_info")


class TestCatalogAccess:
    """Test catalog helpers exposed by the engine."""

    def test_needs_performance(self, scenario_catalog):
        """Test only catalogs with performance rules need provider data."""
        assert RuleEngine(catalog=get_catalog()).needs_performance() is True
        assert RuleEngine(catalog=scenario_catalog).needs_performance() is False

    def test_lookup(self):
        """Test rule lookup by id and category."""
        engine = RuleEngine(catalog=get_catalog())

        assert engine.get_rule("tech-https").weight == 5
        assert engine.get_rule("missing") is None
        assert {rule.category for rule in engine.rules_by_category(Category.LOCAL_SEO)} == {Category.LOCAL_SEO}
        assert len(engine.rules) == 27
