"""The audit rule catalog.

The catalog is built once per process and never mutated; changing
the rule set means shipping a new version of this module.
"""

from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from seo_audit.rules.base import AuditRule, RuleContext
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
from seo_audit.rules.performance import LoadTimeRule, PageSizeRule, PsiMetricsRule, RequestCountRule
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
    HttpsRule,
    HttpStatusRule,
    MobileFriendlyRule,
    RobotsTxtRule,
    SecurityHeadersRule,
    SitemapRule,
)
from seo_audit.schemas.rules import Category
from seo_audit.services.scoring import category_weight_totals

CATALOG_VERSION = "2024.1"

ALL_RULES: Tuple[AuditRule, ...] = (
    # Technical (35 points)
    HttpStatusRule(),
    HttpsRule(),
    CanonicalRule(),
    RobotsTxtRule(),
    SitemapRule(),
    SecurityHeadersRule(),
    MobileFriendlyRule(),
    CoreWebVitalsRule(),
    # On-Page (25 points)
    TitleTagRule(),
    MetaDescriptionRule(),
    H1TagRule(),
    WordCountRule(),
    ImageAltTextRule(),
    OpenGraphRule(),
    LinksRule(),
    # Structured Data (20 points)
    JsonLdRule(),
    OrganizationSchemaRule(),
    ProductSchemaRule(),
    ArticleSchemaRule(),
    LocalBusinessSchemaRule(),
    # Performance (15 points)
    LoadTimeRule(),
    PageSizeRule(),
    RequestCountRule(),
    PsiMetricsRule(),
    # Local SEO (5 points)
    NapConsistencyRule(),
    GoogleMapsRule(),
    BusinessProfileRule(),
)


class RuleCatalog:
    """Read-only set of active rules with derived lookup tables.

    Args:
        rules: Rule instances; inactive ones are dropped.
        version: Catalog version recorded on every audit.

    Raises:
        ValueError: If two rules share an id or a weight is negative.
    """

    def __init__(self, rules: Iterable[AuditRule], version: str = CATALOG_VERSION):
        active: List[AuditRule] = []
        seen = set()
        for rule in rules:
            if rule.id in seen:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            if rule.weight < 0:
                raise ValueError(f"Rule {rule.id} has a negative weight")
            seen.add(rule.id)
            if rule.is_active:
                active.append(rule)

        self.version = version
        self._rules: Tuple[AuditRule, ...] = tuple(active)
        self._by_id: Mapping[str, AuditRule] = MappingProxyType({r.id: r for r in active})
        self._category_of: Mapping[str, Category] = MappingProxyType(
            {r.id: r.category for r in active}
        )
        self._category_weights: Mapping[Category, int] = MappingProxyType(
            category_weight_totals(active)
        )

    @property
    def rules(self) -> Tuple[AuditRule, ...]:
        return self._rules

    @property
    def category_of(self) -> Mapping[str, Category]:
        return self._category_of

    @property
    def category_weights(self) -> Mapping[Category, int]:
        return self._category_weights

    @property
    def total_weight(self) -> int:
        return sum(self._category_weights.values())

    @property
    def needs_performance(self) -> bool:
        """Whether any active rule reads PageSpeed data."""
        return any(rule.requires_performance for rule in self._rules)

    def get(self, rule_id: str) -> Optional[AuditRule]:
        return self._by_id.get(rule_id)

    def by_category(self, category: Category) -> List[AuditRule]:
        return [rule for rule in self._rules if rule.category == category]

    def weights_dict(self) -> Dict[Category, int]:
        return dict(self._category_weights)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)


@lru_cache
def get_catalog() -> RuleCatalog:
    """Get the process-wide rule catalog.

    Returns:
        RuleCatalog: Catalog built from ALL_RULES.
    """
    return RuleCatalog(ALL_RULES)


__all__ = [
    "ALL_RULES",
    "CATALOG_VERSION",
    "AuditRule",
    "RuleCatalog",
    "RuleContext",
    "get_catalog",
]
