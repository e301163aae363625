"""Structured data (schema.org JSON-LD) rules."""

from typing import Any, Dict, List, Optional, Sequence

from seo_audit.rules.base import (
    AuditRule,
    RuleContext,
    find_schema,
    iter_schema_items,
    property_coverage,
    schema_types,
)
from seo_audit.schemas.rules import Category, RuleCheckResult, Severity
from seo_audit.services.scoring import round_half_up

ARTICLE_TYPES = {"Article", "NewsArticle", "BlogPosting"}


class JsonLdRule(AuditRule):
    id = "schema-jsonld"
    category = Category.STRUCTURED_DATA
    name = "JSON-LD Detection"
    description = "Detect presence of JSON-LD structured data"
    weight = 5

    def check(self, context: RuleContext) -> RuleCheckResult:
        json_ld = context.page.json_ld

        if not json_ld:
            return self.result(
                False,
                0,
                [
                    self.issue(
                        Severity.WARNING,
                        "No JSON-LD structured data found",
                        "Add JSON-LD structured data to help search engines understand your content better. "
                        "Start with Organization or LocalBusiness schema.",
                    )
                ],
            )

        types: List[str] = []
        for item in iter_schema_items(json_ld):
            types.extend(schema_types(item))

        return self.result(
            True,
            issues=[
                self.issue(
                    Severity.INFO,
                    f"Found {len(json_ld)} JSON-LD block(s) with types: {', '.join(types) or 'Unknown'}",
                    "JSON-LD structured data detected. Verify it's properly configured using Google's Rich Results Test.",
                    json_ld_count=len(json_ld),
                    schema_types=types,
                )
            ],
        )


class _SchemaPropertiesRule(AuditRule):
    """Validates required/recommended properties of one schema type.

    Pages without the schema pass: the markup is optional, but when
    present it should be complete.
    """

    schema_label: str
    required: Sequence[str] = ()
    recommended: Sequence[str] = ()
    missing_required_severity = Severity.WARNING
    required_advice = ""
    enhance_advice = ""

    def matches(self, types: List[str]) -> bool:
        raise NotImplementedError

    def absent_result(self) -> RuleCheckResult:
        return self.result(True)

    def missing_required_score(self, coverage_score: int) -> float:
        return 0

    def check(self, context: RuleContext) -> RuleCheckResult:
        schema: Optional[Dict[str, Any]] = find_schema(context.page.json_ld, self.matches)
        if schema is None:
            return self.absent_result()

        present, missing = property_coverage(schema, self.required, self.recommended)
        coverage = len(present) / (len(self.required) + len(self.recommended))
        coverage_score = round_half_up(coverage * self.weight)
        missing_required = [prop for prop in missing if prop in self.required]

        if missing_required:
            return self.result(
                False,
                score=self.missing_required_score(coverage_score),
                issues=[
                    self.issue(
                        self.missing_required_severity,
                        f"{self.schema_label} schema missing required properties: {', '.join(missing_required)}",
                        self.required_advice,
                        missing=missing,
                        present=present,
                    )
                ],
            )

        if missing:
            return self.result(
                True,
                score=coverage_score,
                issues=[
                    self.issue(
                        Severity.INFO,
                        f"{self.schema_label} schema could be enhanced. Missing: {', '.join(missing)}",
                        self.enhance_advice,
                        missing=missing,
                        present=present,
                    )
                ],
            )

        return self.result(True)


class OrganizationSchemaRule(_SchemaPropertiesRule):
    id = "schema-organization"
    category = Category.STRUCTURED_DATA
    name = "Organization Schema"
    description = "Validate Organization schema markup"
    weight = 4

    schema_label = "Organization"
    required = ("name", "url")
    recommended = ("logo", "sameAs", "contactPoint")
    required_advice = "Add missing required properties to your Organization schema. At minimum, include name and url."
    enhance_advice = "Add logo, sameAs (social media URLs), and contactPoint for a more complete Organization schema."

    def matches(self, types: List[str]) -> bool:
        return "Organization" in types

    def absent_result(self) -> RuleCheckResult:
        return self.result(
            True,
            issues=[
                self.issue(
                    Severity.INFO,
                    "No Organization schema found",
                    "Consider adding Organization schema if this is a business website. "
                    "Include name, logo, url, and sameAs properties.",
                )
            ],
        )

    def missing_required_score(self, coverage_score: int) -> float:
        return coverage_score * 0.5


class ProductSchemaRule(_SchemaPropertiesRule):
    id = "schema-product"
    category = Category.STRUCTURED_DATA
    name = "Product Schema"
    description = "Validate Product schema markup if applicable"
    weight = 4

    schema_label = "Product"
    required = ("name", "image", "description")
    recommended = ("offers", "brand", "sku", "aggregateRating")
    missing_required_severity = Severity.CRITICAL
    required_advice = "Add required properties: name, image, and description for valid Product schema."
    enhance_advice = "Add offers (with price), brand, sku, and aggregateRating for rich product results."

    def matches(self, types: List[str]) -> bool:
        return "Product" in types


class ArticleSchemaRule(_SchemaPropertiesRule):
    id = "schema-article"
    category = Category.STRUCTURED_DATA
    name = "Article Schema"
    description = "Validate Article schema markup if applicable"
    weight = 4

    schema_label = "Article"
    required = ("headline", "author", "datePublished")
    recommended = ("image", "publisher", "dateModified")
    required_advice = "Add required properties: headline, author, and datePublished for valid Article schema."
    enhance_advice = "Add image, publisher (Organization), and dateModified for better article visibility."

    def matches(self, types: List[str]) -> bool:
        return any(t in ARTICLE_TYPES for t in types)


class LocalBusinessSchemaRule(_SchemaPropertiesRule):
    id = "schema-local-business"
    category = Category.STRUCTURED_DATA
    name = "LocalBusiness Schema"
    description = "Validate LocalBusiness schema markup if applicable"
    weight = 3

    schema_label = "LocalBusiness"
    required = ("name", "address")
    recommended = ("telephone", "openingHours", "geo", "priceRange")
    required_advice = "Add required properties: name and address (PostalAddress) for valid LocalBusiness schema."
    enhance_advice = "Add telephone, openingHours, geo coordinates, and priceRange for better local search visibility."

    def matches(self, types: List[str]) -> bool:
        return any("Business" in t for t in types)
