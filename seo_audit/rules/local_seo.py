"""Local SEO rules."""

import re

from seo_audit.rules.base import AuditRule, RuleContext, iter_schema_items, parse_html, schema_types
from seo_audit.schemas.rules import Category, RuleCheckResult, Severity

PHONE_PATTERN = re.compile(r"(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
ADDRESS_KEYWORDS = ("street", "avenue", "road", "suite", "floor", "building")
BUSINESS_LINK_MARKERS = ("google.com/maps", "g.page", "business.google.com")


class NapConsistencyRule(AuditRule):
    id = "local-nap"
    category = Category.LOCAL_SEO
    name = "NAP Consistency"
    description = "Check for consistent Name, Address, Phone information"
    weight = 2

    def check(self, context: RuleContext) -> RuleCheckResult:
        soup = parse_html(context.page.html)
        text = (soup.body or soup).get_text(" ")
        lowered = text.lower()

        schema_address = False
        schema_phone = False
        for item in context.page.json_ld:
            if not isinstance(item, dict):
                continue
            types = schema_types(item)
            if any("Business" in t for t in types) or "Organization" in types:
                schema_address = schema_address or bool(item.get("address"))
                schema_phone = schema_phone or bool(item.get("telephone"))

        found = {
            "phone": PHONE_PATTERN.search(text) is not None,
            "address": any(keyword in lowered for keyword in ADDRESS_KEYWORDS),
            "schema_address": schema_address,
            "schema_phone": schema_phone,
        }

        if all(found.values()):
            return self.result(True)

        if not found["phone"] and not found["address"]:
            return self.result(
                True,
                issues=[
                    self.issue(
                        Severity.INFO,
                        "No NAP (Name, Address, Phone) information detected",
                        "If this is a local business, add your contact information prominently and in LocalBusiness schema.",
                        **found,
                    )
                ],
            )

        labels = {
            "phone": "phone",
            "address": "address",
            "schema_address": "schema address",
            "schema_phone": "schema phone",
        }
        missing = [labels[key] for key, present in found.items() if not present]
        return self.result(
            False,
            0.5,
            [
                self.issue(
                    Severity.INFO,
                    f"Incomplete NAP information. Missing: {', '.join(missing)}",
                    "Add complete NAP (Name, Address, Phone) information in both visible text and LocalBusiness schema "
                    "for better local SEO.",
                    **found,
                )
            ],
        )


class GoogleMapsRule(AuditRule):
    id = "local-google-maps"
    category = Category.LOCAL_SEO
    name = "Google Maps Embed"
    description = "Detect embedded Google Maps on the page"
    weight = 2

    def check(self, context: RuleContext) -> RuleCheckResult:
        soup = parse_html(context.page.html)
        has_map = any("google.com/maps" in (frame.get("src") or "") for frame in soup.find_all("iframe"))

        if has_map:
            return self.result(True)

        has_geo = False
        for item in iter_schema_items(context.page.json_ld):
            address = item.get("address")
            if item.get("geo") or (isinstance(address, dict) and address.get("geo")):
                has_geo = True
                break

        if has_geo:
            return self.result(
                True,
                0.7,
                [
                    self.issue(
                        Severity.INFO,
                        "Geo coordinates found in schema but no embedded map",
                        "Consider adding an embedded Google Map for better user experience on your contact/location page.",
                    )
                ],
            )

        return self.result(
            True,
            issues=[
                self.issue(
                    Severity.INFO,
                    "No Google Maps embed detected",
                    "If this is a local business, consider embedding a Google Map on your contact page to help customers find you.",
                )
            ],
        )


class BusinessProfileRule(AuditRule):
    id = "local-business-profile"
    category = Category.LOCAL_SEO
    name = "Google Business Profile"
    description = "Check for Google Business Profile or Maps links"
    weight = 1

    def check(self, context: RuleContext) -> RuleCheckResult:
        soup = parse_html(context.page.html)
        has_link = any(
            marker in (anchor.get("href") or "")
            for anchor in soup.find_all("a")
            for marker in BUSINESS_LINK_MARKERS
        )

        if has_link:
            return self.result(True)

        return self.result(
            True,
            issues=[
                self.issue(
                    Severity.INFO,
                    "No Google Business Profile link found",
                    "If you have a Google Business Profile, link to it from your website. "
                    "This can improve local search visibility.",
                )
            ],
        )
