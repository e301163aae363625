"""SQLAlchemy ORM models for the SEO audit application."""

from seo_audit.models.audit import Audit
from seo_audit.models.issue import Issue
from seo_audit.models.page import Page
from seo_audit.models.project import Project
from seo_audit.models.rule import Rule

__all__ = [
    "Audit",
    "Issue",
    "Page",
    "Project",
    "Rule",
]
