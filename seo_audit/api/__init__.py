"""HTTP API for the SEO audit backend."""

from seo_audit.api.routes import router

__all__ = ["router"]
