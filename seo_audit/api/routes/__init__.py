"""API route definitions."""

from fastapi import APIRouter

from seo_audit.api.routes import audits, health, rules

router = APIRouter()

# Include all route modules
router.include_router(health.router, tags=["health"])
router.include_router(audits.router, tags=["audits"])
router.include_router(rules.router, tags=["rules"])
