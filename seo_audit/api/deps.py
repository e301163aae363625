"""FastAPI dependencies for route handlers."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from seo_audit.core.database import get_db
from seo_audit.rules import RuleCatalog, get_catalog
from seo_audit.services.audit_job import AuditJobRunner, audit_runner
from seo_audit.services.progress import ProgressBroker, progress_broker

# Type alias for database session dependency
DatabaseDep = Annotated[AsyncSession, Depends(get_db)]


def get_runner() -> AuditJobRunner:
    return audit_runner


def get_broker() -> ProgressBroker:
    return progress_broker


RunnerDep = Annotated[AuditJobRunner, Depends(get_runner)]
BrokerDep = Annotated[ProgressBroker, Depends(get_broker)]
CatalogDep = Annotated[RuleCatalog, Depends(get_catalog)]
