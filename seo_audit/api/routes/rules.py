"""Rule catalog endpoints."""

from typing import Optional

from fastapi import APIRouter

from seo_audit.api.deps import CatalogDep
from seo_audit.schemas.rules import Category, RuleCatalogResponse

router = APIRouter()


@router.get("/rules", response_model=RuleCatalogResponse)
async def list_rules(
    catalog: CatalogDep,
    category: Optional[Category] = None,
) -> RuleCatalogResponse:
    """List the active rules and their weights.

    Args:
        category: Only return rules of this category.

    Returns:
        RuleCatalogResponse with per-category weight totals.
    """
    rules = catalog.by_category(category) if category else catalog.rules
    return RuleCatalogResponse(
        version=catalog.version,
        total_weight=catalog.total_weight,
        category_weights=catalog.weights_dict(),
        rules=[rule.to_info() for rule in rules],
    )
