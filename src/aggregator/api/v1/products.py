# src/aggregator/api/v1/products.py
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from aggregator.api.dependencies import get_catalog_service
from aggregator.core.config import get_settings
from aggregator.core.rate_limit import limiter
from aggregator.core.security import require_api_key
from aggregator.domain.models import ProductFilters, ProductPage, Provider, UnifiedProduct
from aggregator.domain.ports import CatalogUnavailableError
from aggregator.services.catalog_service import CatalogService

router = APIRouter(
    prefix="/products", tags=["Products"], dependencies=[Depends(require_api_key)]
)

CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]

_RATE_LIMIT = get_settings().rate_limit


@router.get("", response_model=ProductPage)
@limiter.limit(_RATE_LIMIT)
async def list_products(
    request: Request,
    service: CatalogServiceDep,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    country: str | None = None,
    category: str | None = None,
    search: str | None = None,
    provider: str | None = None,
) -> ProductPage:
    """
    Vereinheitlichte Produktliste über alle Provider.
    Ohne `limit` wird die komplette gefilterte Liste als eine Seite geliefert.
    """
    provider_enum: Provider | None = None
    if provider:
        try:
            provider_enum = Provider(provider.lower())
        except ValueError:
            available = ", ".join([p.value for p in Provider])
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid provider '{provider}'. Available: {available}",
            )

    filters = ProductFilters(
        page=page,
        limit=limit,
        country=country,
        category=category,
        search=search,
        provider=provider_enum,
    )
    try:
        return await service.list_products(filters)
    except CatalogUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/{product_id}", response_model=UnifiedProduct)
@limiter.limit(_RATE_LIMIT)
async def get_product(
    request: Request,
    service: CatalogServiceDep,
    product_id: str,
) -> UnifiedProduct:
    """Detailansicht eines Produkts inklusive provider-spezifischer Felder."""
    product = await service.get_product_by_id(product_id)
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product '{product_id}' not found",
        )
    return product
