# src/aggregator/api/v1/countries.py
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from aggregator.api.dependencies import get_catalog_service
from aggregator.core.config import get_settings
from aggregator.core.rate_limit import limiter
from aggregator.core.security import require_api_key
from aggregator.domain.models import CountrySummary
from aggregator.services.catalog_service import CatalogService

router = APIRouter(
    prefix="/countries", tags=["Countries"], dependencies=[Depends(require_api_key)]
)

CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]


@router.get("", response_model=list[CountrySummary])
@limiter.limit(get_settings().rate_limit)
async def list_countries(request: Request, service: CatalogServiceDep) -> list[CountrySummary]:
    """Länder aus dem Produkt-Cache mit Produktanzahl."""
    return await service.get_unified_countries()


@router.get("/{iso}", response_model=CountrySummary)
@limiter.limit(get_settings().rate_limit)
async def get_country(request: Request, service: CatalogServiceDep, iso: str) -> CountrySummary:
    country = await service.get_country(iso)
    if country is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Country '{iso.upper()}' not found",
        )
    return country
