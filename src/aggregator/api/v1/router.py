# src/aggregator/api/v1/router.py
from fastapi import APIRouter

from aggregator.api.v1 import countries, products

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(products.router)
api_router.include_router(countries.router)
