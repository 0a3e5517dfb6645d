# src/aggregator/domain/ports.py
from abc import ABC, abstractmethod

from aggregator.domain.models import CountrySummary, Provider, UnifiedProduct


class ProviderCatalogPort(ABC):
    """
    Abstrakte Schnittstelle für die vier Upstream-Provider.
    Jeder Adapter MUSS dieses Interface implementieren.
    Cache, Scheduler und Query-Engine kennen ausschließlich dieses Interface.
    """

    provider: Provider

    @abstractmethod
    async def fetch_all_products(self) -> list[UnifiedProduct]:
        """
        Lädt den vollständigen Katalog des Providers (intern paginiert)
        und gibt ihn normalisiert zurück.

        Raises:
            ExternalApiError: Bei Kommunikationsproblemen mit der externen API.
        """
        ...

    @abstractmethod
    async def fetch_product_by_id(self, raw_id: str) -> UnifiedProduct:
        """
        Löst ein einzelnes Produkt anhand seiner provider-nativen ID auf,
        inklusive der provider-spezifischen Detailfelder.

        Raises:
            ProductNotFoundError: Wenn das Produkt nicht gefunden wurde.
            ExternalApiError: Bei Kommunikationsproblemen mit der externen API.
        """
        ...


class CountrySourcePort(ABC):
    """Autoritative Länderliste eines Providers (Fallback bei leerem Cache)."""

    @abstractmethod
    async def fetch_countries(self) -> list[CountrySummary]:
        ...


# ---------------------------------------------------------------------------
# Custom Domain Exceptions
# ---------------------------------------------------------------------------


class ProductNotFoundError(Exception):
    def __init__(self, product_id: str, source: str):
        super().__init__(f"Product '{product_id}' not found in source '{source}'")
        self.product_id = product_id
        self.source = source


class ExternalApiError(Exception):
    def __init__(self, source: str, detail: str):
        super().__init__(f"External API error from '{source}': {detail}")
        self.source = source
        self.detail = detail


class CatalogUnavailableError(Exception):
    def __init__(self, providers: list[str]):
        super().__init__(f"No provider could be reached: {', '.join(providers)}")
        self.providers = providers
