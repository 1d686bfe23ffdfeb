from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from app.domain.entities.service_offering import ServiceOffering


class ServiceCatalogPort(ABC):
    @abstractmethod
    def get_offering(self, offering_id: str) -> ServiceOffering | None:
        """Get service offering by id."""
        raise NotImplementedError

    @abstractmethod
    def get_design_surcharge(self, offering_id: str, design_ref: str) -> Decimal | None:
        """Extra price for doing `design_ref` as part of the offering, None if not priced."""
        raise NotImplementedError
