from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path

from app.application.ports.service_catalog import ServiceCatalogPort
from app.domain.entities.service_offering import ServiceOffering


class ServiceCatalogStore(ServiceCatalogPort):
    """
    Read-only view of the catalog service's offerings, held in memory.

    The seed file format is:
        {"offerings": [{"id", "provider_id", "name", "duration_minutes", "price", "is_active"}],
         "design_surcharges": [{"offering_id", "design_ref", "price"}]}
    """

    def __init__(
        self,
        offerings: dict[str, ServiceOffering] | None = None,
        surcharges: dict[tuple[str, str], Decimal] | None = None,
    ) -> None:
        self._offerings = dict(offerings or {})
        self._surcharges = dict(surcharges or {})
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_file(cls, path: str | Path) -> "ServiceCatalogStore":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        store = cls()
        for raw in data.get("offerings", []):
            store.add_offering(
                ServiceOffering(
                    id=str(raw["id"]),
                    provider_id=str(raw["provider_id"]),
                    name=raw.get("name", ""),
                    duration_minutes=int(raw.get("duration_minutes") or 0),
                    price=Decimal(str(raw.get("price", "0"))),
                    is_active=bool(raw.get("is_active", True)),
                )
            )
        for raw in data.get("design_surcharges", []):
            store.add_design_surcharge(str(raw["offering_id"]), str(raw["design_ref"]), Decimal(str(raw["price"])))
        store._logger.info("Catalog loaded", extra={"reason": f"{len(store._offerings)} offerings from {path}"})
        return store

    def add_offering(self, offering: ServiceOffering) -> None:
        self._offerings[offering.id] = offering

    def add_design_surcharge(self, offering_id: str, design_ref: str, price: Decimal) -> None:
        self._surcharges[(offering_id, design_ref)] = price

    def get_offering(self, offering_id: str) -> ServiceOffering | None:
        return self._offerings.get(offering_id)

    def get_design_surcharge(self, offering_id: str, design_ref: str) -> Decimal | None:
        return self._surcharges.get((offering_id, design_ref))
