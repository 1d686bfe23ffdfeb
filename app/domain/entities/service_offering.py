from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ServiceOffering:
    id: str
    provider_id: str
    name: str
    duration_minutes: int
    price: Decimal
    is_active: bool = True
