from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActorRole(str, Enum):
    client = "client"
    provider = "provider"
    system = "system"


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole

    @property
    def is_system(self) -> bool:
        return self.role == ActorRole.system


SYSTEM_ACTOR = Actor(id="system", role=ActorRole.system)
