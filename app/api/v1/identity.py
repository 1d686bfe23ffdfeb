from __future__ import annotations

import re

from fastapi import Header, HTTPException

from app.domain.entities.actor import Actor, ActorRole

# Ids double as file and folder names in the JSON stores.
ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.@:-]{0,127}$"


def get_actor(
    x_actor_id: str | None = Header(None),
    x_actor_role: str | None = Header(None),
) -> Actor:
    """Actor as forwarded by the auth collaborator; this service never authenticates."""
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="Missing actor headers")
    actor_id = x_actor_id.strip()
    if not re.match(ID_PATTERN, actor_id):
        raise HTTPException(status_code=401, detail="Malformed actor id")
    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown actor role: {x_actor_role}")
    return Actor(id=actor_id, role=role)
