"""
API dependencies

Identity is resolved upstream (gateway/session layer) and forwarded as
X-User-Id / X-User-Role headers; this module only turns them into an Actor.
"""
from typing import Optional

from fastapi import Header, HTTPException, status

from filmflow.core.permissions import Actor, Role
from filmflow.store import Store, get_store


def get_store_dep() -> Store:
    """Process-wide store (overridable in tests)."""
    return get_store()


async def get_current_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Actor:
    """Get current authenticated actor"""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user id"
        )

    role = x_user_role.strip().lower()
    if role not in Role.ALL:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown role"
        )

    return Actor(user_id=user_id, role=role, full_name=x_user_name)
