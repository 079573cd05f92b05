"""Request dependencies: the session user and the acting role per scope.

Authentication happens upstream; the gateway forwards the authenticated
user in ``X-User-Id``, ``X-User-Email`` and ``X-User-Role`` headers.
"""

from fastapi import Depends, Header, HTTPException

from ordering.access.authorization import Actor
from ordering.access.profile import Role
from ordering.access.roles import RoleResolver, SessionUser
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.transitions import ActorRole
from ordering.settings import get_settings


async def get_session_user(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> SessionUser:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return SessionUser(user_id=x_user_id, email=x_user_email, role_hint=x_user_role)


async def get_role_resolver() -> RoleResolver:
    return RoleResolver(get_settings().admin_emails)


async def get_lifecycle() -> OrderLifecycle:
    return OrderLifecycle(get_settings())


async def farm_actor(
    user: SessionUser = Depends(get_session_user),
    resolver: RoleResolver = Depends(get_role_resolver),
) -> Actor:
    """Farm scope requires the farm role; ownership is checked per order."""
    if resolver.resolve_and_sync(user) != Role.FARM:
        raise HTTPException(status_code=403, detail="Farm access required")
    return Actor(user_id=user.user_id, role=ActorRole.FARM)


async def admin_actor(
    user: SessionUser = Depends(get_session_user),
    resolver: RoleResolver = Depends(get_role_resolver),
) -> Actor:
    if resolver.resolve_and_sync(user) != Role.ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")
    return Actor(user_id=user.user_id, role=ActorRole.ADMIN)
