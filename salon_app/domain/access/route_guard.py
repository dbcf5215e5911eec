"""
Dashboard route guard.

Restricted roles (SALES by default) may only open the POS and inventory
pages; any other dashboard path is answered with a redirect to the first
allowed page. The decision is pure; RouteGuard adds the "evaluate once per
navigation" bookkeeping the dashboard needs.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, Union

from .scope import Principal, Role

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_ROUTES: tuple[str, ...] = ("/dashboard/pos", "/dashboard/inventory")
DEFAULT_FALLBACK_ROUTE = "/dashboard/pos"


@dataclass(frozen=True)
class RouteDecision:
    allowed: bool
    redirect_to: Optional[str] = None


def is_path_allowed(path: str, allowed_routes: Sequence[str]) -> bool:
    """True if path equals an allowed route or sits below one"""
    return any(route and (path == route or path.startswith(f"{route}/")) for route in allowed_routes)


def resolve_redirect(
    principal: Optional[Principal],
    path: str,
    allowed_routes: Sequence[str] = DEFAULT_ALLOWED_ROUTES,
    target_role: Union[Role, str] = Role.SALES,
    fallback_route: Optional[str] = None,
) -> RouteDecision:
    """Decide whether `principal` may stay on `path`"""
    # No decision until the session is known
    if principal is None:
        return RouteDecision(allowed=True)

    target = target_role if isinstance(target_role, Role) else Role.parse(target_role)
    if principal.role is None or principal.role != target:
        return RouteDecision(allowed=True)

    allowed_list = [route for route in allowed_routes if route]
    if is_path_allowed(path, allowed_list):
        logger.debug(f"✅ Access granted for {principal.role.value} role: {path}")
        return RouteDecision(allowed=True)

    redirect_to = fallback_route or (allowed_list[0] if allowed_list else DEFAULT_FALLBACK_ROUTE)
    logger.info(f"🚫 Access denied for {principal.role.value} role: {path}, redirecting to {redirect_to}")
    return RouteDecision(allowed=False, redirect_to=redirect_to)


class RouteGuard:
    """
    Stateful wrapper around resolve_redirect.

    evaluate() only recomputes when the path, principal or allowlist changed
    since the previous call, so a blocked navigation yields exactly one
    redirect. Unchanged inputs return None.
    """

    def __init__(
        self,
        allowed_routes: Sequence[str] = DEFAULT_ALLOWED_ROUTES,
        target_role: Union[Role, str] = Role.SALES,
        fallback_route: Optional[str] = None,
    ):
        self.allowed_routes = tuple(allowed_routes)
        self.target_role = target_role
        self.fallback_route = fallback_route
        self._last_key: Optional[tuple] = None

    def set_allowed_routes(self, allowed_routes: Sequence[str]) -> None:
        self.allowed_routes = tuple(allowed_routes)

    def evaluate(self, principal: Optional[Principal], path: str) -> Optional[str]:
        """Return the redirect target for a changed navigation state, else None"""
        key = (principal, path, self.allowed_routes)
        if key == self._last_key:
            return None
        self._last_key = key

        decision = resolve_redirect(
            principal, path, self.allowed_routes, self.target_role, self.fallback_route
        )
        return decision.redirect_to
