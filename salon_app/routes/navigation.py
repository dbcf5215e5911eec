"""
Navigation Routes
Lets the dashboard ask whether the current principal may stay on a page.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..auth import get_optional_principal
from ..domain.access.route_guard import DEFAULT_ALLOWED_ROUTES, resolve_redirect
from ..domain.access.scope import Principal, Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/navigation", tags=["Navigation"])


class RouteCheckRequest(BaseModel):
    path: str
    allowedRoutes: Optional[list[str]] = None
    targetRole: Optional[str] = None
    fallbackRoute: Optional[str] = None


class RouteCheckResponse(BaseModel):
    allowed: bool
    redirectTo: Optional[str] = None


@router.post("/check", response_model=RouteCheckResponse)
async def check_route(
    data: RouteCheckRequest,
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    """Route-guard decision for the caller at `path`"""
    decision = resolve_redirect(
        principal,
        data.path,
        allowed_routes=data.allowedRoutes or DEFAULT_ALLOWED_ROUTES,
        target_role=data.targetRole or Role.SALES,
        fallback_route=data.fallbackRoute,
    )
    return {"allowed": decision.allowed, "redirectTo": decision.redirect_to}
