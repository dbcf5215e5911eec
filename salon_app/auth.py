import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .domain.access.scope import AccessScope, Principal, Role
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

# auto_error=False so public list endpoints can fall back to anonymous reads
security = HTTPBearer(auto_error=False)


def decode_principal(token: str) -> Optional[Principal]:
    """Turn a session token into a Principal, or None if it does not verify"""
    token_parts = token.split(".")
    if len(token_parts) != 3:
        logger.warning(
            f"⚠️ Malformed token received: {len(token_parts)} parts, token length: {len(token)}"
        )
        return None

    claims = verify_jwt_token(token)
    if not claims:
        return None

    principal = Principal.from_claims(claims)
    if not principal.id:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        return None
    return principal


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Principal]:
    """Current principal, or None for anonymous requests"""
    if not credentials:
        return None

    principal = decode_principal(credentials.credentials)
    if principal is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session token")

    logger.debug(f"✅ Principal authenticated: {principal.id} ({principal.role})")
    return principal


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """Current principal; 401 when the request is anonymous"""
    if principal is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )
    return principal


async def get_access_scope(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> AccessScope:
    return AccessScope(principal)


def require_roles(*roles: Role):
    """Dependency factory that only admits principals holding one of `roles`"""

    async def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            logger.warning(
                f"⚠️ Principal {principal.id} with role {principal.role} denied, requires {[r.value for r in roles]}"
            )
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return principal

    return _dep
