"""
Location Routes
Physical locations plus the virtual online-store and home-service locations,
filtered by the caller's access scope.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_access_scope, require_roles
from ..database import get_db
from ..domain.access.scope import VIRTUAL_LOCATION_NAMES, AccessScope, Principal, Role
from ..models import Location
from ..shared.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locations", tags=["Locations"])


class LocationCreate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class LocationResponse(BaseModel):
    id: str
    name: str
    address: str = ""
    city: str = ""
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    isActive: bool = True
    isVirtual: bool = False
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


def location_to_dict(location: Location) -> dict:
    return {
        "id": location.id,
        "name": location.name,
        "address": location.address,
        "city": location.city,
        "state": location.state,
        "zipCode": location.zip_code,
        "country": location.country,
        "phone": location.phone,
        "email": location.email,
        "isActive": location.is_active,
        "isVirtual": False,
        "createdAt": location.created_at,
        "updatedAt": location.updated_at,
    }


def virtual_locations() -> list[dict]:
    return [
        {"id": tag.value, "name": name, "isVirtual": True}
        for tag, name in VIRTUAL_LOCATION_NAMES.items()
    ]


@router.get("")
async def get_locations(
    scope: AccessScope = Depends(get_access_scope),
    db: Session = Depends(get_db),
):
    """Active locations visible to the caller"""
    try:
        locations = (
            db.query(Location).filter(Location.is_active.is_(True)).order_by(Location.name.asc()).all()
        )
    except SQLAlchemyError as e:
        logger.exception("❌ Error fetching locations")
        raise UpstreamError("Failed to fetch locations", e) from e

    logger.info(f"📊 Found {len(locations)} active locations in database")

    all_locations = [location_to_dict(loc) for loc in locations] + virtual_locations()
    visible = scope.filter_locations(all_locations)

    if scope.is_authenticated:
        logger.info(
            f"🔒 Filtered locations by user access: {len(visible)}/{len(all_locations)} visible to {scope.principal.id}"
        )

    return {"locations": [LocationResponse(**loc) for loc in visible]}


@router.post("", status_code=201)
async def create_location(
    data: LocationCreate,
    principal: Principal = Depends(require_roles(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    """Create a physical location"""
    if not data.name or not data.address or not data.city:
        raise ValidationError("Missing required fields: name, address, and city are required")

    location = Location(
        name=data.name,
        address=data.address,
        city=data.city,
        state=data.state or "",
        zip_code=data.zipCode or "",
        country=data.country or "Qatar",
        phone=data.phone or "",
        email=data.email or "",
    )
    db.add(location)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("❌ Error creating location")
        raise UpstreamError("Failed to create location", e) from e
    db.refresh(location)

    logger.info(f"✅ Location created: {location.name} by {principal.id}")
    return {"location": LocationResponse(**location_to_dict(location))}
