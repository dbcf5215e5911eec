"""
Staff Routes
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..auth import get_access_scope, get_current_principal, require_roles
from ..database import get_db
from ..domain.access.scope import AccessScope, Principal, Role
from ..models import Appointment, StaffLocation, StaffMember, User
from ..security_utils import generate_temporary_password, hash_password_bcrypt
from ..shared.errors import NotFoundError, UpstreamError, ValidationError
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["Staff"])

JOB_ROLE_TO_ROLE = {
    "super_admin": Role.ADMIN,
    "org_admin": Role.ADMIN,
    "location_manager": Role.MANAGER,
    "manager": Role.MANAGER,
    "stylist": Role.STAFF,
    "colorist": Role.STAFF,
    "barber": Role.STAFF,
    "nail_technician": Role.STAFF,
    "esthetician": Role.STAFF,
    "receptionist": Role.STAFF,
    "staff": Role.STAFF,
    "client": Role.CLIENT,
}


def map_job_role_to_role(job_role: Optional[str]) -> Role:
    """Account role for a staff job title; anything sales-related is SALES"""
    normalized = (job_role or "").strip().lower()
    if "sales" in normalized:
        return Role.SALES
    return JOB_ROLE_TO_ROLE.get(normalized, Role.STAFF)


class StaffCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    jobRole: Optional[str] = None
    color: Optional[str] = None
    homeService: bool = False
    employeeNumber: Optional[str] = None
    locations: list[str] = []


class StaffResponse(BaseModel):
    id: str
    userId: str
    name: str
    email: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    color: Optional[str] = None
    jobRole: Optional[str] = None
    homeService: bool
    status: str
    employeeNumber: Optional[str] = None
    locations: list[str]


def staff_to_dict(member: StaffMember) -> dict:
    return {
        "id": member.id,
        "userId": member.user_id,
        "name": member.name,
        "email": member.user.email if member.user else None,
        "role": member.user.role if member.user else None,
        "phone": member.phone,
        "color": member.color,
        "jobRole": member.job_role,
        "homeService": member.home_service,
        "status": member.status,
        "employeeNumber": member.employee_number,
        "locations": [sl.location_id for sl in member.locations if sl.is_active],
    }


@router.get("")
async def get_staff(
    scope: AccessScope = Depends(get_access_scope),
    db: Session = Depends(get_db),
):
    """Staff members assigned to locations the caller can see"""
    try:
        members = (
            db.query(StaffMember)
            .options(joinedload(StaffMember.user), joinedload(StaffMember.locations))
            .order_by(StaffMember.name.asc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("❌ Error fetching staff")
        raise UpstreamError("Failed to fetch staff", e) from e

    visible = scope.filter_staff([staff_to_dict(m) for m in members])
    logger.info(f"👥 Returning {len(visible)}/{len(members)} staff members")
    return {"staff": [StaffResponse(**m) for m in visible]}


@router.post("", status_code=201)
async def create_staff(
    data: StaffCreate,
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    db: Session = Depends(get_db),
):
    """
    Create a staff member with a login account and location assignments.

    The account gets a temporary password which is returned once in the
    response.
    """
    if not data.name or not data.email:
        raise ValidationError("Name and email are required")

    try:
        email = validate_email(data.email)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    temporary_password = generate_temporary_password()
    role = map_job_role_to_role(data.jobRole)

    try:
        user = User(
            email=email,
            password=hash_password_bcrypt(temporary_password),
            role=role.value,
            is_active=True,
        )
        db.add(user)
        db.flush()

        member = StaffMember(
            user_id=user.id,
            name=data.name.strip(),
            phone=data.phone,
            color=data.color,
            job_role=data.jobRole,
            home_service=data.homeService,
            employee_number=data.employeeNumber,
        )
        db.add(member)
        db.flush()

        for location_id in dict.fromkeys(data.locations):
            db.add(StaffLocation(staff_id=member.id, location_id=location_id))

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"❌ Error creating staff member {data.name!r}")
        raise UpstreamError("Failed to create staff member", e) from e

    db.refresh(member)
    logger.info(f"✅ Staff member created: {member.id} ({role.value}) by {principal.id}")
    return {
        "staff": StaffResponse(**staff_to_dict(member)),
        "temporaryPassword": temporary_password,
    }


class StaffUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    jobRole: Optional[str] = None
    color: Optional[str] = None
    homeService: Optional[bool] = None
    employeeNumber: Optional[str] = None
    status: Optional[str] = None  # Active, Inactive, On Leave
    locations: Optional[list[str]] = None


STATUS_TO_STAFF_STATUS = {"active": "ACTIVE", "inactive": "INACTIVE"}


def get_staff_member(db: Session, staff_id: str) -> StaffMember:
    try:
        member = (
            db.query(StaffMember)
            .options(joinedload(StaffMember.user), joinedload(StaffMember.locations))
            .filter(StaffMember.id == staff_id)
            .first()
        )
    except SQLAlchemyError as e:
        logger.exception(f"❌ Error fetching staff member {staff_id}")
        raise UpstreamError("Failed to fetch staff member", e) from e

    if not member:
        raise NotFoundError("Staff member not found")
    return member


@router.get("/{staff_id}")
async def get_staff_by_id(
    staff_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    member = get_staff_member(db, staff_id)
    return {"staff": StaffResponse(**staff_to_dict(member))}


@router.put("/{staff_id}")
async def update_staff(
    staff_id: str,
    data: StaffUpdate,
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    db: Session = Depends(get_db),
):
    """
    Update a staff member and their account.

    Only fields present in the body change. A `locations` list replaces the
    current assignments; `status` other than Active/Inactive means on leave
    and deactivates the account like Inactive does.
    """
    member = get_staff_member(db, staff_id)
    user = member.user

    if data.name is not None and not data.name.strip():
        raise ValidationError("Name cannot be empty")

    if data.email:
        try:
            user.email = validate_email(data.email)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    if data.name:
        member.name = data.name.strip()
    if data.jobRole is not None:
        member.job_role = data.jobRole
        user.role = map_job_role_to_role(data.jobRole).value
    if data.status is not None:
        member.status = STATUS_TO_STAFF_STATUS.get(data.status.strip().lower(), "ON_LEAVE")
        user.is_active = member.status == "ACTIVE"

    for field, column in (
        ("phone", "phone"),
        ("color", "color"),
        ("homeService", "home_service"),
        ("employeeNumber", "employee_number"),
    ):
        value = getattr(data, field)
        if value is not None:
            setattr(member, column, value)

    try:
        if data.locations is not None:
            member.locations.clear()
            db.flush()
            for location_id in dict.fromkeys(data.locations):
                member.locations.append(StaffLocation(location_id=location_id))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"❌ Error updating staff member {staff_id}")
        raise UpstreamError("Failed to update staff member", e) from e

    db.refresh(member)
    logger.info(f"🔄 Staff member updated: {member.id} by {principal.id}")
    return {"staff": StaffResponse(**staff_to_dict(member))}


@router.delete("/{staff_id}")
async def delete_staff(
    staff_id: str,
    principal: Principal = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    db: Session = Depends(get_db),
):
    """Delete a staff member, their location rows and their account"""
    member = get_staff_member(db, staff_id)

    appointment_count = db.query(Appointment).filter(Appointment.staff_id == staff_id).count()
    if appointment_count > 0:
        raise ValidationError(
            f"Cannot delete staff member with {appointment_count} appointments. "
            "Please reassign or cancel the appointments first."
        )

    user = member.user
    name = member.name
    try:
        db.delete(member)
        if user:
            db.delete(user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"❌ Error deleting staff member {staff_id}")
        raise UpstreamError("Failed to delete staff member", e) from e

    logger.info(f"🗑️ Staff member deleted: {name} by {principal.id}")
    return {"success": True}
