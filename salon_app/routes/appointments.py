"""
Appointment Routes
"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..auth import get_access_scope, get_current_principal
from ..database import get_db
from ..domain.access.scope import AccessScope, Principal
from ..models import Appointment
from ..shared.errors import NotFoundError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


class AppointmentResponse(BaseModel):
    id: str
    bookingReference: str
    clientId: str
    clientName: str
    staffId: str
    staffName: str
    date: datetime
    duration: int
    location: str
    price: float
    status: str
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None


def appointment_to_dict(appointment: Appointment) -> dict:
    return {
        "id": appointment.id,
        "bookingReference": appointment.booking_reference,
        "clientId": appointment.client_id,
        "clientName": appointment.client.name if appointment.client else "Unknown",
        "staffId": appointment.staff_id,
        "staffName": appointment.staff.name if appointment.staff else "Unknown",
        "date": appointment.date,
        "duration": appointment.duration,
        "location": appointment.location_id,
        "price": float(appointment.total_price),
        "status": appointment.status,
        "notes": appointment.notes,
        "createdAt": appointment.created_at,
    }


@router.get("")
async def get_appointments(
    locationId: Optional[str] = Query(None),
    staffId: Optional[str] = Query(None),
    clientId: Optional[str] = Query(None),
    day: Optional[date] = Query(None, alias="date"),
    scope: AccessScope = Depends(get_access_scope),
    db: Session = Depends(get_db),
):
    """Appointments at locations the caller can see, oldest first"""
    query = db.query(Appointment).options(
        joinedload(Appointment.client), joinedload(Appointment.staff)
    )

    if locationId:
        query = query.filter(Appointment.location_id == locationId)
    if staffId:
        query = query.filter(Appointment.staff_id == staffId)
    if clientId:
        query = query.filter(Appointment.client_id == clientId)
    if day:
        start = datetime.combine(day, time.min)
        query = query.filter(Appointment.date >= start, Appointment.date < start + timedelta(days=1))

    try:
        appointments = query.order_by(Appointment.date.asc()).all()
    except SQLAlchemyError as e:
        logger.exception("❌ Error fetching appointments")
        raise UpstreamError("Failed to fetch appointments", e) from e

    visible = scope.filter_appointments([appointment_to_dict(a) for a in appointments])
    logger.info(f"📅 Returning {len(visible)}/{len(appointments)} appointments")
    return {"appointments": [AppointmentResponse(**a) for a in visible]}


class AppointmentCreate(BaseModel):
    bookingReference: Optional[str] = None
    clientId: Optional[str] = None
    staffId: Optional[str] = None
    location: Optional[str] = None
    locationId: Optional[str] = None
    date: Optional[datetime] = None
    duration: Optional[int] = None
    price: Optional[Decimal] = None
    totalPrice: Optional[Decimal] = None
    status: Optional[str] = None
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    clientId: Optional[str] = None
    staffId: Optional[str] = None
    location: Optional[str] = None
    locationId: Optional[str] = None
    date: Optional[datetime] = None
    duration: Optional[int] = None
    price: Optional[Decimal] = None
    totalPrice: Optional[Decimal] = None
    status: Optional[str] = None
    notes: Optional[str] = None


def generate_booking_reference() -> str:
    """VH- followed by the last six digits of the current epoch milliseconds"""
    return f"VH-{str(int(datetime.now().timestamp() * 1000))[-6:]}"


def get_visible_appointment(db: Session, appointment_id: str, scope: AccessScope) -> Appointment:
    """Load an appointment, treating one outside the caller's scope as missing"""
    try:
        appointment = (
            db.query(Appointment)
            .options(joinedload(Appointment.client), joinedload(Appointment.staff))
            .filter(Appointment.id == appointment_id)
            .first()
        )
    except SQLAlchemyError as e:
        logger.exception(f"❌ Error fetching appointment {appointment_id}")
        raise UpstreamError("Failed to fetch appointment", e) from e

    if not appointment or not scope.filter_appointments([appointment], key="location_id"):
        raise NotFoundError("Appointment not found")
    return appointment


@router.post("")
async def create_appointment(
    data: AppointmentCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Book an appointment; `location` takes precedence over `locationId`"""
    location_id = data.location or data.locationId
    if not data.clientId or not data.staffId or not location_id or not data.date or not data.duration:
        raise ValidationError(
            "Missing required fields: clientId, staffId, location, date, and duration are required"
        )

    appointment = Appointment(
        booking_reference=data.bookingReference or generate_booking_reference(),
        client_id=data.clientId,
        staff_id=data.staffId,
        location_id=location_id,
        date=data.date,
        duration=data.duration,
        total_price=data.price or data.totalPrice or 0,
        status=data.status or "PENDING",
        notes=data.notes,
    )
    db.add(appointment)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("❌ Error creating appointment")
        raise UpstreamError("Failed to create appointment", e) from e
    db.refresh(appointment)

    logger.info(
        f"📅 Appointment created: {appointment.booking_reference} at {location_id} by {principal.id}"
    )
    return {"success": True, "appointment": AppointmentResponse(**appointment_to_dict(appointment))}


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: str,
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    db: Session = Depends(get_db),
):
    appointment = get_visible_appointment(db, appointment_id, scope)
    return {"appointment": AppointmentResponse(**appointment_to_dict(appointment))}


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    db: Session = Depends(get_db),
):
    """Update the fields present in the body"""
    appointment = get_visible_appointment(db, appointment_id, scope)
    changes = data.model_dump(exclude_unset=True)

    if data.clientId:
        appointment.client_id = data.clientId
    if data.staffId:
        appointment.staff_id = data.staffId
    if data.location or data.locationId:
        appointment.location_id = data.location or data.locationId
    if data.date:
        appointment.date = data.date
    if data.duration:
        appointment.duration = data.duration
    if "price" in changes or "totalPrice" in changes:
        appointment.total_price = data.price or data.totalPrice or 0
    if data.status:
        appointment.status = data.status
    if "notes" in changes:
        appointment.notes = data.notes

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"❌ Error updating appointment {appointment_id}")
        raise UpstreamError("Failed to update appointment", e) from e
    db.refresh(appointment)

    logger.info(f"🔄 Appointment updated: {appointment_id} by {principal.id}")
    return {"success": True, "appointment": AppointmentResponse(**appointment_to_dict(appointment))}


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    db: Session = Depends(get_db),
):
    appointment = get_visible_appointment(db, appointment_id, scope)
    db.delete(appointment)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"❌ Error deleting appointment {appointment_id}")
        raise UpstreamError("Failed to delete appointment", e) from e

    logger.info(f"🗑️ Appointment deleted: {appointment_id} by {principal.id}")
    return {"success": True, "message": "Appointment deleted successfully"}
