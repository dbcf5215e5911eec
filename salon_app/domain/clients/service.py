"""Client service - Business logic for client operations"""

import json
import logging
from datetime import datetime, time
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import DEFAULT_CLIENT_PASSWORD, DEFAULT_CURRENCY
from ...models import Client
from ...security_utils import hash_password_bcrypt
from ...shared.errors import DuplicateError, NotFoundError, UpstreamError, ValidationError
from ...shared.validators import (
    DEFAULT_PREFERENCES,
    generate_initials,
    normalize_name,
    normalize_phone,
    parse_preferences,
    validate_email,
)
from .repository import ClientRepository
from .schemas import ClientCreate

logger = logging.getLogger(__name__)

NEW_CLIENT_DAYS = 30
AT_RISK_INACTIVE_DAYS = 90
VIP_TIERS = {"Gold", "Platinum"}


def calculate_segment(client: Client, now: Optional[datetime] = None) -> str:
    """
    Classify a client as New, VIP, At Risk or Regular.

    New clients (under 30 days) are never VIP; a VIP tier wins over
    inactivity.
    """
    now = now or datetime.utcnow()

    if client.created_at and (now - client.created_at).days < NEW_CLIENT_DAYS:
        return "New"

    loyalty = client.loyalty_program
    if loyalty and loyalty.tier in VIP_TIERS:
        return "VIP"

    if loyalty and loyalty.last_activity:
        if (now - loyalty.last_activity).days > AT_RISK_INACTIVE_DAYS:
            return "At Risk"

    return "Regular"


def client_summary(client: Client) -> dict[str, Any]:
    """Identity fields returned with a duplicate match"""
    return {
        "id": client.id,
        "userId": client.user_id,
        "name": client.name,
        "phone": client.phone,
        "email": client.user.email if client.user else None,
    }


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    # ------------------------------------------------------------------
    # Duplicate detection
    # ------------------------------------------------------------------

    def _load_all_clients(self) -> list[Client]:
        try:
            return self.repo.get_all_clients_with_user(self.db)
        except SQLAlchemyError as e:
            logger.exception("❌ Failed to load clients for duplicate check")
            raise UpstreamError("Failed to check for duplicates", e) from e

    @staticmethod
    def _scan(
        clients: list[Client], normalized_name: str, normalized_phone: str
    ) -> tuple[Optional[Client], Optional[Client]]:
        """First client matching the phone, first client matching the name"""
        phone_match = None
        if normalized_phone:
            phone_match = next(
                (c for c in clients if normalize_phone(c.phone) == normalized_phone), None
            )

        name_match = None
        if normalized_name:
            name_match = next(
                (c for c in clients if normalize_name(c.name) == normalized_name), None
            )

        return phone_match, name_match

    def find_duplicates(
        self, name: Optional[str] = None, phone: Optional[str] = None
    ) -> list[dict[str, Any]]:
        """
        Look for existing clients with the same phone number or name.

        Phone matches are reported first. A name match is dropped when that
        client already matched (or shares) the candidate phone, so a client
        matching on both is reported once, as "phone".
        """
        if not name and not phone:
            raise ValidationError("Name or phone is required")

        normalized_phone = normalize_phone(phone)
        normalized_name = normalize_name(name)

        clients = self._load_all_clients()
        phone_match, name_match = self._scan(clients, normalized_name, normalized_phone)

        duplicates = []
        if phone_match:
            duplicates.append({"type": "phone", "client": client_summary(phone_match)})

        if name_match and (
            not normalized_phone or normalize_phone(name_match.phone) != normalized_phone
        ):
            duplicates.append({"type": "name", "client": client_summary(name_match)})

        logger.info(
            f"🔍 Duplicate check (name={bool(name)}, phone={bool(phone)}) found {len(duplicates)} match(es)"
        )
        return duplicates

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_client(self, data: ClientCreate) -> dict[str, Any]:
        """Create a client with its account and loyalty record, rejecting duplicates"""
        if not data.name or not data.name.strip() or not data.phone:
            raise ValidationError("Name and phone are required")

        if data.email:
            try:
                validate_email(data.email)
            except ValueError as e:
                raise ValidationError(str(e)) from e

        normalized_phone = normalize_phone(data.phone)
        normalized_name = normalize_name(data.name)

        clients = self._load_all_clients()
        phone_match, name_match = self._scan(clients, normalized_name, normalized_phone)

        if phone_match or name_match:
            duplicate_type = "phone" if phone_match else "name"
            existing = phone_match or name_match
            if duplicate_type == "phone":
                message = f"A client with phone number {data.phone} already exists."
            else:
                message = f'A client with the name "{data.name}" already exists.'

            logger.warning(f"⚠️ Duplicate client rejected ({duplicate_type}): existing {existing.id}")
            raise DuplicateError(duplicate_type, client_summary(existing), message)

        user_data = {
            "email": data.email or f"{normalized_phone}@temp.local",
            "password": hash_password_bcrypt(DEFAULT_CLIENT_PASSWORD),
            "role": "CLIENT",
            "is_active": True,
        }
        client_data = {
            "name": data.name.strip(),
            "phone": data.phone,
            "email": data.email or None,
            "address": data.address or None,
            "city": data.city or None,
            "state": data.state or None,
            "zip_code": data.zip or None,
            "date_of_birth": datetime.combine(data.birthday, time.min) if data.birthday else None,
            "preferences": json.dumps(data.preferences) if data.preferences else None,
            "notes": data.notes or None,
            "preferred_location_id": data.preferredLocation or None,
            "registration_source": data.registrationSource or "manual",
            "is_auto_registered": bool(data.isAutoRegistered),
        }
        loyalty_data = {
            "points": 0,
            "tier": "Bronze",
            "total_spent": 0,
            "is_active": True,
        }

        try:
            client = self.repo.create_client_with_account(
                self.db, user_data, client_data, loyalty_data
            )
        except SQLAlchemyError as e:
            logger.exception(f"❌ Failed to create client {data.name!r}")
            raise UpstreamError("Failed to create client", e) from e

        logger.info(f"✅ Client created: {client.id} (account {client.user_id})")

        view = self._to_view(client, total_spent=0.0, segment="New")
        view.update(
            {
                "address": data.address or "",
                "city": data.city or "",
                "state": data.state or "",
                "preferredLocation": data.preferredLocation or "",
                "locations": data.locations or [],
                "referredBy": data.referredBy or "",
                "preferences": data.preferences or dict(DEFAULT_PREFERENCES),
                "currency": data.currency or DEFAULT_CURRENCY,
            }
        )
        return view

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_clients(self, location_id: Optional[str] = None) -> list[dict[str, Any]]:
        """Dashboard client list with segment and lifetime spend"""
        try:
            clients = self.repo.get_clients(self.db, location_id)
            totals = self.repo.get_completed_totals(
                self.db, [c.user_id for c in clients if c.user_id]
            )
        except SQLAlchemyError as e:
            logger.exception("❌ Failed to fetch clients")
            raise UpstreamError("Failed to fetch clients", e) from e

        logger.info(f"📊 Calculated total spent for {len(totals)} clients")

        now = datetime.utcnow()
        return [
            self._to_view(
                client,
                total_spent=totals.get(client.user_id, 0.0),
                segment=calculate_segment(client, now),
            )
            for client in clients
        ]

    def get_client(self, client_id: str) -> dict[str, Any]:
        try:
            client = self.repo.get_client_by_id(self.db, client_id)
        except SQLAlchemyError as e:
            logger.exception(f"❌ Failed to fetch client {client_id}")
            raise UpstreamError("Failed to fetch client", e) from e

        if not client:
            raise NotFoundError("Client not found")

        loyalty = client.loyalty_program
        total_spent = float(loyalty.total_spent) if loyalty and loyalty.total_spent else 0.0
        return self._to_view(client, total_spent=total_spent, segment=calculate_segment(client))

    @staticmethod
    def _to_view(client: Client, total_spent: float, segment: str) -> dict[str, Any]:
        """Shape a client row the way the dashboard expects it"""
        preferred_location = client.preferred_location_id or ""
        return {
            "id": client.id,
            "userId": client.user_id,
            "name": client.name,
            "email": client.email or (client.user.email if client.user else "") or "",
            "phone": client.phone or "",
            "address": client.address or "",
            "city": client.city or "",
            "state": client.state or "",
            "zip": client.zip_code or "",
            "birthday": client.date_of_birth.date().isoformat() if client.date_of_birth else "",
            "preferredLocation": preferred_location,
            "locations": [preferred_location] if preferred_location else [],
            "status": "Active",
            "avatar": generate_initials(client.name),
            "segment": segment,
            "totalSpent": total_spent,
            "referredBy": "",
            "preferences": parse_preferences(client.preferences, f"{client.name} ({client.id})"),
            "notes": client.notes or "",
            "registrationSource": client.registration_source or "manual",
            "isAutoRegistered": bool(client.is_auto_registered),
            "createdAt": client.created_at.isoformat() if client.created_at else None,
            "updatedAt": client.updated_at.isoformat() if client.updated_at else None,
        }
