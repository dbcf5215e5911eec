"""
Transaction Routes
"""

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_principal
from ..database import get_db
from ..domain.access.scope import Principal
from ..models import Transaction
from ..shared.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


class TransactionCreate(BaseModel):
    userId: Optional[str] = None
    amount: Optional[Decimal] = None
    type: Optional[str] = None
    status: Optional[str] = None
    method: Optional[str] = None
    reference: Optional[str] = None
    description: Optional[str] = None
    locationId: Optional[str] = None
    appointmentId: Optional[str] = None
    items: Optional[list[dict[str, Any]]] = None


class TransactionResponse(BaseModel):
    id: str
    userId: str
    amount: float
    type: str
    status: str
    method: str
    reference: Optional[str] = None
    description: Optional[str] = None
    locationId: Optional[str] = None
    appointmentId: Optional[str] = None
    items: Optional[list[dict[str, Any]]] = None
    createdAt: Optional[datetime] = None


def transaction_to_dict(transaction: Transaction) -> dict:
    items = None
    if transaction.items:
        try:
            items = json.loads(transaction.items)
        except ValueError:
            logger.warning(f"⚠️ Invalid JSON in items for transaction {transaction.id}")

    return {
        "id": transaction.id,
        "userId": transaction.user_id,
        "amount": float(transaction.amount),
        "type": transaction.type,
        "status": transaction.status,
        "method": transaction.method,
        "reference": transaction.reference,
        "description": transaction.description,
        "locationId": transaction.location_id,
        "appointmentId": transaction.appointment_id,
        "items": items,
        "createdAt": transaction.created_at,
    }


@router.get("")
async def get_transactions(
    locationId: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Transactions, newest first"""
    query = db.query(Transaction)
    if locationId:
        query = query.filter(Transaction.location_id == locationId)
    if userId:
        query = query.filter(Transaction.user_id == userId)

    try:
        transactions = query.order_by(Transaction.created_at.desc()).all()
    except SQLAlchemyError as e:
        logger.exception("❌ Error fetching transactions")
        raise UpstreamError("Failed to fetch transactions", e) from e

    logger.info(f"✅ Found {len(transactions)} transactions")
    return {"transactions": [TransactionResponse(**transaction_to_dict(t)) for t in transactions]}


@router.post("")
async def create_transaction(
    data: TransactionCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Record a transaction"""
    if not data.userId or not data.amount or not data.type or not data.status or not data.method:
        raise ValidationError(
            "Missing required fields: userId, amount, type, status, and method are required"
        )

    transaction = Transaction(
        user_id=data.userId,
        amount=data.amount,
        type=data.type,
        status=data.status,
        method=data.method,
        reference=data.reference,
        description=data.description,
        location_id=data.locationId,
        appointment_id=data.appointmentId,
        items=json.dumps(data.items) if data.items else None,
    )
    db.add(transaction)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("❌ Error creating transaction")
        raise UpstreamError("Failed to create transaction", e) from e
    db.refresh(transaction)

    logger.info(f"💾 Transaction created: {transaction.id} ({transaction.status}) by {principal.id}")
    return {"success": True, "transaction": TransactionResponse(**transaction_to_dict(transaction))}
