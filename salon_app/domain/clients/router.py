"""Client router - FastAPI endpoints for client operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_principal
from ...database import get_db
from ...domain.access.scope import Principal
from .schemas import (
    ClientCreate,
    ClientCreateResponse,
    ClientDetailResponse,
    ClientListResponse,
    DuplicateCheckRequest,
    DuplicateCheckResponse,
)
from .service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])


def get_client_service(db: Session = Depends(get_db)) -> ClientService:
    """Dependency injection for ClientService"""
    return ClientService(db)


@router.get("", response_model=ClientListResponse)
async def get_clients(
    locationId: Optional[str] = Query(None, description="Filter by preferred location"),
    principal: Principal = Depends(get_current_principal),
    service: ClientService = Depends(get_client_service),
):
    """Get all clients with derived segment, avatar and lifetime spend"""
    return {"clients": service.get_clients(locationId)}


@router.post("/duplicate-check", response_model=DuplicateCheckResponse)
async def check_duplicate(
    data: DuplicateCheckRequest,
    principal: Principal = Depends(get_current_principal),
    service: ClientService = Depends(get_client_service),
):
    """Report existing clients sharing the candidate's phone number or name"""
    duplicates = service.find_duplicates(data.name, data.phone)
    return {"hasDuplicates": len(duplicates) > 0, "duplicates": duplicates}


@router.post("", response_model=ClientCreateResponse)
async def create_client(
    data: ClientCreate,
    principal: Principal = Depends(get_current_principal),
    service: ClientService = Depends(get_client_service),
):
    """Create a new client (409 when the phone or name is already registered)"""
    logger.info(f"📥 Creating client, requested by {principal.id}")
    client = service.create_client(data)
    return {"client": client, "message": "Client created successfully"}


@router.get("/{client_id}", response_model=ClientDetailResponse)
async def get_client(
    client_id: str,
    principal: Principal = Depends(get_current_principal),
    service: ClientService = Depends(get_client_service),
):
    """Get a specific client"""
    return {"client": service.get_client(client_id)}
