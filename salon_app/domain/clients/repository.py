"""Client repository - Database operations for clients"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Client, LoyaltyProgram, Transaction, User

logger = logging.getLogger(__name__)


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_all_clients_with_user(db: Session) -> list[Client]:
        """Every client with its owning account, in natural fetch order"""
        return db.query(Client).options(joinedload(Client.user)).all()

    @staticmethod
    def get_clients(db: Session, location_id: Optional[str] = None) -> list[Client]:
        """Clients for the dashboard list, optionally by preferred location"""
        query = db.query(Client).options(
            joinedload(Client.user),
            joinedload(Client.preferred_location),
            joinedload(Client.loyalty_program),
        )

        if location_id:
            query = query.filter(Client.preferred_location_id == location_id)

        return query.order_by(Client.name.asc()).all()

    @staticmethod
    def get_client_by_id(db: Session, client_id: str) -> Optional[Client]:
        return (
            db.query(Client)
            .options(joinedload(Client.user), joinedload(Client.loyalty_program))
            .filter(Client.id == client_id)
            .first()
        )

    @staticmethod
    def get_completed_totals(db: Session, user_ids: list[str]) -> dict[str, float]:
        """Sum of COMPLETED transaction amounts per owning account"""
        if not user_ids:
            return {}

        rows = (
            db.query(Transaction.user_id, func.sum(Transaction.amount))
            .filter(Transaction.user_id.in_(user_ids), Transaction.status == "COMPLETED")
            .group_by(Transaction.user_id)
            .all()
        )
        return {user_id: float(total or 0) for user_id, total in rows}

    @staticmethod
    def create_client_with_account(
        db: Session, user_data: dict, client_data: dict, loyalty_data: dict
    ) -> Client:
        """
        Create the account, client profile and loyalty record together.

        All three rows are committed in a single transaction; any failure
        rolls back every one of them.
        """
        try:
            user = User(**user_data)
            db.add(user)
            db.flush()

            client = Client(user_id=user.id, **client_data)
            db.add(client)
            db.flush()

            db.add(LoyaltyProgram(client_id=client.id, **loyalty_data))
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(client)
        return client
