import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a string primary key"""
    return str(uuid.uuid4())


class User(Base):
    """Login account. Clients and staff members each own one."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash
    role = Column(String(20), nullable=False, default="CLIENT")  # ADMIN, MANAGER, STAFF, SALES, CLIENT
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client_profile = relationship("Client", back_populates="user", uselist=False)
    staff_profile = relationship("StaffMember", back_populates="user", uselist=False)
    transactions = relationship("Transaction", back_populates="user")


class Location(Base):
    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=False, default="Qatar")
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    name = Column(String(255), nullable=False)
    # No unique constraint: duplicates are rejected by ClientService before insert
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    date_of_birth = Column(DateTime, nullable=True)
    preferences = Column(Text, nullable=True)  # JSON-serialized preference document
    notes = Column(Text, nullable=True)
    preferred_location_id = Column(String(36), ForeignKey("locations.id"), nullable=True)
    registration_source = Column(String(50), nullable=True)  # manual, client_portal, pos, ...
    is_auto_registered = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="client_profile")
    preferred_location = relationship("Location")
    loyalty_program = relationship(
        "LoyaltyProgram", back_populates="client", uselist=False, cascade="all, delete-orphan"
    )
    appointments = relationship("Appointment", back_populates="client")


class LoyaltyProgram(Base):
    __tablename__ = "loyalty_programs"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(36), ForeignKey("clients.id"), unique=True, nullable=False)
    points = Column(Integer, default=0, nullable=False)
    tier = Column(String(20), default="Bronze", nullable=False)  # Bronze, Silver, Gold, Platinum
    total_spent = Column(Numeric(12, 2), default=0, nullable=False)
    join_date = Column(DateTime, server_default=func.now())
    last_activity = Column(DateTime, server_default=func.now())
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="loyalty_program")


class StaffMember(Base):
    __tablename__ = "staff_members"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    color = Column(String(20), nullable=True)
    job_role = Column(String(100), nullable=True)
    home_service = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default="ACTIVE", nullable=False)
    employee_number = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="staff_profile")
    locations = relationship(
        "StaffLocation", back_populates="staff", cascade="all, delete-orphan"
    )
    appointments = relationship("Appointment", back_populates="staff")


class StaffLocation(Base):
    """Staff-to-location assignment; location_id may be a virtual id such as "online" """

    __tablename__ = "staff_locations"

    id = Column(String(36), primary_key=True, default=generate_id)
    staff_id = Column(String(36), ForeignKey("staff_members.id"), nullable=False)
    location_id = Column(String(36), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    staff = relationship("StaffMember", back_populates="locations")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_reference = Column(String(50), nullable=False)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False)
    staff_id = Column(String(36), ForeignKey("staff_members.id"), nullable=False)
    location_id = Column(String(36), nullable=False, index=True)
    date = Column(DateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    total_price = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), default="PENDING", nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="appointments")
    staff = relationship("StaffMember", back_populates="appointments")


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(50), nullable=False)  # SERVICE_SALE, PRODUCT_SALE, ...
    status = Column(String(20), default="PENDING", nullable=False)  # PENDING, COMPLETED, CANCELLED
    method = Column(String(50), nullable=False)
    reference = Column(String(255), nullable=True)
    description = Column(String(1000), nullable=True)
    location_id = Column(String(36), nullable=True, index=True)
    appointment_id = Column(String(36), nullable=True)
    items = Column(Text, nullable=True)  # JSON-serialized line items
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="transactions")
