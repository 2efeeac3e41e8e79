"""Database models for the truck repair assistant.

UUID keys everywhere; dependents of ``trucks`` cascade on delete except
chat conversations, which only lose their truck reference.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from truck_assistant.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Account owning trucks (no authentication flow yet)."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    subscription_type = Column(String(50), default="free")
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    trucks = relationship("Truck", back_populates="user", cascade="all, delete-orphan")


class Truck(Base):
    """A vehicle owned by a user."""

    __tablename__ = "trucks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    vin = Column(String(17), unique=True, nullable=True, index=True)
    mileage = Column(Integer, nullable=True)
    engine_type = Column(String(50), nullable=True)
    transmission = Column(String(50), nullable=True)
    usage_type = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    user = relationship("User", back_populates="trucks")
    maintenance_records = relationship(
        "MaintenanceRecord", back_populates="truck", cascade="all, delete-orphan"
    )
    diagnostic_sessions = relationship(
        "DiagnosticSession", back_populates="truck", cascade="all, delete-orphan"
    )
    # ON DELETE SET NULL: the ORM nulls truck_id on loaded conversations.
    chat_conversations = relationship("ChatConversation", back_populates="truck")


class DiagnosticSession(Base):
    """A diagnosis saved to a truck's history."""

    __tablename__ = "diagnostic_sessions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    truck_id = Column(Uuid, ForeignKey("trucks.id", ondelete="CASCADE"), nullable=True, index=True)
    symptoms = Column(Text, nullable=False)
    ai_response = Column(JSONType, nullable=True)
    session_date = Column(DateTime(timezone=True), default=_utcnow)
    status = Column(String(50), default="completed")

    truck = relationship("Truck", back_populates="diagnostic_sessions")


class MaintenanceRecord(Base):
    __tablename__ = "maintenance_records"

    id = Column(Uuid, primary_key=True, default=uuid4)
    truck_id = Column(Uuid, ForeignKey("trucks.id", ondelete="CASCADE"), nullable=True, index=True)
    service_type = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    service_date = Column(Date, nullable=False, index=True)
    mileage_at_service = Column(Integer, nullable=True)
    cost = Column(Numeric(10, 2), nullable=True)
    service_provider = Column(String(255), nullable=True)
    next_service_date = Column(Date, nullable=True)
    next_service_mileage = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    truck = relationship("Truck", back_populates="maintenance_records")


class ServiceLocation(Base):
    __tablename__ = "service_locations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    address = Column(Text, nullable=False)
    latitude = Column(Numeric(10, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)
    phone = Column(String(20), nullable=True)
    services = Column(JSONType, default=list)
    rating = Column(Numeric(2, 1), nullable=True)
    review_count = Column(Integer, default=0)
    hours = Column(Text, nullable=True)
    website = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ChatConversation(Base):
    __tablename__ = "chat_conversations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    truck_id = Column(Uuid, ForeignKey("trucks.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    truck = relationship("Truck", back_populates="chat_conversations")
    messages = relationship(
        "ChatMessageRecord",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ChatMessageRecord.timestamp",
    )


class ChatMessageRecord(Base):
    """A stored chat turn (the wire model is ``ChatMessage``)."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        CheckConstraint("sender IN ('user', 'assistant')", name="ck_chat_messages_sender"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    conversation_id = Column(
        Uuid, ForeignKey("chat_conversations.id", ondelete="CASCADE"), nullable=True, index=True
    )
    content = Column(Text, nullable=False)
    sender = Column(String(20), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)

    conversation = relationship("ChatConversation", back_populates="messages")


class RepairGuide(Base):
    __tablename__ = "repair_guides"

    id = Column(Uuid, primary_key=True, default=uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    difficulty = Column(String(50), nullable=True)
    duration = Column(String(50), nullable=True)
    rating = Column(Numeric(2, 1), nullable=True)
    video_url = Column(String(500), nullable=True)
    thumbnail_url = Column(String(500), nullable=True)
    content = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
