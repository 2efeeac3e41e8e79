"""Relational record store (SQLAlchemy over a pooled Postgres engine)."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from truck_assistant.db import models_db
from truck_assistant.db.models_db import _utcnow
from truck_assistant.db.session import Database
from truck_assistant.services.geo import bounding_box
from truck_assistant.storage.base import (
    DEFAULT_NEARBY_LIMIT,
    DEFAULT_NEARBY_RADIUS_KM,
    RecordNotFound,
    RecordStore,
    StoreError,
    rank_nearby,
)
from truck_assistant.storage.schemas import (
    Conversation,
    ConversationCreate,
    DiagnosticSession,
    DiagnosticSessionCreate,
    MaintenanceRecord,
    MaintenanceRecordCreate,
    RepairGuide,
    ServiceLocation,
    ServiceLocationCreate,
    StoredMessage,
    StoredMessageCreate,
    Truck,
    TruckCreate,
    TruckUpdate,
)

logger = structlog.get_logger()

_KM_PER_MILE = 1.609344


def _uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _row_dict(row: Any) -> Dict[str, Any]:
    """Column values of an ORM row with UUIDs as str and decimals as float."""
    data = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        if isinstance(value, uuid.UUID):
            value = str(value)
        elif isinstance(value, Decimal):
            value = float(value)
        data[column.key] = value
    return data


class SqlStore(RecordStore):
    """Record store backed by the relational schema in ``db.models_db``."""

    backend = "postgres"

    def __init__(self, database: Database) -> None:
        self._db = database

    def open(self) -> None:
        self._db.open()

    def close(self) -> None:
        self._db.close()

    @contextmanager
    def _unit(self) -> Iterator[Session]:
        try:
            with self._db.transaction() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.error("sql_store_error", error=str(exc))
            raise StoreError(str(exc)) from exc

    def ping(self) -> None:
        try:
            self._db.ping()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def initialize_schema(self) -> bool:
        try:
            self._db.create_schema()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return True

    # -- trucks -------------------------------------------------------------

    def create_truck(self, data: TruckCreate) -> Truck:
        with self._unit() as db:
            fields = data.model_dump()
            fields["user_id"] = _uuid(fields.get("user_id"))
            row = models_db.Truck(**fields)
            db.add(row)
            db.flush()
            logger.info("truck_created", truck_id=str(row.id), backend=self.backend)
            return Truck.model_validate(_row_dict(row))

    def get_truck(self, truck_id: str) -> Optional[Truck]:
        key = _uuid(truck_id)
        if key is None:
            return None
        with self._unit() as db:
            row = db.get(models_db.Truck, key)
            return Truck.model_validate(_row_dict(row)) if row else None

    def list_trucks(self, user_id: Optional[str] = None) -> List[Truck]:
        owner = _uuid(user_id)
        if user_id is not None and owner is None:
            return []
        with self._unit() as db:
            query = db.query(models_db.Truck)
            if user_id is not None:
                query = query.filter(models_db.Truck.user_id == owner)
            rows = query.order_by(models_db.Truck.created_at.desc()).all()
            return [Truck.model_validate(_row_dict(r)) for r in rows]

    def update_truck(self, truck_id: str, changes: TruckUpdate) -> Optional[Truck]:
        key = _uuid(truck_id)
        if key is None:
            return None
        with self._unit() as db:
            row = db.get(models_db.Truck, key)
            if row is None:
                return None
            for field, value in changes.changes().items():
                setattr(row, field, value)
            row.updated_at = _utcnow()
            db.flush()
            return Truck.model_validate(_row_dict(row))

    def delete_truck(self, truck_id: str) -> bool:
        key = _uuid(truck_id)
        if key is None:
            return False
        with self._unit() as db:
            row = db.get(models_db.Truck, key)
            if row is None:
                return False
            db.delete(row)
            logger.info("truck_deleted", truck_id=truck_id, backend=self.backend)
            return True

    # -- maintenance --------------------------------------------------------

    def _require_truck(self, db: Session, truck_id: Optional[str]) -> uuid.UUID:
        key = _uuid(truck_id)
        if key is None or db.get(models_db.Truck, key) is None:
            raise RecordNotFound("Truck", str(truck_id))
        return key

    def create_maintenance_record(self, data: MaintenanceRecordCreate) -> MaintenanceRecord:
        with self._unit() as db:
            fields = data.model_dump()
            fields["truck_id"] = self._require_truck(db, data.truck_id)
            row = models_db.MaintenanceRecord(**fields)
            db.add(row)
            db.flush()
            return MaintenanceRecord.model_validate(_row_dict(row))

    def list_maintenance_records(self, truck_id: str) -> List[MaintenanceRecord]:
        key = _uuid(truck_id)
        if key is None:
            return []
        with self._unit() as db:
            rows = (
                db.query(models_db.MaintenanceRecord)
                .filter(models_db.MaintenanceRecord.truck_id == key)
                .order_by(models_db.MaintenanceRecord.service_date.desc())
                .all()
            )
            return [MaintenanceRecord.model_validate(_row_dict(r)) for r in rows]

    # -- diagnostic sessions ------------------------------------------------

    def create_diagnostic_session(self, data: DiagnosticSessionCreate) -> DiagnosticSession:
        with self._unit() as db:
            fields = data.model_dump()
            if data.truck_id is not None:
                fields["truck_id"] = self._require_truck(db, data.truck_id)
            row = models_db.DiagnosticSession(**fields)
            db.add(row)
            db.flush()
            return DiagnosticSession.model_validate(_row_dict(row))

    def list_diagnostic_sessions(self, truck_id: str) -> List[DiagnosticSession]:
        key = _uuid(truck_id)
        if key is None:
            return []
        with self._unit() as db:
            rows = (
                db.query(models_db.DiagnosticSession)
                .filter(models_db.DiagnosticSession.truck_id == key)
                .order_by(models_db.DiagnosticSession.session_date.desc())
                .all()
            )
            return [DiagnosticSession.model_validate(_row_dict(r)) for r in rows]

    # -- chat history -------------------------------------------------------

    def create_conversation(self, data: ConversationCreate) -> Conversation:
        with self._unit() as db:
            fields = data.model_dump()
            if data.truck_id is not None:
                fields["truck_id"] = self._require_truck(db, data.truck_id)
            row = models_db.ChatConversation(**fields)
            db.add(row)
            db.flush()
            return Conversation.model_validate(_row_dict(row))

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        key = _uuid(conversation_id)
        if key is None:
            return None
        with self._unit() as db:
            row = db.get(models_db.ChatConversation, key)
            return Conversation.model_validate(_row_dict(row)) if row else None

    def list_conversations(self, truck_id: Optional[str] = None) -> List[Conversation]:
        # A malformed id matches nothing; None would render as IS NULL.
        truck_key = _uuid(truck_id)
        if truck_id is not None and truck_key is None:
            return []
        with self._unit() as db:
            query = db.query(models_db.ChatConversation)
            if truck_id is not None:
                query = query.filter(models_db.ChatConversation.truck_id == truck_key)
            rows = query.order_by(models_db.ChatConversation.updated_at.desc()).all()
            return [Conversation.model_validate(_row_dict(r)) for r in rows]

    def add_message(self, conversation_id: str, data: StoredMessageCreate) -> StoredMessage:
        key = _uuid(conversation_id)
        with self._unit() as db:
            conversation = db.get(models_db.ChatConversation, key) if key else None
            if conversation is None:
                raise RecordNotFound("Conversation", conversation_id)
            row = models_db.ChatMessageRecord(conversation_id=key, **data.model_dump())
            conversation.updated_at = _utcnow()
            db.add(row)
            db.flush()
            return StoredMessage.model_validate(_row_dict(row))

    def list_messages(self, conversation_id: str) -> List[StoredMessage]:
        key = _uuid(conversation_id)
        if key is None:
            return []
        with self._unit() as db:
            rows = (
                db.query(models_db.ChatMessageRecord)
                .filter(models_db.ChatMessageRecord.conversation_id == key)
                .order_by(models_db.ChatMessageRecord.timestamp.asc())
                .all()
            )
            return [StoredMessage.model_validate(_row_dict(r)) for r in rows]

    # -- reference data -----------------------------------------------------

    def create_service_location(self, data: ServiceLocationCreate) -> ServiceLocation:
        with self._unit() as db:
            row = models_db.ServiceLocation(**data.model_dump())
            db.add(row)
            db.flush()
            return ServiceLocation.model_validate(_row_dict(row))

    def list_service_locations(self) -> List[ServiceLocation]:
        with self._unit() as db:
            rows = db.query(models_db.ServiceLocation).order_by(models_db.ServiceLocation.name).all()
            return [ServiceLocation.model_validate(_row_dict(r)) for r in rows]

    def find_nearby_locations(
        self,
        lat: float,
        lng: float,
        radius_km: float = DEFAULT_NEARBY_RADIUS_KM,
        limit: int = DEFAULT_NEARBY_LIMIT,
    ) -> List[ServiceLocation]:
        west, north, east, south = bounding_box(lat, lng, radius_km / _KM_PER_MILE)
        table = models_db.ServiceLocation
        with self._unit() as db:
            rows = (
                db.query(table)
                .filter(
                    table.latitude.isnot(None),
                    table.longitude.isnot(None),
                    table.latitude.between(south, north),
                    table.longitude.between(west, east),
                )
                .all()
            )
            candidates = [ServiceLocation.model_validate(_row_dict(r)) for r in rows]
        return rank_nearby(candidates, lat, lng, radius_km, limit)

    def list_repair_guides(self, category: Optional[str] = None) -> List[RepairGuide]:
        with self._unit() as db:
            query = db.query(models_db.RepairGuide)
            if category:
                query = query.filter(models_db.RepairGuide.category == category)
            rows = query.order_by(models_db.RepairGuide.rating.desc()).all()
            return [RepairGuide.model_validate(_row_dict(r)) for r in rows]

    def get_repair_guide(self, guide_id: str) -> Optional[RepairGuide]:
        key = _uuid(guide_id)
        if key is None:
            return None
        with self._unit() as db:
            row = db.get(models_db.RepairGuide, key)
            return RepairGuide.model_validate(_row_dict(row)) if row else None
