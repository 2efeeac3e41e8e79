"""Document record store (MongoDB, one client per operation).

Documents use the record id as ``_id`` and snake_case field names. BSON
has no plain date type, so calendar dates are stored as ISO strings.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

import structlog
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database as MongoDatabase
from pymongo.errors import PyMongoError

from truck_assistant.config import Settings
from truck_assistant.db.models_db import _utcnow
from truck_assistant.storage.base import RecordNotFound, RecordStore, StoreError
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

TRUCKS = "fleet_trucks"
MAINTENANCE = "maintenance_records"
SESSIONS = "diagnostic_sessions"
CONVERSATIONS = "chat_conversations"
MESSAGES = "chat_messages"
LOCATIONS = "service_locations"
GUIDES = "repair_guides"


def _to_doc(fields: Dict[str, Any]) -> Dict[str, Any]:
    doc = {}
    for key, value in fields.items():
        if isinstance(value, date) and not isinstance(value, datetime):
            value = value.isoformat()
        doc[key] = value
    return doc


def _from_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return data


class MongoStore(RecordStore):
    """Record store over a MongoDB database."""

    backend = "mongo"

    def __init__(
        self,
        uri: str,
        db_name: str,
        timeout_ms: int = 5000,
        client_factory: Callable[..., MongoClient] = MongoClient,
    ) -> None:
        self._uri = uri
        self._db_name = db_name
        self._timeout_ms = timeout_ms
        self._client_factory = client_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoStore":
        return cls(settings.mongodb_uri, settings.mongodb_db_name, settings.mongodb_timeout_ms)

    @contextmanager
    def _database(self) -> Iterator[MongoDatabase]:
        try:
            with self._client_factory(
                self._uri, serverSelectionTimeoutMS=self._timeout_ms
            ) as client:
                yield client[self._db_name]
        except PyMongoError as exc:
            logger.error("mongo_store_error", error=str(exc))
            raise StoreError(str(exc)) from exc

    def ping(self) -> None:
        with self._database() as db:
            db.command("ping")

    # -- trucks -------------------------------------------------------------

    def create_truck(self, data: TruckCreate) -> Truck:
        now = _utcnow()
        doc = _to_doc(data.model_dump())
        doc.update(_id=str(uuid.uuid4()), created_at=now, updated_at=now)
        with self._database() as db:
            db[TRUCKS].insert_one(doc)
        logger.info("truck_created", truck_id=doc["_id"], backend=self.backend)
        return Truck.model_validate(_from_doc(doc))

    def get_truck(self, truck_id: str) -> Optional[Truck]:
        with self._database() as db:
            doc = db[TRUCKS].find_one({"_id": truck_id})
        return Truck.model_validate(_from_doc(doc)) if doc else None

    def list_trucks(self, user_id: Optional[str] = None) -> List[Truck]:
        query = {"user_id": user_id} if user_id is not None else {}
        with self._database() as db:
            docs = list(db[TRUCKS].find(query).sort("created_at", DESCENDING))
        return [Truck.model_validate(_from_doc(d)) for d in docs]

    def update_truck(self, truck_id: str, changes: TruckUpdate) -> Optional[Truck]:
        update = _to_doc(changes.changes())
        update["updated_at"] = _utcnow()
        with self._database() as db:
            result = db[TRUCKS].update_one({"_id": truck_id}, {"$set": update})
            if result.matched_count == 0:
                return None
            doc = db[TRUCKS].find_one({"_id": truck_id})
        return Truck.model_validate(_from_doc(doc)) if doc else None

    def delete_truck(self, truck_id: str) -> bool:
        with self._database() as db:
            result = db[TRUCKS].delete_one({"_id": truck_id})
            if result.deleted_count == 0:
                return False
            db[MAINTENANCE].delete_many({"truck_id": truck_id})
            db[SESSIONS].delete_many({"truck_id": truck_id})
            db[CONVERSATIONS].update_many({"truck_id": truck_id}, {"$set": {"truck_id": None}})
        logger.info("truck_deleted", truck_id=truck_id, backend=self.backend)
        return True

    def _require_truck(self, db: MongoDatabase, truck_id: Optional[str]) -> None:
        if truck_id is None or db[TRUCKS].count_documents({"_id": truck_id}, limit=1) == 0:
            raise RecordNotFound("Truck", str(truck_id))

    # -- maintenance --------------------------------------------------------

    def create_maintenance_record(self, data: MaintenanceRecordCreate) -> MaintenanceRecord:
        doc = _to_doc(data.model_dump())
        doc.update(_id=str(uuid.uuid4()), created_at=_utcnow())
        with self._database() as db:
            self._require_truck(db, data.truck_id)
            db[MAINTENANCE].insert_one(doc)
        return MaintenanceRecord.model_validate(_from_doc(doc))

    def list_maintenance_records(self, truck_id: str) -> List[MaintenanceRecord]:
        with self._database() as db:
            docs = list(db[MAINTENANCE].find({"truck_id": truck_id}).sort("service_date", DESCENDING))
        return [MaintenanceRecord.model_validate(_from_doc(d)) for d in docs]

    # -- diagnostic sessions ------------------------------------------------

    def create_diagnostic_session(self, data: DiagnosticSessionCreate) -> DiagnosticSession:
        doc = _to_doc(data.model_dump())
        doc.update(_id=str(uuid.uuid4()), session_date=_utcnow())
        with self._database() as db:
            if data.truck_id is not None:
                self._require_truck(db, data.truck_id)
            db[SESSIONS].insert_one(doc)
        return DiagnosticSession.model_validate(_from_doc(doc))

    def list_diagnostic_sessions(self, truck_id: str) -> List[DiagnosticSession]:
        with self._database() as db:
            docs = list(db[SESSIONS].find({"truck_id": truck_id}).sort("session_date", DESCENDING))
        return [DiagnosticSession.model_validate(_from_doc(d)) for d in docs]

    # -- chat history -------------------------------------------------------

    def create_conversation(self, data: ConversationCreate) -> Conversation:
        now = _utcnow()
        doc = data.model_dump()
        doc.update(_id=str(uuid.uuid4()), created_at=now, updated_at=now)
        with self._database() as db:
            if data.truck_id is not None:
                self._require_truck(db, data.truck_id)
            db[CONVERSATIONS].insert_one(doc)
        return Conversation.model_validate(_from_doc(doc))

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._database() as db:
            doc = db[CONVERSATIONS].find_one({"_id": conversation_id})
        return Conversation.model_validate(_from_doc(doc)) if doc else None

    def list_conversations(self, truck_id: Optional[str] = None) -> List[Conversation]:
        query = {"truck_id": truck_id} if truck_id is not None else {}
        with self._database() as db:
            docs = list(db[CONVERSATIONS].find(query).sort("updated_at", DESCENDING))
        return [Conversation.model_validate(_from_doc(d)) for d in docs]

    def add_message(self, conversation_id: str, data: StoredMessageCreate) -> StoredMessage:
        now = _utcnow()
        doc = data.model_dump()
        doc.update(_id=str(uuid.uuid4()), conversation_id=conversation_id, timestamp=now)
        with self._database() as db:
            result = db[CONVERSATIONS].update_one(
                {"_id": conversation_id}, {"$set": {"updated_at": now}}
            )
            if result.matched_count == 0:
                raise RecordNotFound("Conversation", conversation_id)
            db[MESSAGES].insert_one(doc)
        return StoredMessage.model_validate(_from_doc(doc))

    def list_messages(self, conversation_id: str) -> List[StoredMessage]:
        with self._database() as db:
            docs = list(
                db[MESSAGES].find({"conversation_id": conversation_id}).sort("timestamp", ASCENDING)
            )
        return [StoredMessage.model_validate(_from_doc(d)) for d in docs]

    # -- reference data -----------------------------------------------------

    def create_service_location(self, data: ServiceLocationCreate) -> ServiceLocation:
        doc = data.model_dump()
        doc["_id"] = str(uuid.uuid4())
        with self._database() as db:
            db[LOCATIONS].insert_one(doc)
        return ServiceLocation.model_validate(_from_doc(doc))

    def list_service_locations(self) -> List[ServiceLocation]:
        with self._database() as db:
            docs = list(db[LOCATIONS].find({}).sort("name", ASCENDING))
        return [ServiceLocation.model_validate(_from_doc(d)) for d in docs]

    def list_repair_guides(self, category: Optional[str] = None) -> List[RepairGuide]:
        query = {"category": category} if category else {}
        with self._database() as db:
            docs = list(db[GUIDES].find(query).sort("rating", DESCENDING))
        return [RepairGuide.model_validate(_from_doc(d)) for d in docs]

    def get_repair_guide(self, guide_id: str) -> Optional[RepairGuide]:
        with self._database() as db:
            doc = db[GUIDES].find_one({"_id": guide_id})
        return RepairGuide.model_validate(_from_doc(doc)) if doc else None
