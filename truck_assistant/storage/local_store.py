"""Record store over the local JSON cache, for development without a database.

Each collection is one cache entry holding a list of JSON-mode records.
On first open the store is seeded with the demo fleet, the sample
service locations and the repair guides shipped in ``data/``.
"""

from __future__ import annotations

import threading
import uuid
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

import structlog

from truck_assistant.cache.local_cache import LocalCache
from truck_assistant.catalog.static_data import StaticData
from truck_assistant.db.models_db import _utcnow
from truck_assistant.storage.base import RecordNotFound, RecordStore
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

TRUCKS = "trucks"
MAINTENANCE = "maintenance_records"
SESSIONS = "diagnostic_sessions"
CONVERSATIONS = "chat_conversations"
MESSAGES = "chat_messages"
LOCATIONS = "service_locations"
GUIDES = "repair_guides"
_INITIALIZED = "initialized"


def _new_id() -> str:
    return str(uuid.uuid4())


class LocalStore(RecordStore):
    """Single-process record store persisted through ``LocalCache``."""

    backend = "local"

    def __init__(self, cache: LocalCache, static: Optional[StaticData] = None) -> None:
        self._cache = cache
        self._static = static
        self._lock = threading.RLock()

    def open(self) -> None:
        self._cache.load()
        if self._cache.get(_INITIALIZED) is None:
            self._seed()

    def ping(self) -> None:
        pass

    # -- internals ----------------------------------------------------------

    def _rows(self, collection: str) -> List[Dict[str, Any]]:
        return self._cache.get(collection) or []

    def _save(self, collection: str, rows: List[Dict[str, Any]]) -> None:
        self._cache.set(collection, rows)

    def _insert(self, collection: str, record: Any) -> None:
        with self._lock:
            rows = self._rows(collection)
            rows.append(record.model_dump(mode="json"))
            self._save(collection, rows)

    def _find(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        return next((r for r in self._rows(collection) if r["id"] == record_id), None)

    def _select(
        self,
        collection: str,
        predicate: Callable[[Dict[str, Any]], bool],
        order_by: str,
        newest_first: bool,
    ) -> List[Dict[str, Any]]:
        rows = [r for r in self._rows(collection) if predicate(r)]
        rows.sort(key=lambda r: r.get(order_by) or "", reverse=newest_first)
        return rows

    def _require_truck(self, truck_id: Optional[str]) -> None:
        if truck_id is None or self._find(TRUCKS, truck_id) is None:
            raise RecordNotFound("Truck", str(truck_id))

    def _seed(self) -> None:
        """Load demo trucks and reference data into an empty store."""
        with self._lock:
            if self._static is not None:
                now = _utcnow()
                fleet = self._static.demo_fleet()
                trucks = [
                    Truck.model_validate({**t, "createdAt": now, "updatedAt": now})
                    for t in fleet.get("trucks", [])
                ]
                records = []
                for raw in fleet.get("maintenanceRecords", []):
                    raw = dict(raw)
                    days_ago = raw.pop("daysAgo", 0)
                    raw["serviceDate"] = date.today() - timedelta(days=days_ago)
                    raw["createdAt"] = now
                    records.append(MaintenanceRecord.model_validate(raw))
                self._save(TRUCKS, [t.model_dump(mode="json") for t in trucks])
                self._save(MAINTENANCE, [r.model_dump(mode="json") for r in records])
                self._save(LOCATIONS, [
                    ServiceLocation.model_validate(loc).model_dump(mode="json")
                    for loc in self._static.service_locations()
                ])
                self._save(GUIDES, [
                    RepairGuide.model_validate(g).model_dump(mode="json")
                    for g in self._static.repair_guides()
                ])
                logger.info(
                    "local_store_seeded",
                    trucks=len(trucks),
                    maintenance_records=len(records),
                )
            self._cache.set(_INITIALIZED, True)

    # -- trucks -------------------------------------------------------------

    def create_truck(self, data: TruckCreate) -> Truck:
        now = _utcnow()
        truck = Truck(id=_new_id(), created_at=now, updated_at=now, **data.model_dump())
        self._insert(TRUCKS, truck)
        logger.info("truck_created", truck_id=truck.id, backend=self.backend)
        return truck

    def get_truck(self, truck_id: str) -> Optional[Truck]:
        row = self._find(TRUCKS, truck_id)
        return Truck.model_validate(row) if row else None

    def list_trucks(self, user_id: Optional[str] = None) -> List[Truck]:
        rows = self._select(
            TRUCKS,
            lambda r: user_id is None or r.get("user_id") == user_id,
            "created_at",
            newest_first=True,
        )
        return [Truck.model_validate(r) for r in rows]

    def update_truck(self, truck_id: str, changes: TruckUpdate) -> Optional[Truck]:
        with self._lock:
            rows = self._rows(TRUCKS)
            for index, row in enumerate(rows):
                if row["id"] == truck_id:
                    updated = Truck.model_validate(row).model_copy(
                        update={**changes.changes(), "updated_at": _utcnow()}
                    )
                    rows[index] = updated.model_dump(mode="json")
                    self._save(TRUCKS, rows)
                    return updated
        return None

    def delete_truck(self, truck_id: str) -> bool:
        with self._lock:
            trucks = self._rows(TRUCKS)
            remaining = [t for t in trucks if t["id"] != truck_id]
            if len(remaining) == len(trucks):
                return False
            self._save(TRUCKS, remaining)
            for collection in (MAINTENANCE, SESSIONS):
                self._save(
                    collection,
                    [r for r in self._rows(collection) if r.get("truck_id") != truck_id],
                )
            conversations = self._rows(CONVERSATIONS)
            for conv in conversations:
                if conv.get("truck_id") == truck_id:
                    conv["truck_id"] = None
            self._save(CONVERSATIONS, conversations)
        logger.info("truck_deleted", truck_id=truck_id, backend=self.backend)
        return True

    # -- maintenance --------------------------------------------------------

    def create_maintenance_record(self, data: MaintenanceRecordCreate) -> MaintenanceRecord:
        with self._lock:
            self._require_truck(data.truck_id)
            record = MaintenanceRecord(id=_new_id(), created_at=_utcnow(), **data.model_dump())
            self._insert(MAINTENANCE, record)
        return record

    def list_maintenance_records(self, truck_id: str) -> List[MaintenanceRecord]:
        rows = self._select(
            MAINTENANCE, lambda r: r.get("truck_id") == truck_id, "service_date", newest_first=True
        )
        return [MaintenanceRecord.model_validate(r) for r in rows]

    # -- diagnostic sessions ------------------------------------------------

    def create_diagnostic_session(self, data: DiagnosticSessionCreate) -> DiagnosticSession:
        with self._lock:
            if data.truck_id is not None:
                self._require_truck(data.truck_id)
            session = DiagnosticSession(id=_new_id(), session_date=_utcnow(), **data.model_dump())
            self._insert(SESSIONS, session)
        return session

    def list_diagnostic_sessions(self, truck_id: str) -> List[DiagnosticSession]:
        rows = self._select(
            SESSIONS, lambda r: r.get("truck_id") == truck_id, "session_date", newest_first=True
        )
        return [DiagnosticSession.model_validate(r) for r in rows]

    # -- chat history -------------------------------------------------------

    def create_conversation(self, data: ConversationCreate) -> Conversation:
        with self._lock:
            if data.truck_id is not None:
                self._require_truck(data.truck_id)
            now = _utcnow()
            conversation = Conversation(
                id=_new_id(), created_at=now, updated_at=now, **data.model_dump()
            )
            self._insert(CONVERSATIONS, conversation)
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        row = self._find(CONVERSATIONS, conversation_id)
        return Conversation.model_validate(row) if row else None

    def list_conversations(self, truck_id: Optional[str] = None) -> List[Conversation]:
        rows = self._select(
            CONVERSATIONS,
            lambda r: truck_id is None or r.get("truck_id") == truck_id,
            "updated_at",
            newest_first=True,
        )
        return [Conversation.model_validate(r) for r in rows]

    def add_message(self, conversation_id: str, data: StoredMessageCreate) -> StoredMessage:
        with self._lock:
            conversations = self._rows(CONVERSATIONS)
            conversation = next((c for c in conversations if c["id"] == conversation_id), None)
            if conversation is None:
                raise RecordNotFound("Conversation", conversation_id)
            now = _utcnow()
            message = StoredMessage(
                id=_new_id(),
                conversation_id=conversation_id,
                timestamp=now,
                **data.model_dump(),
            )
            touched = Conversation.model_validate(conversation).model_copy(
                update={"updated_at": now}
            )
            conversation.update(touched.model_dump(mode="json"))
            self._save(CONVERSATIONS, conversations)
            self._insert(MESSAGES, message)
        return message

    def list_messages(self, conversation_id: str) -> List[StoredMessage]:
        rows = self._select(
            MESSAGES,
            lambda r: r.get("conversation_id") == conversation_id,
            "timestamp",
            newest_first=False,
        )
        return [StoredMessage.model_validate(r) for r in rows]

    # -- reference data -----------------------------------------------------

    def create_service_location(self, data: ServiceLocationCreate) -> ServiceLocation:
        location = ServiceLocation(id=_new_id(), **data.model_dump())
        self._insert(LOCATIONS, location)
        return location

    def list_service_locations(self) -> List[ServiceLocation]:
        rows = self._select(LOCATIONS, lambda r: True, "name", newest_first=False)
        return [ServiceLocation.model_validate(r) for r in rows]

    def list_repair_guides(self, category: Optional[str] = None) -> List[RepairGuide]:
        rows = [
            r for r in self._rows(GUIDES)
            if not category or r.get("category") == category
        ]
        rows.sort(key=lambda r: r.get("rating") or 0, reverse=True)
        return [RepairGuide.model_validate(r) for r in rows]

    def get_repair_guide(self, guide_id: str) -> Optional[RepairGuide]:
        row = self._find(GUIDES, guide_id)
        return RepairGuide.model_validate(row) if row else None
