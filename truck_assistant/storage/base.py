"""Record store contract and errors.

Three implementations exist (relational, document, local JSON); the
application uses exactly one, chosen from configuration at startup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from truck_assistant.services.geo import haversine_km
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

DEFAULT_NEARBY_RADIUS_KM = 50.0
DEFAULT_NEARBY_LIMIT = 20


class StoreError(Exception):
    """A persistence operation failed (connection, query, pool)."""


class RecordNotFound(StoreError):
    """A referenced record does not exist."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class RecordStore(ABC):
    """CRUD over trucks and their dependents plus reference data."""

    backend: str = ""

    def open(self) -> None:
        """Acquire long-lived resources (pools, files)."""

    def close(self) -> None:
        """Release whatever ``open`` acquired."""

    @abstractmethod
    def ping(self) -> None:
        """Round-trip to the backing store; raise ``StoreError`` on failure."""

    def initialize_schema(self) -> bool:
        """Create the persistent schema. Returns False when not applicable."""
        return False

    # -- trucks -------------------------------------------------------------

    @abstractmethod
    def create_truck(self, data: TruckCreate) -> Truck: ...

    @abstractmethod
    def get_truck(self, truck_id: str) -> Optional[Truck]: ...

    @abstractmethod
    def list_trucks(self, user_id: Optional[str] = None) -> List[Truck]: ...

    @abstractmethod
    def update_truck(self, truck_id: str, changes: TruckUpdate) -> Optional[Truck]: ...

    @abstractmethod
    def delete_truck(self, truck_id: str) -> bool:
        """Delete a truck with its maintenance records and diagnostic
        sessions; conversations keep existing without a truck."""

    # -- maintenance --------------------------------------------------------

    @abstractmethod
    def create_maintenance_record(self, data: MaintenanceRecordCreate) -> MaintenanceRecord: ...

    @abstractmethod
    def list_maintenance_records(self, truck_id: str) -> List[MaintenanceRecord]:
        """Newest service date first."""

    # -- diagnostic sessions ------------------------------------------------

    @abstractmethod
    def create_diagnostic_session(self, data: DiagnosticSessionCreate) -> DiagnosticSession: ...

    @abstractmethod
    def list_diagnostic_sessions(self, truck_id: str) -> List[DiagnosticSession]:
        """Newest session first."""

    # -- chat history -------------------------------------------------------

    @abstractmethod
    def create_conversation(self, data: ConversationCreate) -> Conversation: ...

    @abstractmethod
    def get_conversation(self, conversation_id: str) -> Optional[Conversation]: ...

    @abstractmethod
    def list_conversations(self, truck_id: Optional[str] = None) -> List[Conversation]: ...

    @abstractmethod
    def add_message(self, conversation_id: str, data: StoredMessageCreate) -> StoredMessage: ...

    @abstractmethod
    def list_messages(self, conversation_id: str) -> List[StoredMessage]:
        """Oldest message first."""

    # -- reference data -----------------------------------------------------

    @abstractmethod
    def create_service_location(self, data: ServiceLocationCreate) -> ServiceLocation: ...

    @abstractmethod
    def list_service_locations(self) -> List[ServiceLocation]: ...

    def find_nearby_locations(
        self,
        lat: float,
        lng: float,
        radius_km: float = DEFAULT_NEARBY_RADIUS_KM,
        limit: int = DEFAULT_NEARBY_LIMIT,
    ) -> List[ServiceLocation]:
        """Locations within *radius_km*, nearest first."""
        return rank_nearby(self.list_service_locations(), lat, lng, radius_km, limit)

    @abstractmethod
    def list_repair_guides(self, category: Optional[str] = None) -> List[RepairGuide]: ...

    @abstractmethod
    def get_repair_guide(self, guide_id: str) -> Optional[RepairGuide]: ...


def rank_nearby(
    locations: Iterable[ServiceLocation],
    lat: float,
    lng: float,
    radius_km: float,
    limit: int,
) -> List[ServiceLocation]:
    ranked = []
    for loc in locations:
        if loc.latitude is None or loc.longitude is None:
            continue
        distance = haversine_km(lat, lng, loc.latitude, loc.longitude)
        if distance <= radius_km:
            ranked.append(loc.model_copy(update={"distance": round(distance, 2)}))
    ranked.sort(key=lambda loc: loc.distance)
    return ranked[:limit]
