"""Record shapes shared by every record store.

Stores accept the ``*Create`` models and return the full records; all of
them serialise with camelCase keys.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from truck_assistant.ai.schemas import CamelModel


# -- trucks -----------------------------------------------------------------

class TruckCreate(CamelModel):
    user_id: Optional[str] = None
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1900, le=2100)
    vin: Optional[str] = Field(None, max_length=17)
    mileage: Optional[int] = Field(None, ge=0)
    engine_type: Optional[str] = Field(None, max_length=50)
    transmission: Optional[str] = Field(None, max_length=50)
    usage_type: Optional[str] = Field(None, max_length=50)


class TruckUpdate(CamelModel):
    """Partial update; only fields present in the request are applied."""

    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    vin: Optional[str] = Field(None, max_length=17)
    mileage: Optional[int] = Field(None, ge=0)
    engine_type: Optional[str] = Field(None, max_length=50)
    transmission: Optional[str] = Field(None, max_length=50)
    usage_type: Optional[str] = Field(None, max_length=50)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Truck(TruckCreate):
    id: str
    created_at: datetime
    updated_at: datetime


# -- maintenance ------------------------------------------------------------

class MaintenanceRecordCreate(CamelModel):
    truck_id: Optional[str] = None
    service_type: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    service_date: date
    mileage_at_service: Optional[int] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    service_provider: Optional[str] = None
    next_service_date: Optional[date] = None
    next_service_mileage: Optional[int] = Field(None, ge=0)


class MaintenanceRecord(MaintenanceRecordCreate):
    id: str
    truck_id: str
    created_at: datetime


# -- diagnostic sessions ----------------------------------------------------

class DiagnosticSessionCreate(CamelModel):
    truck_id: Optional[str] = None
    symptoms: str = Field(..., min_length=1)
    ai_response: Optional[Dict[str, Any]] = None
    status: str = "completed"


class DiagnosticSession(DiagnosticSessionCreate):
    id: str
    session_date: datetime


# -- chat history -----------------------------------------------------------

class ConversationCreate(CamelModel):
    truck_id: Optional[str] = None
    title: Optional[str] = Field(None, max_length=255)


class Conversation(ConversationCreate):
    id: str
    created_at: datetime
    updated_at: datetime


class StoredMessageCreate(CamelModel):
    content: str = Field(..., min_length=1)
    sender: Literal["user", "assistant"]


class StoredMessage(StoredMessageCreate):
    id: str
    conversation_id: str
    timestamp: datetime


# -- reference data ---------------------------------------------------------

class ServiceLocationCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    phone: Optional[str] = None
    services: List[str] = Field(default_factory=list)
    rating: Optional[float] = Field(None, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    hours: Optional[str] = None
    website: Optional[str] = None


class ServiceLocation(ServiceLocationCreate):
    id: str
    distance: Optional[float] = Field(None, description="Kilometres from the query point")


class RepairGuide(CamelModel):
    id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    duration: Optional[str] = None
    rating: Optional[float] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    content: Optional[str] = None
