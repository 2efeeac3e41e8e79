"""FastAPI dependencies resolving the objects built at startup.

Everything lives on ``app.state``; tests swap implementations through
``app.dependency_overrides``.
"""

from fastapi import Request

from truck_assistant.ai.selector import ProviderSelector
from truck_assistant.catalog.static_data import StaticData
from truck_assistant.catalog.truck_catalog import TruckCatalog
from truck_assistant.config import get_settings  # noqa: F401  (re-exported)
from truck_assistant.services.geocoding import NominatimClient
from truck_assistant.services.youtube import YouTubeClient
from truck_assistant.storage.base import RecordStore


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_selector(request: Request) -> ProviderSelector:
    return request.app.state.selector


def get_static(request: Request) -> StaticData:
    return request.app.state.static


def get_catalog(request: Request) -> TruckCatalog:
    return request.app.state.catalog


def get_geocoder(request: Request) -> NominatimClient:
    return request.app.state.geocoder


def get_youtube(request: Request) -> YouTubeClient:
    return request.app.state.youtube
