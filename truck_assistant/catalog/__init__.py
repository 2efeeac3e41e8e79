"""Static datasets and the truck make/model catalogue."""

from truck_assistant.catalog.static_data import StaticData
from truck_assistant.catalog.truck_catalog import TruckCatalog, TruckModel, TruckRecord

__all__ = ["StaticData", "TruckCatalog", "TruckModel", "TruckRecord"]
