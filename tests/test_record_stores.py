"""Tests for the record stores.

SqlStore runs against in-memory SQLite, MongoStore against a mocked
client factory, LocalStore against a JSON file in tmp_path.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from unittest.mock import MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from truck_assistant.cache.local_cache import LocalCache
from truck_assistant.config import Settings
from truck_assistant.db.session import Database
from truck_assistant.storage import build_store
from truck_assistant.storage.base import RecordNotFound, StoreError
from truck_assistant.storage.local_store import LocalStore
from truck_assistant.storage.mongo_store import MongoStore
from truck_assistant.storage.schemas import (
    ConversationCreate,
    DiagnosticSessionCreate,
    MaintenanceRecordCreate,
    ServiceLocationCreate,
    StoredMessageCreate,
    TruckCreate,
    TruckUpdate,
)
from truck_assistant.storage.sql_store import SqlStore


def _truck(**overrides) -> TruckCreate:
    fields = dict(make="Kenworth", model="W900", year=2018, vin="1XKWD49X5JJ123456", mileage=310000)
    fields.update(overrides)
    return TruckCreate(**fields)


def _maintenance(truck_id: str, service_date: date, service_type: str = "Oil Change") -> MaintenanceRecordCreate:
    return MaintenanceRecordCreate(
        truck_id=truck_id, service_type=service_type, service_date=service_date, cost=199.99
    )


# ---------------------------------------------------------------------------
# Store selection
# ---------------------------------------------------------------------------

class TestBuildStore:

    def test_local_by_default(self, tmp_path):
        settings = Settings(_env_file=None, local_store_path=str(tmp_path / "s.json"))
        assert build_store(settings).backend == "local"

    def test_postgres_when_host_set(self):
        settings = Settings(_env_file=None, db_host="db.internal")
        assert build_store(settings).backend == "postgres"

    def test_mongo_when_uri_set(self):
        settings = Settings(_env_file=None, mongodb_uri="mongodb://localhost:27017")
        assert build_store(settings).backend == "mongo"

    def test_explicit_choice_wins(self, tmp_path):
        settings = Settings(
            _env_file=None,
            storage_backend="local",
            db_host="db.internal",
            local_store_path=str(tmp_path / "s.json"),
        )
        assert build_store(settings).backend == "local"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            build_store(Settings(_env_file=None, storage_backend="redis"))


# ---------------------------------------------------------------------------
# SqlStore (SQLite in memory)
# ---------------------------------------------------------------------------

class TestSqlStore:

    @pytest.fixture()
    def store(self):
        store = SqlStore(Database("sqlite://"))
        store.open()
        assert store.initialize_schema() is True
        yield store
        store.close()

    def test_truck_crud(self, store):
        created = store.create_truck(_truck())
        assert created.id
        assert store.get_truck(created.id).vin == "1XKWD49X5JJ123456"

        updated = store.update_truck(created.id, TruckUpdate(mileage=320000))
        assert updated.mileage == 320000
        assert updated.make == "Kenworth"

        assert store.delete_truck(created.id) is True
        assert store.get_truck(created.id) is None
        assert store.delete_truck(created.id) is False

    def test_non_uuid_id_is_not_found(self, store):
        assert store.get_truck("demo-truck-1") is None
        assert store.update_truck("nope", TruckUpdate(mileage=1)) is None

    def test_malformed_filter_ids_match_nothing(self, store):
        store.create_truck(_truck())
        store.create_conversation(ConversationCreate(title="No truck yet"))

        assert store.list_trucks("not-a-uuid") == []
        assert store.list_conversations("not-a-uuid") == []
        assert len(store.list_trucks()) == 1
        assert len(store.list_conversations()) == 1

    def test_maintenance_newest_first(self, store):
        truck = store.create_truck(_truck())
        store.create_maintenance_record(_maintenance(truck.id, date(2024, 1, 10)))
        store.create_maintenance_record(_maintenance(truck.id, date(2024, 6, 1), "Brake Inspection"))

        records = store.list_maintenance_records(truck.id)
        assert [r.service_type for r in records] == ["Brake Inspection", "Oil Change"]
        assert records[0].cost == pytest.approx(199.99)

    def test_maintenance_for_missing_truck_raises(self, store):
        with pytest.raises(RecordNotFound):
            store.create_maintenance_record(
                _maintenance("00000000-0000-0000-0000-000000000000", date(2024, 1, 1))
            )

    def test_delete_cascades_and_detaches_conversations(self, store):
        truck = store.create_truck(_truck())
        store.create_maintenance_record(_maintenance(truck.id, date(2024, 1, 10)))
        store.create_diagnostic_session(
            DiagnosticSessionCreate(truck_id=truck.id, symptoms="Overheating", ai_response={"diagnosis": "x"})
        )
        conversation = store.create_conversation(ConversationCreate(truck_id=truck.id, title="Overheating"))

        store.delete_truck(truck.id)

        assert store.list_maintenance_records(truck.id) == []
        assert store.list_diagnostic_sessions(truck.id) == []
        remaining = store.get_conversation(conversation.id)
        assert remaining is not None
        assert remaining.truck_id is None

    def test_session_without_truck(self, store):
        session = store.create_diagnostic_session(
            DiagnosticSessionCreate(symptoms="Grinding noise", ai_response={"confidence": 80})
        )
        assert session.truck_id is None
        assert session.status == "completed"
        assert session.ai_response == {"confidence": 80}

    def test_messages_in_order_and_conversation_touched(self, store):
        conversation = store.create_conversation(ConversationCreate(title="Brakes"))
        store.add_message(conversation.id, StoredMessageCreate(content="Brakes squeal", sender="user"))
        store.add_message(conversation.id, StoredMessageCreate(content="Check pads", sender="assistant"))

        messages = store.list_messages(conversation.id)
        assert [m.sender for m in messages] == ["user", "assistant"]
        # SQLite hands back naive datetimes.
        touched = store.get_conversation(conversation.id).updated_at.replace(tzinfo=None)
        assert touched >= conversation.updated_at.replace(tzinfo=None)

    def test_message_for_missing_conversation_raises(self, store):
        with pytest.raises(RecordNotFound):
            store.add_message(
                "00000000-0000-0000-0000-000000000000",
                StoredMessageCreate(content="hi", sender="user"),
            )

    def test_nearby_locations(self, store):
        store.create_service_location(
            ServiceLocationCreate(name="Dallas Diesel", address="Dallas, TX", latitude=32.7767, longitude=-96.797)
        )
        store.create_service_location(
            ServiceLocationCreate(name="Austin Fleet", address="Austin, TX", latitude=30.2672, longitude=-97.7431)
        )
        store.create_service_location(ServiceLocationCreate(name="Unplaced", address="Somewhere"))

        nearby = store.find_nearby_locations(32.78, -96.80, radius_km=30)
        assert [loc.name for loc in nearby] == ["Dallas Diesel"]
        assert nearby[0].distance < 1
        assert len(store.list_service_locations()) == 3

    def test_ping(self, store):
        store.ping()


# ---------------------------------------------------------------------------
# MongoStore (mocked client)
# ---------------------------------------------------------------------------

class TestMongoStore:

    @pytest.fixture()
    def collections(self):
        return defaultdict(MagicMock)

    @pytest.fixture()
    def store(self, collections):
        factory = MagicMock()
        client = factory.return_value.__enter__.return_value
        db = client.__getitem__.return_value
        db.__getitem__.side_effect = lambda name: collections[name]
        return MongoStore("mongodb://test:27017", "trucks-test", client_factory=factory)

    def test_create_truck_inserts_document(self, store, collections):
        truck = store.create_truck(_truck())
        doc = collections["fleet_trucks"].insert_one.call_args.args[0]
        assert doc["_id"] == truck.id
        assert doc["make"] == "Kenworth"

    def test_get_truck_maps_id(self, store, collections):
        collections["fleet_trucks"].find_one.return_value = {
            "_id": "t-1",
            "make": "Mack",
            "model": "Anthem",
            "year": 2021,
            "created_at": "2024-01-01T00:00:00Z",
            "updated_at": "2024-01-01T00:00:00Z",
        }
        truck = store.get_truck("t-1")
        assert truck.id == "t-1"
        assert truck.model == "Anthem"

    def test_maintenance_dates_stored_as_strings(self, store, collections):
        collections["fleet_trucks"].count_documents.return_value = 1
        store.create_maintenance_record(_maintenance("t-1", date(2024, 3, 5)))
        doc = collections["maintenance_records"].insert_one.call_args.args[0]
        assert doc["service_date"] == "2024-03-05"

    def test_maintenance_for_missing_truck_raises(self, store, collections):
        collections["fleet_trucks"].count_documents.return_value = 0
        with pytest.raises(RecordNotFound):
            store.create_maintenance_record(_maintenance("t-404", date(2024, 3, 5)))

    def test_delete_cascades(self, store, collections):
        collections["fleet_trucks"].delete_one.return_value.deleted_count = 1
        assert store.delete_truck("t-1") is True
        collections["maintenance_records"].delete_many.assert_called_once_with({"truck_id": "t-1"})
        collections["diagnostic_sessions"].delete_many.assert_called_once_with({"truck_id": "t-1"})
        collections["chat_conversations"].update_many.assert_called_once_with(
            {"truck_id": "t-1"}, {"$set": {"truck_id": None}}
        )

    def test_message_for_missing_conversation_raises(self, store, collections):
        collections["chat_conversations"].update_one.return_value.matched_count = 0
        with pytest.raises(RecordNotFound):
            store.add_message("c-404", StoredMessageCreate(content="hi", sender="user"))
        collections["chat_messages"].insert_one.assert_not_called()

    def test_driver_errors_become_store_errors(self):
        factory = MagicMock(side_effect=ServerSelectionTimeoutError("no servers"))
        store = MongoStore("mongodb://down:27017", "x", client_factory=factory)
        with pytest.raises(StoreError):
            store.ping()


# ---------------------------------------------------------------------------
# LocalStore (JSON file)
# ---------------------------------------------------------------------------

class TestLocalStore:

    @pytest.fixture()
    def store(self, tmp_path, static_data):
        store = LocalStore(LocalCache(tmp_path / "store.json"), static_data)
        store.open()
        return store

    def test_seeded_with_demo_fleet(self, store):
        trucks = {t.id: t for t in store.list_trucks()}
        assert set(trucks) == {"demo-truck-1", "demo-truck-2"}
        records = store.list_maintenance_records("demo-truck-1")
        assert [r.service_type for r in records] == ["Oil Change", "Brake Inspection"]

    def test_seeded_reference_data(self, store):
        guides = store.list_repair_guides()
        assert guides[0].id == "guide-2"
        assert [g.id for g in store.list_repair_guides("brakes")] == ["guide-3"]
        assert store.get_repair_guide("guide-1").category == "maintenance"
        assert store.get_repair_guide("guide-404") is None

    def test_nearby_seeded_locations(self, store):
        near_dallas = store.find_nearby_locations(32.78, -96.80, radius_km=100)
        assert [loc.name for loc in near_dallas] == ["Highway Truck Service", "Air Brake Masters"]

    def test_truck_crud_and_cascade(self, store):
        truck = store.create_truck(_truck())
        store.create_maintenance_record(_maintenance(truck.id, date(2024, 1, 1)))
        conversation = store.create_conversation(ConversationCreate(truck_id=truck.id))

        assert store.update_truck(truck.id, TruckUpdate(usage_type="regional")).usage_type == "regional"
        assert store.delete_truck(truck.id) is True
        assert store.list_maintenance_records(truck.id) == []
        assert store.get_conversation(conversation.id).truck_id is None
        assert store.delete_truck(truck.id) is False

    def test_unknown_filter_ids_match_nothing(self, store):
        store.create_conversation(ConversationCreate(title="No truck yet"))

        assert store.list_trucks("not-a-uuid") == []
        assert store.list_conversations("not-a-uuid") == []
        assert store.list_trucks()

    def test_missing_truck_references_raise(self, store):
        with pytest.raises(RecordNotFound):
            store.create_diagnostic_session(DiagnosticSessionCreate(truck_id="ghost", symptoms="x"))
        with pytest.raises(RecordNotFound):
            store.create_conversation(ConversationCreate(truck_id="ghost"))

    def test_messages_round_trip(self, store):
        conversation = store.create_conversation(ConversationCreate(title="DEF warning"))
        store.add_message(conversation.id, StoredMessageCreate(content="DEF light on", sender="user"))
        store.add_message(conversation.id, StoredMessageCreate(content="Check DEF level", sender="assistant"))
        assert [m.content for m in store.list_messages(conversation.id)] == [
            "DEF light on",
            "Check DEF level",
        ]
        with pytest.raises(RecordNotFound):
            store.add_message("ghost", StoredMessageCreate(content="x", sender="user"))

    def test_data_survives_reopen_without_reseeding(self, tmp_path, static_data):
        path = tmp_path / "store.json"
        first = LocalStore(LocalCache(path), static_data)
        first.open()
        first.delete_truck("demo-truck-2")
        created = first.create_truck(_truck())

        second = LocalStore(LocalCache(path), static_data)
        second.open()
        ids = {t.id for t in second.list_trucks()}
        assert ids == {"demo-truck-1", created.id}

    def test_unseeded_without_static_data(self, tmp_path):
        store = LocalStore(LocalCache(tmp_path / "empty.json"))
        store.open()
        assert store.list_trucks() == []
        assert store.list_repair_guides() == []
