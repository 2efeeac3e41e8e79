"""Truck make/model catalogue.

Reads the MongoDB ``trucks`` collection when a URI is configured and falls
back to the static dataset whenever Mongo is unset or fails. Both sources
produce the same ``TruckRecord`` shape.
"""

from __future__ import annotations

import re
from collections import OrderedDict
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import structlog
from pydantic import Field
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from truck_assistant.ai.schemas import CamelModel
from truck_assistant.catalog.static_data import StaticData
from truck_assistant.config import Settings

logger = structlog.get_logger()

SEARCH_LIMIT = 20

# (keywords found in dataset notes, engine family reported)
_ENGINE_KEYWORDS: List[Tuple[Tuple[str, ...], str]] = [
    (("cummins",), "Cummins"),
    (("detroit", "dd15", "dd13"), "Detroit Diesel"),
    (("caterpillar", "cat c15", "c15"), "Caterpillar"),
    (("paccar",), "PACCAR"),
    (("volvo",), "Volvo"),
    (("mack",), "Mack"),
]

_ISSUE_KEYWORDS: List[Tuple[str, str]] = [
    ("discontinued", "Parts availability may be limited"),
    ("payload", "Payload capacity considerations"),
    ("fuel efficiency", "Fuel efficiency optimization needed"),
    ("safety", "Safety system maintenance required"),
]

_GENERIC_ISSUES = ["Engine maintenance", "Brake system checks", "Transmission service"]


class TruckModel(CamelModel):
    """A make/model grouped across model years."""

    id: str
    make: str
    model: str
    years: List[int] = Field(default_factory=list)
    engines: List[str] = Field(default_factory=list)
    common_issues: List[str] = Field(default_factory=list)


class TruckRecord(CamelModel):
    """Catalogue entry as returned by the truck endpoints."""

    id: str
    make: str
    model: str
    year: Optional[int] = None
    engines: List[str] = Field(default_factory=list)
    common_issues: List[str] = Field(default_factory=list)
    specifications: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Static dataset conversion
# ---------------------------------------------------------------------------

def extract_engines(rows: Iterable[dict]) -> List[str]:
    engines: List[str] = []
    for row in rows:
        notes = str(row.get("notes", "")).lower()
        for keywords, engine in _ENGINE_KEYWORDS:
            if engine not in engines and any(k in notes for k in keywords):
                engines.append(engine)
        if not engines:
            engines.append(f"{row.get('fuel', 'Diesel')} Engine")
    return engines


def extract_common_issues(rows: Iterable[dict]) -> List[str]:
    issues: List[str] = []
    for row in rows:
        notes = str(row.get("notes", "")).lower()
        for keyword, issue in _ISSUE_KEYWORDS:
            if keyword in notes and issue not in issues:
                issues.append(issue)
    issues.extend(i for i in _GENERIC_ISSUES if i not in issues)
    return issues


def convert_to_truck_models(rows: Iterable[dict]) -> List[TruckModel]:
    """Group dataset rows by make and model, collecting their model years."""
    grouped: "OrderedDict[Tuple[str, str], List[dict]]" = OrderedDict()
    for row in rows:
        grouped.setdefault((row["make"], row["model"]), []).append(row)

    models = []
    for (make, model), group in grouped.items():
        years = sorted({int(r["model_year"]) for r in group if r.get("model_year") is not None})
        models.append(
            TruckModel(
                id=group[0].get("uid") or f"{make}-{model}".lower().replace(" ", "-"),
                make=make,
                model=model,
                years=years,
                engines=extract_engines(group),
                common_issues=extract_common_issues(group),
            )
        )
    return models


def _model_to_record(model: TruckModel) -> TruckRecord:
    return TruckRecord(
        id=model.id,
        make=model.make,
        model=model.model,
        year=model.years[0] if model.years else date.today().year,
        engines=model.engines,
        common_issues=model.common_issues,
        specifications={"years": model.years},
    )


class StaticTruckSource:
    """Catalogue queries over the bundled dataset."""

    name = "static"

    def __init__(self, static: StaticData) -> None:
        self._static = static

    def _rows(self) -> List[dict]:
        return self._static.truck_dataset()

    def makes(self) -> List[str]:
        return sorted({r["make"] for r in self._rows()})

    def models(self, make: str) -> List[str]:
        make_lc = make.lower()
        return sorted({r["model"] for r in self._rows() if r["make"].lower() == make_lc})

    def trucks(self, make: str, model: str) -> List[TruckRecord]:
        make_lc, model_lc = make.lower(), model.lower()
        rows = [
            r for r in self._rows()
            if r["make"].lower() == make_lc and r["model"].lower() == model_lc
        ]
        return [_model_to_record(m) for m in convert_to_truck_models(rows)]

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[TruckRecord]:
        q = query.lower()
        rows = [
            r for r in self._rows()
            if q in r["make"].lower()
            or q in r["model"].lower()
            or q in str(r.get("notes", "")).lower()
        ][:limit]
        return [_model_to_record(m) for m in convert_to_truck_models(rows)]

    def truck_models(self) -> List[TruckModel]:
        return convert_to_truck_models(self._rows())


# ---------------------------------------------------------------------------
# MongoDB source
# ---------------------------------------------------------------------------

def _doc_to_record(doc: dict) -> TruckRecord:
    return TruckRecord(
        id=str(doc["_id"]),
        make=doc.get("make", ""),
        model=doc.get("model", ""),
        year=doc.get("year"),
        engines=doc.get("engines") or ["Unknown Engine"],
        common_issues=doc.get("commonIssues") or [],
        specifications=doc.get("specifications") or {},
    )


class MongoTruckSource:
    """Catalogue queries over the ``trucks`` collection, one client per call."""

    name = "mongodb"
    collection = "trucks"

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

    def _query(self, fn: Callable[[Any], Any]) -> Any:
        with self._client_factory(self._uri, serverSelectionTimeoutMS=self._timeout_ms) as client:
            return fn(client[self._db_name][self.collection])

    @staticmethod
    def _pattern(text: str) -> dict:
        return {"$regex": re.escape(text), "$options": "i"}

    def makes(self) -> List[str]:
        return sorted(self._query(lambda c: c.distinct("make")))

    def models(self, make: str) -> List[str]:
        return sorted(self._query(lambda c: c.distinct("model", {"make": self._pattern(make)})))

    def trucks(self, make: str, model: str) -> List[TruckRecord]:
        docs = self._query(
            lambda c: list(c.find({"make": self._pattern(make), "model": self._pattern(model)}))
        )
        return [_doc_to_record(d) for d in docs]

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[TruckRecord]:
        pattern = self._pattern(query)
        docs = self._query(
            lambda c: list(
                c.find(
                    {
                        "$or": [
                            {"make": pattern},
                            {"model": pattern},
                            {"engines": {"$elemMatch": pattern}},
                        ]
                    }
                ).limit(limit)
            )
        )
        return [_doc_to_record(d) for d in docs]


# ---------------------------------------------------------------------------
# Catalogue facade
# ---------------------------------------------------------------------------

class TruckCatalog:
    """Prefers MongoDB when configured; otherwise, or on failure, static data."""

    def __init__(self, static: StaticTruckSource, mongo: Optional[MongoTruckSource] = None) -> None:
        self.static = static
        self.mongo = mongo

    @classmethod
    def from_settings(cls, settings: Settings, static: StaticData) -> "TruckCatalog":
        mongo = None
        if settings.mongodb_uri:
            mongo = MongoTruckSource(
                settings.mongodb_uri, settings.mongodb_db_name, settings.mongodb_timeout_ms
            )
        return cls(StaticTruckSource(static), mongo)

    def _call(self, operation: str, *args: Any) -> Tuple[Any, str]:
        """Run *operation* on Mongo, falling back to the static source.

        Returns ``(result, source_name)``.
        """
        if self.mongo is not None:
            try:
                return getattr(self.mongo, operation)(*args), self.mongo.name
            except PyMongoError as exc:
                logger.warning(
                    "truck_catalog_mongo_failed",
                    operation=operation,
                    error=str(exc),
                )
        return getattr(self.static, operation)(*args), self.static.name

    def makes(self) -> Tuple[List[str], str]:
        return self._call("makes")

    def models(self, make: str) -> Tuple[List[str], str]:
        return self._call("models", make)

    def trucks(self, make: str, model: str) -> Tuple[List[TruckRecord], str]:
        return self._call("trucks", make, model)

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> Tuple[List[TruckRecord], str]:
        return self._call("search", query, limit)
