"""Static dataset endpoints: summary, search and file status."""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends

from truck_assistant.api.deps import get_static
from truck_assistant.api.schemas import DataSearchRequest
from truck_assistant.catalog.static_data import TRUCK_DATASET, TRUCK_MODELS, TRUCK_SCHEMA, StaticData

logger = structlog.get_logger()

router = APIRouter()

SAMPLE_SIZE = 3
RESULT_LIMIT = 10


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _contains(rows: List[dict], field: str, needle: Optional[str]) -> List[dict]:
    if not needle:
        return rows
    needle = needle.lower()
    return [r for r in rows if needle in str(r.get(field) or "").lower()]


@router.get("/trucks")
def truck_data_summary(static: StaticData = Depends(get_static)):
    dataset = static.truck_dataset()
    models = static.truck_models()
    return {
        "success": True,
        "data": {
            "dataset": {
                "totalTrucks": len(dataset),
                "sample": dataset[:SAMPLE_SIZE],
                "path": TRUCK_DATASET,
            },
            "schema": {"structure": static.truck_schema(), "path": TRUCK_SCHEMA},
            "models": {
                "total": len(models),
                "makes": sorted({m["make"] for m in models}),
                "sample": models[:SAMPLE_SIZE],
                "source": TRUCK_MODELS,
            },
        },
        "timestamp": _now(),
    }


@router.post("/trucks")
def search_truck_data(request: DataSearchRequest, static: StaticData = Depends(get_static)):
    """Case-insensitive contains match on make and model across both sources."""
    criteria = request.search_criteria
    dataset = static.truck_dataset()
    models = static.truck_models()
    if criteria is not None:
        dataset = _contains(_contains(dataset, "make", criteria.make), "model", criteria.model)
        models = _contains(_contains(models, "make", criteria.make), "model", criteria.model)

    logger.info("truck_data_searched", dataset_hits=len(dataset), model_hits=len(models))
    return {
        "success": True,
        "searchCriteria": criteria.model_dump(by_alias=True) if criteria else None,
        "results": {
            "dataset": {"count": len(dataset), "results": dataset[:RESULT_LIMIT]},
            "models": {"count": len(models), "results": models[:RESULT_LIMIT]},
        },
        "timestamp": _now(),
    }


@router.get("/status")
def data_status(static: StaticData = Depends(get_static)):
    return {"success": True, **static.status_report(), "timestamp": _now()}
