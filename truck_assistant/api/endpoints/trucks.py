"""Truck catalogue endpoints."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from truck_assistant.api.deps import get_catalog, get_static
from truck_assistant.catalog.static_data import StaticData
from truck_assistant.catalog.truck_catalog import TruckCatalog, TruckModel

logger = structlog.get_logger()

router = APIRouter()


@router.get("")
def list_trucks(
    make: Optional[str] = Query(None),
    model: Optional[str] = Query(None),
    catalog: TruckCatalog = Depends(get_catalog),
):
    """All makes; the models of ``make``; or the records for ``make`` + ``model``."""
    if make and model:
        trucks, source = catalog.trucks(make, model)
        return {
            "success": True,
            "trucks": [t.model_dump(by_alias=True) for t in trucks],
            "source": source,
        }
    if make:
        models, source = catalog.models(make)
        return {"success": True, "models": models, "source": source}
    makes, source = catalog.makes()
    return {"success": True, "makes": makes, "source": source}


@router.get("/search")
def search_trucks(
    q: Optional[str] = Query(None, description="Make, model, engine or notes text"),
    catalog: TruckCatalog = Depends(get_catalog),
):
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    trucks, source = catalog.search(q.strip())
    return {
        "success": True,
        "trucks": [t.model_dump(by_alias=True) for t in trucks],
        "source": source,
    }


@router.get("/models")
def list_truck_models(
    make: Optional[str] = Query(None),
    static: StaticData = Depends(get_static),
):
    """Curated model list, optionally restricted to one make."""
    models = [TruckModel.model_validate(m) for m in static.truck_models()]
    if make:
        models = [m for m in models if m.make.lower() == make.lower()]
    return {
        "success": True,
        "models": [m.model_dump(by_alias=True) for m in models],
        "count": len(models),
    }


@router.get("/models/{model_id}")
def get_truck_model(model_id: str, static: StaticData = Depends(get_static)):
    for raw in static.truck_models():
        if raw.get("id") == model_id:
            return {"success": True, "model": TruckModel.model_validate(raw).model_dump(by_alias=True)}
    raise HTTPException(status_code=404, detail=f"Truck model {model_id} not found")
