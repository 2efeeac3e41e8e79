"""Read-only access to the JSON/CSV datasets shipped with the service.

Files are read lazily on first use and kept in memory afterwards; the
data directory defaults to the package's ``data/`` folder and can be
pointed elsewhere with ``STATIC_DATA_DIR``.
"""

from __future__ import annotations

import csv
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger()

TRUCK_DATASET = "truck_dataset.json"
TRUCK_DATASET_NON_US = "truck_dataset_non_us.json"
TRUCK_SCHEMA = "truck_schema.json"
TRUCK_MANUALS = "truck_manuals_dataset.csv"
TRUCK_MODELS = "truck_models.json"

# Files reported by the data status endpoint, keyed by their public name.
DATA_FILES: Dict[str, str] = {
    "truckDataset": TRUCK_DATASET,
    "truckDatasetNonUS": TRUCK_DATASET_NON_US,
    "truckSchema": TRUCK_SCHEMA,
    "truckManuals": TRUCK_MANUALS,
    "truckModels": TRUCK_MODELS,
}


def _record_count(data: Any) -> int:
    if isinstance(data, list):
        return len(data)
    if isinstance(data, dict):
        # {"trucks": [...]} wrappers count their rows, not their keys.
        if len(data) == 1:
            (only,) = data.values()
            if isinstance(only, list):
                return len(only)
        return len(data)
    return 1


def _sample_keys(data: Any) -> List[str]:
    if isinstance(data, dict) and len(data) == 1:
        (only,) = data.values()
        if isinstance(only, list):
            data = only
    if isinstance(data, list):
        return list(data[0].keys()) if data and isinstance(data[0], dict) else []
    if isinstance(data, dict):
        return list(data.keys())[:5]
    return []


class StaticData:
    """Lazy, cached loader over one data directory."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()
        self._cache: Dict[str, Any] = {}

    def path(self, name: str) -> Path:
        return self.data_dir / name

    def load_json(self, name: str) -> Any:
        """Parse ``name`` once and return the cached value afterwards.

        Raises:
            FileNotFoundError: if the file does not exist.
            json.JSONDecodeError: if it is not valid JSON.
        """
        with self._lock:
            if name not in self._cache:
                with self.path(name).open("r", encoding="utf-8") as fh:
                    self._cache[name] = json.load(fh)
                logger.info("static_data_loaded", file=name)
            return self._cache[name]

    def _optional_rows(self, name: str) -> List[dict]:
        try:
            return list(self.load_json(name).get("trucks", []))
        except FileNotFoundError:
            logger.info("static_data_missing", file=name)
            return []

    # -- datasets -----------------------------------------------------------

    def truck_dataset(self) -> List[dict]:
        """US and non-US truck rows (``StaticTruckData`` shape)."""
        us_rows = list(self.load_json(TRUCK_DATASET).get("trucks", []))
        return us_rows + self._optional_rows(TRUCK_DATASET_NON_US)

    def truck_schema(self) -> dict:
        return self.load_json(TRUCK_SCHEMA)

    def truck_models(self) -> List[dict]:
        """Curated model list with years, engines and common issues."""
        return self.load_json(TRUCK_MODELS)

    def service_locations(self) -> List[dict]:
        return self.load_json("service_locations.json")

    def repair_guides(self) -> List[dict]:
        return self.load_json("repair_guides.json")

    def youtube_tutorials(self) -> Dict[str, List[dict]]:
        return self.load_json("youtube_tutorials.json")

    def public_apis(self) -> Dict[str, List[dict]]:
        return self.load_json("public_apis.json")

    def cross_reference(self) -> dict:
        return self.load_json("cross_reference.json")

    def demo_fleet(self) -> dict:
        return self.load_json("demo_fleet.json")

    # -- status -------------------------------------------------------------

    def file_status(self, name: str) -> dict:
        """Presence, size and shape of one data file. Never raises."""
        path = self.path(name)
        if not path.exists():
            return {"exists": False, "error": "File not found"}
        try:
            stat = path.stat()
            status: Dict[str, Any] = {
                "exists": True,
                "size": stat.st_size,
                "lastModified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            }
            if name.endswith(".csv"):
                with path.open("r", encoding="utf-8", newline="") as fh:
                    rows = [row for row in csv.reader(fh) if any(cell.strip() for cell in row)]
                status.update(
                    type="csv",
                    recordCount=max(len(rows) - 1, 0),
                    headers=rows[0] if rows else [],
                )
            else:
                with path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
                status.update(
                    type="json",
                    recordCount=_record_count(data),
                    sampleKeys=_sample_keys(data),
                )
            return status
        except (OSError, ValueError) as exc:
            return {"exists": False, "error": str(exc)}

    def status_report(self) -> dict:
        files = {key: self.file_status(name) for key, name in DATA_FILES.items()}
        existing = sum(1 for f in files.values() if f["exists"])
        return {
            "dataDir": str(self.data_dir),
            "dataFiles": files,
            "summary": {
                "totalFiles": len(files),
                "existingFiles": existing,
                "missingFiles": len(files) - existing,
            },
        }


def manual_rows(static: StaticData, make: Optional[str] = None) -> List[dict]:
    """Rows of the manuals CSV, optionally filtered by make."""
    path = static.path(TRUCK_MANUALS)
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", newline="") as fh:
        rows = list(csv.DictReader(fh))
    if make:
        rows = [r for r in rows if r.get("make", "").lower() == make.lower()]
    return rows
