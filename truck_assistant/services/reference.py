"""VIN validation and the vehicle cross-reference report."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger()

# ISO 3779 / FMVSS 115 check-digit transliteration values
_TRANSLITERATION = {
    'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6, 'G': 7, 'H': 8,
    'J': 1, 'K': 2, 'L': 3, 'M': 4, 'N': 5, 'P': 7, 'R': 9,
    'S': 2, 'T': 3, 'U': 4, 'V': 5, 'W': 6, 'X': 7, 'Y': 8, 'Z': 9,
}

_POSITIONAL_WEIGHTS = [8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2]

_VIN_PATTERN = re.compile(r'[A-HJ-NPR-Z0-9]{17}')

NHTSA_DECODE_URL = "https://vpic.nhtsa.dot.gov/api/vehicles/DecodeVin/{vin}?format=json"


@dataclass(frozen=True)
class VinValidation:
    vin: str
    is_valid: bool
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"vin": self.vin, "isValid": self.is_valid, "details": self.details}


def mask_vin(vin: str) -> str:
    """VINs are personal data; only the WMI and serial tail reach the logs."""
    return vin[:3] + "***********" + vin[-4:] if len(vin) >= 7 else "***"


def vin_check_digit(vin: str) -> str:
    """Expected check digit (position 9) per ISO 3779 / FMVSS 115."""
    total = 0
    for char, weight in zip(vin, _POSITIONAL_WEIGHTS):
        value = int(char) if char.isdigit() else _TRANSLITERATION.get(char, 0)
        total += value * weight
    remainder = total % 11
    return 'X' if remainder == 10 else str(remainder)


def validate_vin(raw: str) -> VinValidation:
    """Format, character and check-digit validation."""
    vin = raw.upper().strip()
    masked = mask_vin(vin)

    if len(vin) != 17:
        logger.info("vin_validation_performed", vin_masked=masked, is_valid=False, reason="invalid_length")
        return VinValidation(vin, False, {"error": f"Invalid length: {len(vin)}. Expected 17."})

    # VINs must be alphanumeric, excluding I, O, Q (ISO 3779)
    if not _VIN_PATTERN.fullmatch(vin):
        logger.info("vin_validation_performed", vin_masked=masked, is_valid=False, reason="invalid_characters")
        return VinValidation(
            vin,
            False,
            {"error": "VIN must contain only alphanumeric characters (A-Z, 0-9, excluding I, O, Q)."},
        )

    if vin[8] != vin_check_digit(vin):
        logger.info("vin_validation_performed", vin_masked=masked, is_valid=False, reason="invalid_check_digit")
        return VinValidation(vin, False, {"error": "Check digit (position 9) is invalid."})

    logger.info("vin_validation_performed", vin_masked=masked, is_valid=True, validation_level="full")
    return VinValidation(vin, True, {"standard": "ISO 3779", "validationLevel": "full"})


def build_cross_reference(
    reference: dict,
    vin: Optional[str] = None,
    year: Optional[str] = None,
    make: Optional[str] = None,
    model: Optional[str] = None,
) -> dict:
    """Assemble the cross-referenced vehicle report.

    *reference* is the static reference document (recalls, suppliers,
    diagnostic codes, bulletins, schedules). The caller validates that
    either *vin* or all of *year*, *make* and *model* are present.
    """
    vehicle = dict(reference.get("vehicleDefaults", {}))
    vehicle.update(
        vin=vin or f"Generated-{year}-{make}-{model}",
        year=year or vehicle.get("year", "2020"),
        make=(make or vehicle.get("make", "FREIGHTLINER")),
        model=(model or vehicle.get("model", "CASCADIA")),
    )
    nhtsa: Dict[str, Any] = {
        "recalls": reference.get("recalls", []),
        "safetyRatings": reference.get("safetyRatings", {}),
    }
    if vin:
        nhtsa["url"] = NHTSA_DECODE_URL.format(vin=vin)

    return {
        "data": {
            "vehicleInfo": vehicle,
            "nhtsa": nhtsa,
            "partsSuppliers": reference.get("partsSuppliers", []),
            "serviceLocations": reference.get("serviceLocations", []),
            "diagnosticCodes": reference.get("diagnosticCodes", []),
            "technicalBulletins": reference.get("technicalBulletins", []),
            "maintenanceSchedule": reference.get("maintenanceSchedule", {}),
        },
        "sources": reference.get("sources", []),
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
    }
