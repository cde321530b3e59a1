"""
app/services/location_service.py

Purpose: ZIP code -> city/state lookup for profile autofill

- Built-in table of supported ZIP codes
- Optional georef export (records with zip_code, usps_city, ste_name)
  loaded once from ZIP_DATA_FILE
"""

import json
from typing import Dict, Optional

from app.core.config import settings
from app.core.exceptions import BadRequestError, ResourceNotFoundError
from app.core.logging import get_logger
from utils.validation_utils import validate_zip

logger = get_logger(__name__)

BUILTIN_ZIP_TABLE: Dict[str, Dict[str, str]] = {
    "63017": {"city": "Chesterfield", "state": "MO"},
    "63141": {"city": "St. Louis", "state": "MO"},
    "63105": {"city": "Clayton", "state": "MO"},
    "63131": {"city": "Town and Country", "state": "MO"},
    "63124": {"city": "Ladue", "state": "MO"},
    "63144": {"city": "Brentwood", "state": "MO"},
    "63117": {"city": "Richmond Heights", "state": "MO"},
    "63119": {"city": "Webster Groves", "state": "MO"},
    "63122": {"city": "Kirkwood", "state": "MO"},
    "63021": {"city": "Ballwin", "state": "MO"},
}

_zip_table: Optional[Dict[str, Dict[str, str]]] = None


def load_georef_file(path: str) -> Dict[str, Dict[str, str]]:
    """
    Reads a georef ZIP export.

    Args:
        path: JSON file holding a list of records

    Returns:
        Mapping of ZIP to {city, state}; records missing a field are skipped
    """
    with open(path, "r", encoding="utf-8") as fh:
        records = json.load(fh)

    table = {}
    for record in records:
        zip_code = str(record.get("zip_code") or "").zfill(5)
        city = record.get("usps_city")
        state = record.get("ste_name")
        if validate_zip(zip_code) and city and state:
            table[zip_code] = {"city": city, "state": state}
    return table


def get_zip_table() -> Dict[str, Dict[str, str]]:
    global _zip_table

    if _zip_table is None:
        table = dict(BUILTIN_ZIP_TABLE)
        if settings.ZIP_DATA_FILE:
            try:
                extra = load_georef_file(settings.ZIP_DATA_FILE)
                table.update(extra)
                logger.info(f"Loaded {len(extra)} ZIP codes from {settings.ZIP_DATA_FILE}")
            except (OSError, ValueError) as e:
                logger.error(f"Could not load ZIP data file: {e}")
        _zip_table = table
    return _zip_table


def lookup_zip(zip_code: str) -> Optional[Dict[str, str]]:
    zip_code = (zip_code or "").strip()
    data = get_zip_table().get(zip_code)
    if not data:
        return None
    return {"zip": zip_code, "city": data["city"], "state": data["state"]}


def require_zip(zip_code: str) -> Dict[str, str]:
    """
    Raises:
        BadRequestError: If not five digits
        ResourceNotFoundError: If the ZIP is unknown
    """
    if not validate_zip(zip_code):
        raise BadRequestError("ZIP code must be 5 digits", code="INVALID_ZIP")
    location = lookup_zip(zip_code)
    if not location:
        raise ResourceNotFoundError("ZIP code not found", code="ZIP_NOT_FOUND")
    return location
