from fastapi import APIRouter

from app.services import location_service

router = APIRouter()


@router.get("/zip/{zip_code}")
async def lookup_zip(zip_code: str):
    """City and state for a 5-digit ZIP code (used for profile autofill)."""
    return {"success": True, **location_service.require_zip(zip_code)}
