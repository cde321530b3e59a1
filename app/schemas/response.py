"""
app/schemas/response.py

Purpose: Error envelope returned by every failing endpoint

    {"error": "...", "code": "UPPER_SNAKE", "details": ... | null}
"""

from pydantic import BaseModel
from typing import Any, List, Optional


class ValidationDetail(BaseModel):
    """One failed field from request validation."""
    loc: List[Any]
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None
