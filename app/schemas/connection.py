from typing import Optional

from pydantic import BaseModel, Field

from utils.constants import DEFAULT_CONNECTION_PURPOSE


class ConnectionRequest(BaseModel):
    """
    Body of POST /api/connections/request
    """
    user_id: str = Field(..., description="Receiver's user id")
    purpose: Optional[str] = Field(default=DEFAULT_CONNECTION_PURPOSE, max_length=50)


class ConnectionFixRequest(BaseModel):
    purpose: Optional[str] = Field(default=DEFAULT_CONNECTION_PURPOSE, max_length=50)
