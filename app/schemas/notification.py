from typing import List, Optional

from pydantic import BaseModel


class MarkReadRequest(BaseModel):
    """Ids to mark read; omitted or empty marks everything."""
    notification_ids: Optional[List[str]] = None


class ConnectionNotificationRequest(BaseModel):
    connection_id: str
    receiver_id: str


class TestNotificationRequest(BaseModel):
    message: Optional[str] = None
