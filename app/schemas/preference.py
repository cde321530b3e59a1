from typing import Literal, Optional

from pydantic import BaseModel


class ThemeRequest(BaseModel):
    theme: Optional[Literal["light", "dark", "system"]] = None


class LayoutPreferencesRequest(BaseModel):
    """
    Partial update of dashboard layout settings. Omitted fields are kept.
    """
    theme: Optional[Literal["light", "dark", "system"]] = None
    rtl: Optional[bool] = None
    boxed: Optional[bool] = None
    container: Optional[bool] = None
    caption_show: Optional[bool] = None
    preset: Optional[str] = None
