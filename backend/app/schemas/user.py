from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class UserResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    base_currency: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
