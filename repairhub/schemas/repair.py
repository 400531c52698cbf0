from pydantic import BaseModel, Field
from typing import Optional

class RepairCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None

class RepairUpdate(BaseModel):
    status: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review: Optional[str] = None
