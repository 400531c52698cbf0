from pydantic import BaseModel
from typing import Optional

class MessageCreate(BaseModel):
    repairId: Optional[str] = None
    content: Optional[str] = None
