# app/schemas/message.py
from pydantic import BaseModel, ConfigDict
from typing import List, Optional

class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    chat_id: str
    branch_id: str
    role: str
    content: str
    timestamp: int
    model: Optional[str] = None
    branches: List[str] = []
    active_branch_id: Optional[str] = None
    edit_of: Optional[str] = None

class MessageDeletionResponse(BaseModel):
    success: bool = True
    deleted_branches: int
