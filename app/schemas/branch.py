# app/schemas/branch.py
from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from app.schemas.message import MessageResponse

class BranchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    chat_id: str
    from_message_id: Optional[str] = None
    messages: List[str] = []
    is_main: bool
    branch_name: Optional[str] = None
    description: Optional[str] = None
    created_at: int
    updated_at: int

class BranchWithMessagesResponse(BranchResponse):
    populated_messages: List[MessageResponse] = []

class MainBranchResponse(BaseModel):
    branch_id: str

class BranchEditResponse(BaseModel):
    new_branch_id: str
    new_message_id: str
    branch_number: int
    total_branches: int
    active_branch_name: str

class BranchNavigationResponse(BaseModel):
    switched_to_branch: str
    branch_name: Optional[str] = None
    success: bool = True

class MessageBranchEntry(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    display_number: int  # 1-based position in the message's branches list
    message_count: int
    created_at: int

class MessageBranchesResponse(BaseModel):
    branches: List[MessageBranchEntry]
    total_branches: int
    active_branch_id: Optional[str] = None
    current_display_number: int
    navigation_display: str  # "current/total"

class ActiveMessagesResponse(BaseModel):
    chat_id: str
    active_messages: List[str]
