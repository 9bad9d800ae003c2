# app/schemas/chat.py
from pydantic import BaseModel, ConfigDict
from typing import List, Optional

class ChatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    model: str
    created_at: int
    updated_at: int
    is_public: bool = False
    share_mode: Optional[str] = None
    parent_chat_id: Optional[str] = None
    branch_point: Optional[str] = None
    active_branch_id: Optional[str] = None
    base_messages: List[str] = []
    active_messages: List[str] = []

class ForkChatResponse(BaseModel):
    new_chat_id: str
    message_count: int

class DeleteAllChatsResponse(BaseModel):
    deleted_chats: int

class AccountDeletionResponse(BaseModel):
    success: bool = True
    deleted_chats: int
    deleted_user: bool
