# app/schemas/auth.py
from pydantic import BaseModel, EmailStr
from typing import List, Optional

class UserChat(BaseModel):
    id: str
    title: str
    updated_at: Optional[int] = None

class AuthRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = None

class AuthResponse(BaseModel):
    user_id: str
    email: EmailStr
    chats: List[UserChat]
