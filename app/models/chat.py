# app/models/chat.py
from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, String
from app.models.base import Base, now_ms

class Chat(Base):
    __tablename__ = "chats"
    
    id = Column(String, primary_key=True, index=True)  # UUID as string
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    model = Column(String, nullable=False)
    created_at = Column(Integer, nullable=False, default=now_ms)
    updated_at = Column(Integer, nullable=False, default=now_ms, index=True)

    # Sharing flags; link issuance lives outside this service
    is_public = Column(Boolean, nullable=False, default=False)
    share_mode = Column(String)  # "read-only" or "collaboration"

    # Set on chats forked from another chat
    parent_chat_id = Column(String)
    branch_point = Column(String)

    # Branching pointers. Plain ids, kept consistent by the branching engine.
    active_branch_id = Column(String)
    base_messages = Column(JSON, nullable=False, default=list)
    active_messages = Column(JSON, nullable=False, default=list)
