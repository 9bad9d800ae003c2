# app/models/branch.py
from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, JSON, String
from app.models.base import Base, now_ms

class Branch(Base):
    __tablename__ = "branches"
    __table_args__ = (
        Index("ix_branches_chat_main", "chat_id", "is_main"),
    )

    id = Column(String, primary_key=True, index=True)  # UUID as string
    chat_id = Column(String, ForeignKey("chats.id"), nullable=False, index=True)
    from_message_id = Column(String, index=True)  # None for the main branch
    messages = Column(JSON, nullable=False, default=list)  # ordered message ids
    is_main = Column(Boolean, nullable=False, default=False)
    branch_name = Column(String)
    description = Column(String)
    created_at = Column(Integer, nullable=False, default=now_ms)
    updated_at = Column(Integer, nullable=False, default=now_ms)
