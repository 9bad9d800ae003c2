# app/models/message.py
from sqlalchemy import Column, ForeignKey, Index, Integer, JSON, String
from app.models.base import Base, now_ms

class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_chat_timestamp", "chat_id", "timestamp"),
    )

    id = Column(String, primary_key=True, index=True)  # UUID as string
    chat_id = Column(String, ForeignKey("chats.id"), nullable=False, index=True)
    branch_id = Column(String, nullable=False, index=True)  # branch it was inserted under
    role = Column(String, nullable=False)  # "user", "assistant" or "system"
    content = Column(String, nullable=False)
    timestamp = Column(Integer, nullable=False, default=now_ms)
    model = Column(String)

    # Branches forked at this message and the one currently selected.
    # Empty until the message is edited for the first time.
    branches = Column(JSON, nullable=False, default=list)
    active_branch_id = Column(String)

    # Edited variants point back at the message they replace
    edit_of = Column(String, index=True)
    updated_at = Column(Integer, nullable=False, default=now_ms)

    # Optimistic concurrency: every UPDATE checks and bumps this counter
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
