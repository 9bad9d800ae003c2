# app/models/preferences.py
from sqlalchemy import Column, String, ForeignKey
from app.models.base import Base

class Preferences(Base):
    __tablename__ = "preferences"

    id = Column(String, primary_key=True, index=True)  # UUID as string
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    default_model = Column(String)
    theme = Column(String)  # "light", "dark" or "system"
