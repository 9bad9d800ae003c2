# app/models/user.py
from sqlalchemy import Column, String, Integer
from app.models.base import Base, now_ms

class User(Base):
    __tablename__ = "users"
    
    id = Column(String, primary_key=True, index=True)   # Use a UUID string
    email = Column(String, unique=True, nullable=False)
    name = Column(String)
    created_at = Column(Integer, nullable=False, default=now_ms)
