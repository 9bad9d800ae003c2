# app/routers/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import uuid4

from app.core.auth import get_current_user_id
from app.core.branching import delete_user_account
from app.core.branching.repository import ChatRepository
from app.core.database import get_db
from app.models.preferences import Preferences
from app.models.user import User
from app.core.config import DEFAULT_MODEL
from app.schemas.auth import AuthRequest, AuthResponse, UserChat
from app.schemas.chat import AccountDeletionResponse

router = APIRouter()

@router.post("/login", response_model=AuthResponse)
def auth(payload: AuthRequest, db: Session = Depends(get_db)):
    """
    Receives an email, checks if the user exists.
    If not, creates the user (and default preferences).
    Returns the user's id along with summaries of all their chats.
    """
    # 1. Check if the user exists
    user = db.query(User).filter(User.email == payload.email).first()

    # 2. If not found, create user and default preferences
    if not user:
        user = User(id=str(uuid4()), email=payload.email, name=payload.name)
        db.add(user)
        db.add(Preferences(id=str(uuid4()), user_id=user.id, default_model=DEFAULT_MODEL, theme="system"))
        db.commit()
        db.refresh(user)

    # 3. Retrieve the user's chats
    chat_list = [
        UserChat(id=chat.id, title=chat.title, updated_at=chat.updated_at)
        for chat in ChatRepository(db).list_for_user(user.id)
    ]

    return AuthResponse(user_id=user.id, email=user.email, chats=chat_list)

@router.delete("/account", response_model=AccountDeletionResponse)
def delete_account(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """
    Delete the caller's chats (with branches and messages), preferences and user record.
    """
    return delete_user_account(db, user_id)
