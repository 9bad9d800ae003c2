# app/routers/message.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.branching import handle_message_deletion
from app.core.database import get_db
from app.schemas.message import MessageDeletionResponse

router = APIRouter()

@router.delete("/{message_id}", response_model=MessageDeletionResponse)
def delete_message(message_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """
    Delete a message along with every branch forked at it.

    If the chat would be left on an empty or deleted branch it falls back to
    its main branch.
    """
    return handle_message_deletion(db, message_id, user_id)
