# app/routers/chat.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, HTTPException
from openai import OpenAIError
from sqlalchemy.orm import Session

from app.core import chats
from app.core.auth import get_current_user_id
from app.core.branching import (
    delete_all_user_chats,
    delete_chat,
    get_chat_messages,
    update_active_messages,
)
from app.core.config import DEFAULT_MODEL, NEW_CHAT_TITLE, SEARCH_DEFAULT_LIMIT
from app.core.database import get_db
from app.core import llm, search
from app.schemas.branch import ActiveMessagesResponse
from app.schemas.chat import ChatResponse, DeleteAllChatsResponse, ForkChatResponse
from app.schemas.message import MessageResponse
from app.schemas.search import ChatSearchHit, UserSearchHit

router = APIRouter()

@router.post("/new", response_model=ChatResponse)
def create_chat(
    title: str = Form(NEW_CHAT_TITLE),
    model: str = Form(DEFAULT_MODEL),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Create a new chat together with its main branch.

    - **title**: The desired title; "New Chat" reuses an existing empty "New Chat".
    - **model**: The model used for AI replies in this chat.

    Returns the chat, with `active_branch_id` pointing at the main branch.
    """
    chat = chats.create_chat(db, user_id, title, model)
    return ChatResponse.model_validate(chat)

@router.get("/", response_model=List[ChatResponse])
def list_chats(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """
    List the caller's chats, most recently updated first.
    """
    return [ChatResponse.model_validate(chat) for chat in chats.list_chats(db, user_id)]

@router.delete("/all", response_model=DeleteAllChatsResponse)
def delete_all_chats(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """
    Delete every chat of the caller with all branches and messages.
    """
    return delete_all_user_chats(db, user_id)

@router.get("/search", response_model=List[UserSearchHit])
def search_my_chats(
    query: str,
    limit: int = SEARCH_DEFAULT_LIMIT,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Search the conversations in view across all of the caller's chats, best match first.
    """
    return search.search_user_messages(db, user_id, query, limit=limit)

@router.patch("/rename", response_model=ChatResponse)
def rename_chat(
    chat_id: str = Form(...),
    new_title: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Rename an existing chat.

    - **chat_id**: The ID of the chat to rename.
    - **new_title**: The new title for the chat.
    """
    chat = chats.rename_chat(db, chat_id, user_id, new_title)
    return ChatResponse.model_validate(chat)

@router.patch("/model", response_model=ChatResponse)
def update_chat_model(
    chat_id: str = Form(...),
    model: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    chat = chats.update_chat_model(db, chat_id, user_id, model)
    return ChatResponse.model_validate(chat)

@router.patch("/visibility", response_model=ChatResponse)
def set_chat_visibility(
    chat_id: str = Form(...),
    is_public: bool = Form(...),
    share_mode: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Make a chat public (read-only or collaborative) or private again. Owner only.
    """
    chat = chats.set_chat_visibility(db, chat_id, user_id, is_public, share_mode)
    return ChatResponse.model_validate(chat)

@router.post("/fork", response_model=ForkChatResponse)
def fork_chat(
    message_id: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Copy the conversation up to and including `message_id` into a new chat
    owned by the caller.
    """
    return chats.fork_chat_from_message(db, message_id, user_id)

@router.post("/branch", response_model=ChatResponse)
def branch_chat(
    original_chat_id: str = Form(...),
    message_id: str = Form(...),
    title: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Same as /fork, addressed by chat, with a custom title for the new chat.
    """
    new_chat_id = chats.branch_chat(db, original_chat_id, message_id, title, user_id)
    return ChatResponse.model_validate(chats.get_chat(db, new_chat_id, user_id))

@router.get("/{chat_id}", response_model=ChatResponse)
def get_chat(chat_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return ChatResponse.model_validate(chats.get_chat(db, chat_id, user_id))

@router.delete("/{chat_id}")
def remove_chat(chat_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """
    Delete the chat identified by `chat_id` with all of its branches and messages.

    Returns a message indicating successful deletion.
    """
    delete_chat(db, chat_id, user_id)
    return {"detail": "Chat deleted successfully."}

@router.get("/{chat_id}/messages", response_model=List[MessageResponse])
def chat_messages(
    chat_id: str,
    exclude_message_id: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    The conversation currently in view: base messages plus the active branch,
    ordered by timestamp.
    """
    chats.get_chat(db, chat_id, user_id)
    messages = get_chat_messages(db, chat_id, exclude_message_id=exclude_message_id)
    return [MessageResponse.model_validate(message) for message in messages]

@router.post("/{chat_id}/messages", response_model=MessageResponse)
def add_message(
    chat_id: str,
    content: str = Form(...),
    role: str = Form("user"),
    model: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Append a message to the active branch of the chat.
    """
    message = chats.add_message(db, chat_id, user_id, role, content, model=model)
    return MessageResponse.model_validate(message)

@router.post("/{chat_id}/generate", response_model=MessageResponse)
def generate_reply(
    chat_id: str,
    model: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Ask the model for the next assistant message, using the conversation in
    view as history, and store the reply on the active branch.
    """
    try:
        message = llm.generate_reply(db, chat_id, user_id, model=model)
    except OpenAIError as exc:
        raise HTTPException(status_code=502, detail=f"Model request failed: {exc}")
    return MessageResponse.model_validate(message)

@router.post("/{chat_id}/active-messages", response_model=ActiveMessagesResponse)
def sync_active_messages(chat_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """
    Recompute the chat's cached `active_messages`. Idempotent.
    """
    active_messages = update_active_messages(db, chat_id, user_id)
    return ActiveMessagesResponse(chat_id=chat_id, active_messages=active_messages)

@router.get("/{chat_id}/search", response_model=List[ChatSearchHit])
def search_chat(
    chat_id: str,
    query: str,
    limit: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Search the conversation in view (base messages plus the active branch).
    Inactive branches are not searched.
    """
    return search.search_messages_in_chat(db, chat_id, user_id, query, limit=limit)
