# app/routers/branch.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Form
from sqlalchemy.orm import Session

from app.core import chats
from app.core.auth import get_current_user_id
from app.core.branching import (
    create_branch_from_message_edit,
    get_message_branches,
    navigate_to_branch,
)
from app.core.branching.repository import MessageRepository
from app.core.database import get_db
from app.core.errors import NotFoundError
from app.schemas.branch import (
    BranchEditResponse,
    BranchNavigationResponse,
    BranchResponse,
    BranchWithMessagesResponse,
    MainBranchResponse,
    MessageBranchesResponse,
)
from app.schemas.message import MessageResponse

router = APIRouter()

@router.post("/main", response_model=MainBranchResponse)
def create_main_branch(
    chat_id: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Create the main branch of a chat that does not have one yet.
    Chats created through /chat/new already have theirs.
    """
    return MainBranchResponse(branch_id=chats.create_main_branch(db, chat_id, user_id))

@router.post("/edit", response_model=BranchEditResponse)
def edit_message(
    message_id: str = Form(...),
    new_content: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Edit a message by forking the conversation at it.

    - **message_id**: The message being edited (an edited version works too).
    - **new_content**: The replacement text.

    Returns the new branch, its number and how many branches now exist at this message.
    """
    return create_branch_from_message_edit(db, message_id, new_content, user_id)

@router.post("/navigate", response_model=BranchNavigationResponse)
def navigate(
    message_id: str = Form(...),
    branch_id: str = Form(...),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Make another branch forked at `message_id` the one in view.
    """
    return navigate_to_branch(db, message_id, branch_id, user_id)

@router.get("/message/{message_id}", response_model=Optional[MessageBranchesResponse])
def message_branches(message_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """
    The versions available at a message with a "current/total" label,
    or null if the message was never edited.
    """
    message = MessageRepository(db).get(message_id)
    if message is not None:
        chats.get_chat(db, message.chat_id, user_id)
    return get_message_branches(db, message_id)

@router.get("/chat/{chat_id}", response_model=List[BranchResponse])
def chat_branches(chat_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    chats.get_chat(db, chat_id, user_id)
    return [BranchResponse.model_validate(branch) for branch in chats.get_chat_branches(db, chat_id)]

@router.get("/chat/{chat_id}/main", response_model=Optional[BranchResponse])
def main_branch(chat_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    chats.get_chat(db, chat_id, user_id)
    branch = chats.get_main_branch(db, chat_id)
    return BranchResponse.model_validate(branch) if branch else None

@router.get("/{branch_id}", response_model=BranchWithMessagesResponse)
def branch_with_messages(branch_id: str, user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """
    A branch with its messages populated and sorted by timestamp.
    """
    found = chats.get_branch_with_messages(db, branch_id)
    if found is None:
        raise NotFoundError("Branch not found.")
    branch, messages = found
    chats.get_chat(db, branch.chat_id, user_id)

    response = BranchWithMessagesResponse.model_validate(branch)
    response.populated_messages = [MessageResponse.model_validate(message) for message in messages]
    return response
