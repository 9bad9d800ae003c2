from .resolver import get_chat_messages, update_active_messages, update_active_messages_for_chat
from .fork import create_branch_from_message_edit
from .navigator import navigate_to_branch, get_message_branches
from .cleanup import handle_message_deletion, delete_chat, delete_all_user_chats, delete_user_account

__all__ = [
    "get_chat_messages",
    "update_active_messages",
    "update_active_messages_for_chat",
    "create_branch_from_message_edit",
    "navigate_to_branch",
    "get_message_branches",
    "handle_message_deletion",
    "delete_chat",
    "delete_all_user_chats",
    "delete_user_account",
]
