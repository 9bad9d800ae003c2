"""
Text search over conversations. Only the path currently in view is searched
(base_messages plus the active branch), never inactive branches.
"""
import logging
import math
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.branching.repository import ChatRepository
from app.core.branching.resolver import get_chat_messages
from app.core.chats import get_chat
from app.core.config import SEARCH_DEFAULT_LIMIT, SEARCH_SNIPPET_RADIUS
from app.models.message import Message
from app.schemas.search import ChatSearchHit, UserSearchHit

logger = logging.getLogger(__name__)


def _find(message: Message, query_lower: str) -> Optional[Tuple[int, str]]:
    """Index of the first case-insensitive match and the snippet around it."""
    content = message.content or ""
    index = content.lower().find(query_lower)
    if index == -1:
        return None
    start = max(0, index - SEARCH_SNIPPET_RADIUS)
    end = min(len(content), index + len(query_lower) + SEARCH_SNIPPET_RADIUS)
    return index, content[start:end]


def _score(content: str, index: int, query_length: int, path_length: int) -> float:
    # Matches near the start of a message rank highest
    distance_from_end = len(content) - (index + query_length)
    score = (
        100
        - min(90, index)
        - min(10, math.log10(path_length + 1) * 4)
        - min(20, distance_from_end / 10)
    )
    return round(score, 2)


def search_messages_in_chat(
    db: Session, chat_id: str, user_id: str, query: str, limit: Optional[int] = None
) -> List[ChatSearchHit]:
    """Matches in the chat's conversation in view, oldest first."""
    chat = get_chat(db, chat_id, user_id)
    query = query.strip()
    if not query:
        return []
    query_lower = query.lower()

    hits = []
    for message in get_chat_messages(db, chat.id):
        found = _find(message, query_lower)
        if found is None:
            continue
        _, snippet = found
        hits.append(ChatSearchHit(
            message_id=message.id,
            chat_id=chat.id,
            role=message.role,
            timestamp=message.timestamp,
            snippet=snippet,
            full_match=len(message.content.strip()) == len(query),
        ))
        if limit and len(hits) >= limit:
            break
    return hits


def search_user_messages(
    db: Session, user_id: str, query: str, limit: int = SEARCH_DEFAULT_LIMIT
) -> List[UserSearchHit]:
    """Matches across the caller's own chats, best score first."""
    query = query.strip()
    if not query:
        return []
    query_lower = query.lower()

    hits = []
    for chat in ChatRepository(db).list_for_user(user_id):
        path = get_chat_messages(db, chat.id)
        for message in path:
            found = _find(message, query_lower)
            if found is None:
                continue
            index, snippet = found
            hits.append(UserSearchHit(
                message_id=message.id,
                chat_id=chat.id,
                chat_title=chat.title,
                role=message.role,
                timestamp=message.timestamp,
                snippet=snippet,
                score=_score(message.content, index, len(query), len(path)),
            ))
            if len(hits) >= limit:
                break
        if len(hits) >= limit:
            break

    hits.sort(key=lambda hit: (hit.score, hit.timestamp), reverse=True)
    logger.debug("Search for %r over chats of %s: %d hits", query, user_id, len(hits))
    return hits
