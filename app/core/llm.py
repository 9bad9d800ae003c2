# app/core/llm.py
import logging
from typing import Iterator, List, Optional

from openai import OpenAI
from sqlalchemy.orm import Session

from app.core.branching.resolver import get_chat_messages
from app.core.chats import add_message, get_chat
from app.core.config import DEFAULT_MODEL, OPENAI_API_KEY, OPENAI_BASE_URL, SYSTEM_PROMPT
from app.models.message import Message

logger = logging.getLogger(__name__)


def build_conversation(history: List[Message], system_prompt: str = SYSTEM_PROMPT) -> List[dict]:
    conversation = [{"role": "system", "content": system_prompt}]
    conversation.extend({"role": message.role, "content": message.content} for message in history)
    return conversation


def stream_completion(
    conversation: List[dict],
    model: str = DEFAULT_MODEL,
    base_url: str = OPENAI_BASE_URL,
    api_key: str = OPENAI_API_KEY,
) -> Iterator[str]:
    """
    Calls a chat completions API (OpenAI compatible) with streaming enabled
    and yields the text deltas as they arrive.
    """
    client = OpenAI(base_url=base_url, api_key=api_key or None)
    stream = client.chat.completions.create(
        model=model,
        messages=conversation,
        stream=True,
    )
    for chunk in stream:
        if not chunk.choices:
            continue
        delta = chunk.choices[0].delta.content
        if delta:
            yield delta


def generate_reply(db: Session, chat_id: str, user_id: str, model: Optional[str] = None) -> Message:
    """
    Produce the next assistant turn from the conversation currently in view
    and store it on the active branch.
    """
    chat = get_chat(db, chat_id, user_id)
    model = model or chat.model or DEFAULT_MODEL
    history = get_chat_messages(db, chat.id)
    logger.info("Generating reply for chat %s with %s over %d messages", chat.id, model, len(history))

    text = "".join(stream_completion(build_conversation(history), model=model))
    return add_message(db, chat.id, user_id, "assistant", text, model=model)
