from pydantic import BaseModel


class ChatSearchHit(BaseModel):
    message_id: str
    chat_id: str
    role: str
    timestamp: int
    snippet: str
    full_match: bool  # the whole message is the query


class UserSearchHit(BaseModel):
    message_id: str
    chat_id: str
    chat_title: str
    role: str
    timestamp: int
    snippet: str
    score: float
