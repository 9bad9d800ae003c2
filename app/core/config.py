# app/core/config.py
import logging
import os

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./chat_branching.db")

DEFAULT_MODEL = os.environ.get("DEFAULT_MODEL", "gpt-4o-mini")
OPENAI_BASE_URL = os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
SYSTEM_PROMPT = os.environ.get(
    "SYSTEM_PROMPT",
    "You are a helpful assistant. Be concise, clear, and correct.",
)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

NEW_CHAT_TITLE = "New Chat"
MAIN_BRANCH_NAME = "Main"
MAIN_BRANCH_DESCRIPTION = "Main conversation thread"
TITLE_MAX_LENGTH = 50

# Characters of context kept on each side of a search match
SEARCH_SNIPPET_RADIUS = 60
SEARCH_DEFAULT_LIMIT = 50


def configure_logging() -> None:
    """
    Configure the root logger once for the whole application.
    Every module logs through logging.getLogger(__name__).
    """
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
