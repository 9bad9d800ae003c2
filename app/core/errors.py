# app/core/errors.py
"""
Domain errors raised by the branching engine and the chat aggregate.

Each error carries the HTTP status the API layer answers with; the exception
handlers in app.main turn them into {"detail": ...} responses.
"""


class ChatBranchingError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ChatBranchingError):
    """A chat, branch or message does not exist."""
    status_code = 404


class UnauthorizedError(ChatBranchingError):
    """The caller neither owns the chat nor may collaborate on it."""
    status_code = 403


class InvalidStateError(ChatBranchingError):
    """The request contradicts the current branch structure."""
    status_code = 409


class ConflictError(ChatBranchingError):
    """Another transaction changed the same message first."""
    status_code = 409
