"""
Domain exceptions raised by services and mapped to HTTP responses in main.py.
"""


class AgentChatError(Exception):
    """Base class for application errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AgentChatError):
    """Input failed a business rule (length, format). Never retried."""

    status_code = 400


class NotFoundError(AgentChatError):
    """Resource is missing or not owned by the caller."""

    status_code = 404


class ConflictError(AgentChatError):
    """Resource already exists."""

    status_code = 409


class StoreError(AgentChatError):
    """Persistence failed; no partial state was left visible."""

    status_code = 500
