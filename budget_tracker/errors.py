"""Exception types raised by the budget tracker.

Actions raise these and the web layer turns them into flash messages or
JSON error bodies. Nothing here is swallowed silently.
"""

from __future__ import annotations

from typing import List, Optional


class BudgetTrackerError(Exception):
    """Base class for every error the application raises on purpose."""


class ValidationError(BudgetTrackerError):
    """Input failed validation. ``messages`` holds one line per problem."""

    def __init__(self, messages: str | List[str]):
        if isinstance(messages, str):
            messages = [messages]
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class NotFoundError(BudgetTrackerError):
    def __init__(self, kind: str, ident: object):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} {ident} not found")


class ActionError(BudgetTrackerError):
    """A database write failed and was rolled back."""

    def __init__(self, action: str, reason: Optional[str] = None):
        self.action = action
        message = f"Failed to {action}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class AIServiceError(BudgetTrackerError):
    """The language model could not be reached or gave nothing usable."""


class AIConfigurationError(AIServiceError):
    pass


class AIResponseError(AIServiceError):
    pass


class TransactionParseError(BudgetTrackerError):
    DEFAULT_MESSAGE = "Failed to parse transaction. Please try rephrasing your input."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.DEFAULT_MESSAGE)
