"""
Exceptions raised by the review action dispatcher.

Exception Hierarchy:
    GateError (base)
    ├── AuthorizationError (caller lacks the reviewer capability)
    ├── SessionNotFoundError (no review with that id)
    ├── InvalidTransitionError (review not PENDING or superseded)
    ├── MissingTaskError (no live or cached task to grade)
    ├── FeedbackRequiredError (REVISE without feedback)
    ├── ActionInProgressError (another action on the same review is running)
    └── PersistenceError (store write failed)

Example:
    >>> try:
    ...     raise SessionNotFoundError("rv-9")
    ... except GateError as e:
    ...     print(e)
    Review session 'rv-9' not found
"""


class GateError(Exception):
    """
    Base exception for quality gate errors.

    Attributes:
        message: Human-readable error message
        context: Additional context about the failure
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class AuthorizationError(GateError):
    """Raised when the acting user does not hold the reviewer capability."""

    def __init__(self, user_id: str, **context: object) -> None:
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is not allowed to review work", **context)


class SessionNotFoundError(GateError):
    """Raised when a review session id does not resolve."""

    def __init__(self, session_id: str, **context: object) -> None:
        self.session_id = session_id
        super().__init__(f"Review session '{session_id}' not found", **context)


class InvalidTransitionError(GateError):
    """Raised when an action is not allowed from the review's current state."""

    def __init__(self, session_id: str, message: str, **context: object) -> None:
        self.session_id = session_id
        super().__init__(message, **context)


class MissingTaskError(GateError):
    """Raised when neither the live store nor the snapshot has the task."""

    def __init__(self, session_id: str, task_id: str, **context: object) -> None:
        self.session_id = session_id
        self.task_id = task_id
        super().__init__(
            f"Task '{task_id}' for review '{session_id}' could not be found", **context
        )


class FeedbackRequiredError(GateError):
    """Raised when a revision is requested without saying what to fix."""

    def __init__(self, session_id: str, **context: object) -> None:
        self.session_id = session_id
        super().__init__("Feedback is required to send work back for revision", **context)


class ActionInProgressError(GateError):
    """Raised when a second action targets a review that is still being written."""

    def __init__(self, session_id: str, **context: object) -> None:
        self.session_id = session_id
        super().__init__(f"An action on review '{session_id}' is already in progress", **context)


class PersistenceError(GateError):
    """
    Raised when a store write fails.

    Attributes:
        operation: Name of the write that failed
        rolled_back: False if a compensating write also failed and the
            store may hold partial state
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        rolled_back: bool = True,
        **context: object,
    ) -> None:
        self.operation = operation
        self.rolled_back = rolled_back
        super().__init__(message, **context)
