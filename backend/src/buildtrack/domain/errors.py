"""Domain exceptions for workflow operations.

Every exception carries the HTTP status code it maps to; main.py installs a
single handler that turns any WorkflowError into a JSON error response.
"""


class WorkflowError(Exception):
    """Base class for workflow failures."""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFoundError(WorkflowError):
    """Referenced entity does not exist."""
    status_code = 404


class InvalidTransitionError(WorkflowError):
    """Requested status change is not in the transition table or a guard failed."""
    status_code = 409


class ForbiddenError(WorkflowError):
    """Actor lacks the role or right required for the operation."""
    status_code = 403


class StorageError(WorkflowError):
    """Object store copy, delete or lookup failed."""
    status_code = 502


class PreconditionFailedError(WorkflowError):
    """Operation invoked outside the state it requires (e.g. without an active transaction)."""
    status_code = 412


class InvalidInputError(WorkflowError):
    """Request references something that exists but is unusable for this operation."""
    status_code = 400
