from __future__ import annotations


# PUBLIC_INTERFACE
class PersistenceError(Exception):
    """
    Raised by repositories when the backing store fails: unreachable store,
    constraint violation or malformed id format.

    Route handlers do not translate it; it reaches the ASGI server as an
    unhandled error and the client receives a plain 500 response.
    """


# PUBLIC_INTERFACE
class TaskValidationError(PersistenceError):
    """A task record violates a store constraint (missing title, bad priority, ...)."""


# PUBLIC_INTERFACE
class InvalidTaskIdError(PersistenceError):
    """The given identifier does not have the store's id format."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Invalid task id: {task_id!r}")
        self.task_id = task_id
