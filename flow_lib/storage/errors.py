"""Error taxonomy for storage adapters.

Every adapter re-wraps whatever its medium raises into a `StorageError`
carrying a stable code of the form `<BACKEND>_STORAGE_<OPERATION>_ERROR`.
"Not found" is never an error: `get` returns None and `delete` is a no-op.
"""
from __future__ import annotations
from typing import Optional

LOCAL = "local"
CLOUD = "cloud"

GET = "get"
SET = "set"
DELETE = "delete"
LIST = "list"
CLEAR = "clear"

OPERATIONS = (GET, SET, DELETE, LIST, CLEAR)

CLOUD_NOT_CONFIGURED = "CLOUD_STORAGE_NOT_CONFIGURED"
BACKEND_UNKNOWN = "STORAGE_BACKEND_UNKNOWN"

# Human readable verbs used when building messages
_VERBS = {
    GET: "get item from",
    SET: "set item in",
    DELETE: "delete item from",
    LIST: "list items from",
    CLEAR: "clear",
}


def error_code(backend: str, operation: str) -> str:
    """Return the stable code for a (backend, operation) pair.

    >>> error_code('local', 'get')
    'LOCAL_STORAGE_GET_ERROR'
    """
    if operation not in OPERATIONS:
        raise ValueError(f"Unknown storage operation {operation!r}")
    return f"{backend.upper()}_STORAGE_{operation.upper()}_ERROR"


class StorageError(Exception):
    """Error raised by storage adapters.

    `code` is stable and meant for programmatic checks; `message` is for
    humans. `backend` and `operation` are filled in for I/O failures.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        *,
        backend: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.backend = backend
        self.operation = operation

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r})"


class StorageNotConfiguredError(StorageError):
    """The selected backend cannot be used with the supplied configuration."""


def wrap(exc: BaseException, backend: str, operation: str, where: str) -> StorageError:
    """Build the taxonomy error for `exc` raised while running `operation`.

    Callers raise the result `from exc` so the original stays reachable
    through `__cause__`.
    """
    detail = str(exc) or type(exc).__name__
    message = f"Failed to {_VERBS[operation]} {where}: {detail}"
    return StorageError(
        message,
        error_code(backend, operation),
        backend=backend,
        operation=operation,
    )
