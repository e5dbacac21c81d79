from .client import CouchStore, make_store
from .exceptions import (
    ConfigurationError,
    ConflictError,
    DatabaseError,
    InvalidBodyError,
    InvalidInvocationError,
    InvalidStateError,
    NotFoundError,
    PycouchError,
)
from .types import DocumentStore

__all__ = [
    "CouchStore",
    "DocumentStore",
    "make_store",
    "PycouchError",
    "ConfigurationError",
    "ConflictError",
    "DatabaseError",
    "InvalidBodyError",
    "InvalidInvocationError",
    "InvalidStateError",
    "NotFoundError",
]
