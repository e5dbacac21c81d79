from .connection import (
    ConfigurationError,
    ConflictError,
    CouchStore,
    DatabaseError,
    DocumentStore,
    InvalidBodyError,
    InvalidInvocationError,
    InvalidStateError,
    NotFoundError,
    PycouchError,
    make_store,
)
from .orm import Collection, CollectionOptions, Document, RestApiOptions, ViewDescriptor
from .query import normalize_view_args
from .rest import RestApp, RestRouter

__version__ = "0.1.0"
__all__ = [
    "Collection",
    "CollectionOptions",
    "Document",
    "RestApiOptions",
    "ViewDescriptor",
    "CouchStore",
    "DocumentStore",
    "make_store",
    "normalize_view_args",
    "RestApp",
    "RestRouter",
    "PycouchError",
    "ConfigurationError",
    "ConflictError",
    "DatabaseError",
    "InvalidBodyError",
    "InvalidInvocationError",
    "InvalidStateError",
    "NotFoundError",
]
