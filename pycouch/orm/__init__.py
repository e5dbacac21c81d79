from .collection import Collection
from .config import CollectionOptions, RestApiOptions, ViewDescriptor
from .document import Document, DocumentHandle, is_reserved_field, to_wire

__all__ = [
    "Collection",
    "CollectionOptions",
    "RestApiOptions",
    "ViewDescriptor",
    "Document",
    "DocumentHandle",
    "is_reserved_field",
    "to_wire",
]
