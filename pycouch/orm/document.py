import copy
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Protocol, TypeVar, runtime_checkable

from pycouch.connection.types import Json
from pycouch.orm.utils import deliver
from pycouch.query.consts import ID, RESERVED_PREFIX, REV

if TYPE_CHECKING:
    from pycouch.orm.collection import Collection

ReservedPredicate = Callable[[str], bool]


def is_reserved_field(name: str, prefix: str = RESERVED_PREFIX) -> bool:
    return name.startswith(prefix) and name not in (ID, REV)


def to_wire(fields: Mapping[str, Any], is_reserved: ReservedPredicate = is_reserved_field) -> Json:
    """
    JSON safe projection of a document: reserved fields and callables are dropped, so are a
    ``None`` id and revision since the database rejects them.
    """
    wire = {
        name: copy.deepcopy(value)
        for name, value in fields.items()
        if not callable(value) and not is_reserved(name)
    }
    for name in (ID, REV):
        if wire.get(name, ...) is None:
            del wire[name]
    return wire


@runtime_checkable
class DocumentHandle(Protocol):
    @property
    def id(self) -> Optional[str]: ...

    @property
    def rev(self) -> Optional[str]: ...

    def to_wire(self) -> Json: ...

    def save(self, callback=None): ...

    def delete(self, callback=None): ...


TDocument = TypeVar("TDocument", bound=DocumentHandle)


class Document:
    """
    A document of a :class:`~pycouch.orm.collection.Collection`.

    User fields read and write as attributes, ``_id`` and ``_rev`` hold the identity and are ``None``
    until the document is saved::

        article = articles.create({"slug": "hello"})
        await article.save()
        article.slug = "hello-world"
        await article.save()

    Fields live in their own mapping, :attr:`fields`, so a field named like a method of the handle
    (``save``, ``delete``, ``to_wire``...) never shadows it; read such fields through ``fields``.
    """

    __slots__ = ("__collection", "__fields")

    def __init__(self, collection: "Collection", data: Optional[Mapping[str, Any]] = None):
        object.__setattr__(self, "_Document__collection", collection)
        object.__setattr__(self, "_Document__fields", copy.deepcopy(dict(data or {})))

    def __getattr__(self, name: str) -> Any:
        # only reached when regular lookup fails
        if name.startswith("__") or name.startswith("_Document__"):
            raise AttributeError(name)
        if name in (ID, REV):
            return self.__fields.get(name)
        try:
            return self.__fields[name]
        except KeyError:
            raise AttributeError(f"{self.__class__.__name__!r} document has no field {name!r}") from None

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(type(self), name):
            # properties with setters on subclasses, read-only for everything else
            object.__setattr__(self, name, value)
        else:
            self.__fields[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self.__fields[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.id}@{self.rev}>"

    def __eq__(self, other):
        if not isinstance(other, Document):
            return NotImplemented
        return self.to_wire() == other.to_wire()

    @property
    def id(self) -> Optional[str]:
        return self.__fields.get(ID)

    @property
    def rev(self) -> Optional[str]:
        return self.__fields.get(REV)

    @property
    def collection(self) -> "Collection":
        return self.__collection

    @property
    def fields(self) -> Json:
        return self.__fields

    def to_wire(self) -> Json:
        return to_wire(self.__fields, self.collection.is_reserved)

    def save(self, callback=None):
        """Persist the document, the new id and revision are written back on success."""
        pending = self.collection.save(self)
        return deliver(self._save(pending), callback)

    async def _save(self, pending) -> "Document":
        result = await pending
        self.__fields[ID] = result["id"]
        self.__fields[REV] = result["rev"]
        return self

    def delete(self, callback=None):
        """
        Delete the document from the database. Saving it again afterwards creates a new document.
        """
        # raises synchronously for a document that was never saved
        pending = self.collection.delete(self)
        return deliver(self._delete(pending), callback)

    async def _delete(self, pending) -> "Document":
        await pending
        self.__fields.pop(ID, None)
        self.__fields.pop(REV, None)
        return self
