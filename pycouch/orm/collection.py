import logging
from functools import partial
from typing import (
    Any,
    Callable,
    Generic,
    Mapping,
    Optional,
    cast,
    overload,
)

from pydantic import ValidationError

from pycouch.connection.exceptions import (
    ConfigurationError,
    InvalidInvocationError,
    InvalidStateError,
)
from pycouch.connection.types import DocumentStore, Json, ViewParams, WriteResult
from pycouch.orm.config import CollectionOptions, OptionsInput
from pycouch.orm.document import Document, TDocument, is_reserved_field
from pycouch.orm.utils import deliver
from pycouch.query.consts import LIMIT
from pycouch.query.views import ViewMethod, ViewMethods, build_view_methods
from pycouch.rest.router import RestRouter

logger = logging.getLogger(__name__)

DocumentFactory = Callable[["Collection", Mapping[str, Any]], TDocument]


class Collection(Generic[TDocument]):
    """
    Gateway between documents and a :class:`~pycouch.connection.types.DocumentStore`.

    Every operation takes an optional trailing ``callback(error, result)``. Without it an awaitable
    is returned, with it the operation is scheduled on the running loop.

    ``factory(collection, fields)`` builds the documents handed out by the collection and defaults
    to :class:`~pycouch.orm.document.Document`.
    """

    @overload
    def __init__(self: "Collection[Document]", store: Optional[DocumentStore], options: OptionsInput = None): ...

    @overload
    def __init__(
        self,
        store: Optional[DocumentStore],
        options: OptionsInput = None,
        *,
        factory: DocumentFactory[TDocument],
    ): ...

    def __init__(
        self,
        store: Optional[DocumentStore],
        options: OptionsInput = None,
        *,
        factory: Optional[DocumentFactory] = None,
    ):
        try:
            self.options = options if isinstance(options, CollectionOptions) else CollectionOptions.model_validate(
                options or {}
            )
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        self.store = store
        self.factory = cast(DocumentFactory, factory or Document)
        self.is_reserved = partial(is_reserved_field, prefix=self.options.reserved_prefix)
        self.views: dict[str, ViewMethods] = build_view_methods(self.options.views, self)
        self._methods: dict[str, ViewMethod] = {}
        for view_methods in self.views.values():
            self._methods.update(view_methods.bound())

        self.router: Optional[RestRouter] = None
        if self.options.restapi is not None:
            self.router = RestRouter(self, self.options.restapi)

    def __repr__(self):
        return f"<Collection: {self.store!r}, views={list(self.views)}>"

    def _require_store(self) -> DocumentStore:
        if self.store is None:
            raise ConfigurationError("no document store attached to the collection")
        return self.store

    def use(self, store: DocumentStore) -> None:
        self.store = store

    def view_method(self, name: str) -> ViewMethod:
        """Look up a generated method such as ``findManyByDate``."""
        try:
            return self._methods[name]
        except KeyError:
            raise AttributeError(f"{self.__class__.__name__} has no view method {name!r}") from None

    def find_one_by(self, view: str, *args):
        return self._view(view).find_one(*args)

    def find_many_by(self, view: str, *args):
        return self._view(view).find_many(*args)

    def _view(self, name: str) -> ViewMethods:
        try:
            return self.views[name]
        except KeyError:
            raise InvalidInvocationError(f"unknown view {name!r}") from None

    def create(self, data: Optional[Mapping[str, Any]] = None) -> TDocument:
        return self.factory(self, data or {})

    def save(self, document: TDocument, callback=None):
        store = self._require_store()
        return deliver(self._save(store, document.to_wire()), callback)

    async def _save(self, store: DocumentStore, wire: Json) -> WriteResult:
        logger.debug("saving document", extra={"doc_id": wire.get("_id"), "doc_rev": wire.get("_rev")})
        return await store.insert(wire)

    def delete(self, document: TDocument, callback=None):
        store = self._require_store()
        if document.id is None:
            raise InvalidStateError("cannot delete a document that was never saved")
        return deliver(self._delete(store, document.id, document.rev), callback)

    async def _delete(self, store: DocumentStore, doc_id: str, rev: Optional[str]) -> WriteResult:
        logger.debug("deleting document", extra={"doc_id": doc_id, "doc_rev": rev})
        return await store.destroy(doc_id, rev)

    def find_all(self, callback=None):
        store = self._require_store()
        return deliver(self._find_all(store), callback)

    async def _find_all(self, store: DocumentStore) -> list[TDocument]:
        result = await store.list_all(include_docs=True)
        return [self.factory(self, row["doc"]) for row in result.get("rows", [])]

    def find_by_id(self, doc_id: str, callback=None):
        if not doc_id:
            raise InvalidInvocationError("document id is missing")
        store = self._require_store()
        return deliver(self._find_by_id(store, doc_id), callback)

    async def _find_by_id(self, store: DocumentStore, doc_id: str) -> TDocument:
        return self.factory(self, await store.get(doc_id))

    def find_many_by_view(self, path: str, params: Optional[Mapping[str, Any]] = None, callback=None):
        store = self._require_store()
        return deliver(self._find_many_by_view(store, path, dict(params or {})), callback)

    async def _find_many_by_view(self, store: DocumentStore, path: str, params: ViewParams) -> list[TDocument]:
        logger.debug("querying view", extra={"view_path": path, "params": params})
        result = await store.query_view(path, params)
        return [self.factory(self, row["value"]) for row in result.get("rows", [])]

    def find_one_by_view(self, path: str, params: Optional[Mapping[str, Any]] = None, callback=None):
        store = self._require_store()
        return deliver(self._find_one_by_view(store, path, {**(params or {}), LIMIT: 1}), callback)

    async def _find_one_by_view(self, store: DocumentStore, path: str, params: ViewParams) -> Optional[TDocument]:
        results = await self._find_many_by_view(store, path, params)
        return results[0] if results else None

