import logging
from functools import reduce
from typing import TYPE_CHECKING, Any, Mapping, Optional, Union

import httpx
from aioarango.exceptions import (
    ArangoClientError,
    ArangoServerError,
    CollectionCreateError,
    DatabaseCreateError,
    DocumentRevisionError,
)

from pycouch.connection.exceptions import ConflictError, DatabaseError, NotFoundError
from pycouch.connection.types import Json, ViewResult, ViewRow, WriteResult
from pycouch.query.consts import DESCENDING, END_KEY, ID, KEY, LIMIT, REV, SKIP, START_KEY

if TYPE_CHECKING:
    from aioarango import ArangoClient
    from aioarango.collection import StandardCollection
    from aioarango.database import StandardDatabase

logger = logging.getLogger(__name__)

ARANGO_KEY = "_key"
ARANGO_ID = "_id"

_DOCUMENT_NOT_FOUND = 1202
_CONFLICT = 1200
_UNIQUE_CONSTRAINT_VIOLATED = 1210
_DUPLICATE_NAME = 1207


def _translate_error(error: Exception) -> DatabaseError:
    if isinstance(error, DocumentRevisionError):
        return ConflictError(str(error.error_message), status_code=409, error="conflict")
    if isinstance(error, ArangoServerError):
        if error.error_code == _DOCUMENT_NOT_FOUND or error.http_code == 404:
            return NotFoundError(str(error.error_message), error="not_found")
        if error.error_code in (_CONFLICT, _UNIQUE_CONSTRAINT_VIOLATED) or error.http_code in (409, 412):
            return ConflictError(str(error.error_message), status_code=409, error="conflict")
        return DatabaseError(str(error.error_message), status_code=error.http_code)
    return DatabaseError(str(error) or error.__class__.__name__)


def _from_arango(doc: Json) -> Json:
    fields = {name: value for name, value in doc.items() if name not in (ARANGO_KEY, ARANGO_ID)}
    fields[ID] = doc[ARANGO_KEY]
    return fields


def _to_arango(doc: Json) -> Json:
    fields = {name: value for name, value in doc.items() if name != ID}
    if doc.get(ID) is not None:
        fields[ARANGO_KEY] = doc[ID]
    return fields


def _attribute(path: str) -> Union[str, list[str]]:
    return path.split(".") if "." in path else path


def _extract(doc: Json, path: str) -> Any:
    return reduce(lambda value, name: value.get(name) if isinstance(value, dict) else None, path.split("."), doc)


def _is_true(value: Any) -> bool:
    return value is True or (isinstance(value, str) and value.lower() == "true")


async def _drain(cursor) -> list[Json]:
    return [doc async for doc in cursor]


def build_view_query(collection: str, path: str, params: Mapping[str, Any]) -> tuple[str, dict[str, Any], int]:
    """
    Translate view parameters into AQL over ``collection``, the view path names the attribute the
    documents are keyed on. Returns the query, its bind variables and the number of rows still to skip
    client side (AQL has no offset without a count).
    """
    bind_vars: dict[str, Any] = {"@collection": collection, "attr": _attribute(path)}
    descending = _is_true(params.get(DESCENDING, False))
    lines = ["FOR doc IN @@collection"]

    if KEY in params:
        lines.append("FILTER doc.@attr == @key")
        bind_vars["key"] = params[KEY]
    else:
        # bounds are given in iteration order, the lower bound comes last when descending
        low, high = (END_KEY, START_KEY) if descending else (START_KEY, END_KEY)
        if low in params:
            lines.append("FILTER doc.@attr >= @low")
            bind_vars["low"] = params[low]
        if high in params:
            lines.append("FILTER doc.@attr <= @high")
            bind_vars["high"] = params[high]

    lines.append("SORT doc.@attr DESC" if descending else "SORT doc.@attr ASC")

    skip = int(params.get(SKIP) or 0)
    remaining_skip = 0
    if params.get(LIMIT):
        lines.append("LIMIT @skip, @limit")
        bind_vars["skip"] = skip
        bind_vars["limit"] = int(params[LIMIT])
    else:
        remaining_skip = skip

    lines.append("RETURN doc")
    return "\n".join(lines), bind_vars, remaining_skip


class ArangoStore:
    """
    :class:`~pycouch.connection.types.DocumentStore` over one ArangoDB collection.

    Document ids map to ``_key``. A view path is the (dotted) attribute the view is keyed on, so
    ``{"path": "slug", "name": "by_slug"}`` gives ``findOneBySlug`` over ``doc.slug``.
    """

    def __init__(self, database: "StandardDatabase", collection: str):
        self.database = database
        self.collection_name = collection

    def __repr__(self):
        return f"<ArangoStore: {self.collection_name}>"

    @property
    def collection(self) -> "StandardCollection":
        return self.database.collection(self.collection_name)

    async def get(self, doc_id: str) -> Json:
        try:
            doc = await self.collection.get(doc_id)
        except (ArangoServerError, ArangoClientError, httpx.HTTPError) as e:
            raise _translate_error(e) from e
        if doc is None:
            raise NotFoundError("missing", error="not_found")
        return _from_arango(doc)

    async def insert(self, doc: Json) -> WriteResult:
        arango_doc = _to_arango(doc)
        try:
            if arango_doc.get(REV) is not None and ARANGO_KEY in arango_doc:
                meta = await self.collection.replace(arango_doc, check_rev=True)
            else:
                arango_doc.pop(REV, None)
                meta = await self.collection.insert(arango_doc)
        except (ArangoServerError, ArangoClientError, httpx.HTTPError) as e:
            logger.debug("arango write failed", extra={"doc_id": doc.get(ID)})
            raise _translate_error(e) from e
        return {"ok": True, "id": meta[ARANGO_KEY], "rev": meta[REV]}

    async def destroy(self, doc_id: str, rev: Optional[str]) -> WriteResult:
        target = {ARANGO_KEY: doc_id}
        if rev is not None:
            target[REV] = rev
        try:
            await self.collection.delete(target, check_rev=rev is not None, ignore_missing=False)
        except (ArangoServerError, ArangoClientError, httpx.HTTPError) as e:
            raise _translate_error(e) from e
        return {"ok": True, "id": doc_id, "rev": rev}

    async def query_view(self, path: str, params: Mapping[str, Any]) -> ViewResult:
        query, bind_vars, skip = build_view_query(self.collection_name, path, params)
        logger.debug("executing view query", extra={"query": query, "bind_vars": bind_vars})
        try:
            cursor = await self.database.aql.execute(query, bind_vars=bind_vars)
            docs = await _drain(cursor)
        except (ArangoServerError, ArangoClientError, httpx.HTTPError) as e:
            logger.exception(query)
            raise _translate_error(e) from e

        rows: list[ViewRow] = [
            {"id": doc[ARANGO_KEY], "key": _extract(doc, path), "value": _from_arango(doc)} for doc in docs[skip:]
        ]
        return {"total_rows": len(rows), "offset": skip, "rows": rows}

    async def list_all(self, include_docs: bool = True) -> ViewResult:
        try:
            docs = await _drain(await self.collection.all())
        except (ArangoServerError, ArangoClientError, httpx.HTTPError) as e:
            raise _translate_error(e) from e

        rows: list[ViewRow] = []
        for doc in docs:
            row: ViewRow = {"id": doc[ARANGO_KEY], "key": doc[ARANGO_KEY], "value": {"rev": doc[REV]}}
            if include_docs:
                row["doc"] = _from_arango(doc)
            rows.append(row)
        return {"total_rows": len(rows), "offset": 0, "rows": rows}


async def open_arango_store(
    client: "ArangoClient",
    db_name: str,
    collection: str,
    username: str = "root",
    password: str = "",
    **create_params,
) -> ArangoStore:
    """
    Connect to ``db_name`` and return a store over ``collection``, creating both when missing.
    A database or collection created concurrently by another process is not an error.
    """
    try:
        sys_db = await client.db("_system", username=username, password=password)
        if not await sys_db.has_database(db_name):
            try:
                await sys_db.create_database(db_name, **create_params)
            except DatabaseCreateError as e:
                if e.error_code != _DUPLICATE_NAME:
                    raise

        database = await client.db(db_name, username=username, password=password)
        if not await database.has_collection(collection):
            try:
                await database.create_collection(collection)
            except CollectionCreateError as e:
                if e.error_code != _DUPLICATE_NAME:
                    raise
    except (ArangoServerError, ArangoClientError, httpx.HTTPError) as e:
        logger.warning("cannot open arango store", extra={"db_name": db_name, "collection": collection})
        raise _translate_error(e) from e

    logger.debug("arango store ready", extra={"db_name": db_name, "collection": collection})
    return ArangoStore(database, collection)
