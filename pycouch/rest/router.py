import json
import logging
import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Optional, Union
from urllib.parse import parse_qsl, unquote

from pycouch.connection.exceptions import ConflictError, InvalidBodyError, NotFoundError
from pycouch.orm.utils import camelize

if TYPE_CHECKING:
    from pycouch.orm.collection import Collection
    from pycouch.orm.config import RestApiOptions
    from pycouch.query.views import ViewMethods

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"

_BY_ID_PATH = re.compile(r"^/([^/]+)$")
_VIEW_PATH = re.compile(r"^/([^/]+)/([^/]*)$")

_ERRORS: dict[type[Exception], tuple[int, str]] = {
    InvalidBodyError: (400, "Invalid JSON"),
    NotFoundError: (404, "Not Found"),
    ConflictError: (409, "Conflict"),
}
_DATABASE_ERROR = (500, "Database Error")


@dataclass(frozen=True)
class RestResponse:
    status: int
    body: bytes
    headers: tuple[tuple[str, str], ...] = field(default=())

    @property
    def reason(self) -> str:
        return HTTPStatus(self.status).phrase

    def json(self) -> Any:
        return json.loads(self.body)

    def header(self, name: str) -> Optional[str]:
        return next((value for key, value in self.headers if key == name.lower()), None)


def json_response(payload: Any, status: int = 200) -> RestResponse:
    body = json.dumps(payload).encode()
    headers = (("content-type", JSON_CONTENT_TYPE), ("content-length", str(len(body))))
    return RestResponse(status, body, headers)


def error_response(status: int, reason: Optional[str] = None) -> RestResponse:
    return json_response({"error": status, "reason": reason or HTTPStatus(status).phrase}, status)


def _failure(error: Exception, *expected: type[Exception]) -> RestResponse:
    for error_class in expected:
        if isinstance(error, error_class):
            return error_response(*_ERRORS[error_class])

    logger.exception("request failed", exc_info=error)
    return error_response(*_DATABASE_ERROR)


def parse_query_string(query_string: str) -> dict[str, Union[str, list[str]]]:
    params: dict[str, Union[str, list[str]]] = {}
    for name, value in parse_qsl(query_string, keep_blank_values=True):
        if name not in params:
            params[name] = value
        elif isinstance(params[name], list):
            params[name].append(value)  # type: ignore[union-attr]
        else:
            params[name] = [params[name], value]  # type: ignore[list-item]
    return params


def parse_body(body: Union[bytes, str, None]) -> dict[str, Any]:
    try:
        data = json.loads(body or b"")
    except ValueError as e:
        raise InvalidBodyError(str(e)) from e
    if not isinstance(data, dict):
        raise InvalidBodyError("request body must be a JSON object")
    return data


class RestRouter:
    """
    Maps HTTP requests onto a :class:`~pycouch.orm.collection.Collection`.

    =======================  ==========================================
    ``GET /``                all documents (``index``)
    ``GET /{id}``            one document by id (``byID``)
    ``PUT|POST /``           save the JSON body (``save``)
    ``GET /{view}/{key}``    first document of ``view`` matching ``key``
    ``GET /{view}/?{query}`` documents of ``view``, the query string is passed to the database
    =======================  ==========================================

    Views have to be enabled one by one in ``restapi.views``. A path outside the configured prefix is
    matched as is.
    """

    def __init__(self, collection: "Collection", options: "RestApiOptions"):
        self.collection = collection
        self.options = options

    def strip_prefix(self, path: str) -> str:
        prefix = self.options.prefix
        if not prefix:
            return path
        if path == prefix:
            return "/"
        if path.startswith(prefix + "/"):
            return path[len(prefix) :]
        return path

    async def handle(self, method: str, url: str, body: Union[bytes, str, None] = None) -> RestResponse:
        path, _, query_string = url.partition("?")
        return await self.dispatch(method, unquote(path), query_string, body)

    async def dispatch(
        self, method: str, path: str, query_string: str = "", body: Union[bytes, str, None] = None
    ) -> RestResponse:
        method = method.upper()
        path = self.strip_prefix(path)
        response = await self._route(method, path, query_string, body)
        logger.debug("request dispatched", extra={"method": method, "path": path, "status": response.status})
        return response

    async def _route(
        self, method: str, path: str, query_string: str, body: Union[bytes, str, None]
    ) -> RestResponse:
        if method == "GET" and path == "/":
            return await self._index()

        if method in ("PUT", "POST") and path == "/":
            return await self._save(body)

        if method != "GET":
            return error_response(400)

        if match := _BY_ID_PATH.match(path):
            return await self._by_id(match.group(1))

        if match := _VIEW_PATH.match(path):
            view, key = match.groups()
            if key:
                return await self._view_one(view, key)
            return await self._view_many(view, query_string)

        return error_response(400)

    async def _index(self) -> RestResponse:
        if not self.options.index:
            return error_response(403, "Indexing Not Allowed")
        try:
            documents = await self.collection.find_all()
            payload = [document.to_wire() for document in documents]
        except Exception as e:
            return _failure(e)
        return json_response(payload)

    async def _by_id(self, doc_id: str) -> RestResponse:
        if not self.options.by_id:
            return error_response(403, "ByID Queries Not Allowed")
        try:
            document = await self.collection.find_by_id(doc_id)
            payload = document.to_wire()
        except Exception as e:
            return _failure(e, NotFoundError)
        return json_response(payload)

    async def _save(self, body: Union[bytes, str, None]) -> RestResponse:
        if not self.options.save:
            return error_response(403, "Save Is Not Allowed")
        try:
            document = self.collection.create(parse_body(body))
            result = await self.collection.save(document)
        except Exception as e:
            return _failure(e, InvalidBodyError, ConflictError)
        return json_response(result)

    def _resolve_view(self, segment: str) -> Union["ViewMethods", RestResponse]:
        if not self.options.view_allowed(segment):
            return error_response(403, "View Queries Not Allowed")

        suffix = camelize("_" + segment)
        for view_methods in self.collection.views.values():
            if view_methods.view.method_suffix == suffix:
                return view_methods
        return error_response(400, "View Does Not Exist")

    async def _view_one(self, segment: str, key: str) -> RestResponse:
        view_methods = self._resolve_view(segment)
        if isinstance(view_methods, RestResponse):
            return view_methods
        try:
            document = await view_methods.find_one(key)
            payload = document.to_wire() if document is not None else None
        except Exception as e:
            return _failure(e)
        if payload is None:
            return error_response(404, "Not Found")
        return json_response(payload)

    async def _view_many(self, segment: str, query_string: str) -> RestResponse:
        view_methods = self._resolve_view(segment)
        if isinstance(view_methods, RestResponse):
            return view_methods
        try:
            documents = await view_methods.find_many(None, parse_query_string(query_string))
            payload = [document.to_wire() for document in documents]
        except Exception as e:
            return _failure(e)
        return json_response(payload)
