import json
import logging
from typing import Any, Mapping, Optional, Union
from urllib.parse import quote

import httpx

from pycouch.connection.exceptions import ConflictError, DatabaseError, NotFoundError
from pycouch.connection.types import Json, ViewResult, WriteResult
from pycouch.query.consts import DESIGN_PREFIX, ID, INCLUDE_DOCS, JSON_ENCODED_PARAMS

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[DatabaseError]] = {
    404: NotFoundError,
    409: ConflictError,
}


def encode_view_params(params: Mapping[str, Any]) -> dict[str, str]:
    encoded = {}
    for name, value in params.items():
        if name in JSON_ENCODED_PARAMS or not isinstance(value, str):
            value = json.dumps(value)
        encoded[name] = value
    return encoded


def _doc_path(doc_id: str) -> str:
    if doc_id.startswith(DESIGN_PREFIX):
        return DESIGN_PREFIX + quote(doc_id[len(DESIGN_PREFIX) :], safe="")
    return quote(doc_id, safe="")


def _error_from_response(response: httpx.Response) -> DatabaseError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    reason = body.get("reason") or response.reason_phrase
    error_class = _STATUS_ERRORS.get(response.status_code, DatabaseError)
    return error_class(reason, status_code=response.status_code, error=body.get("error"))


class CouchStore:
    """
    :class:`~pycouch.connection.types.DocumentStore` backed by a CouchDB database.

    Every request goes through one :class:`httpx.AsyncClient`. HTTP 404 and 409 are raised as
    :class:`NotFoundError` and :class:`ConflictError`, anything else that fails (including transport
    errors) as :class:`DatabaseError`. Nothing is retried.
    """

    def __init__(self, client: httpx.AsyncClient, db_name: str):
        self.client = client
        self.db_name = db_name
        self._db_path = "/" + quote(db_name, safe="")

    def __repr__(self):
        return f"<CouchStore: {str(self.client.base_url).rstrip('/')}{self._db_path}>"

    async def _request(self, method: str, path: str, **kwargs) -> Json:
        url = self._db_path + path
        logger.debug("couchdb request", extra={"method": method, "url": url, "params": kwargs.get("params")})
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("couchdb transport error", extra={"method": method, "url": url})
            raise DatabaseError(str(e) or e.__class__.__name__) from e

        if response.is_error:
            error = _error_from_response(response)
            logger.debug(
                "couchdb error response",
                extra={"url": url, "status_code": response.status_code, "reason": error.reason},
            )
            raise error
        try:
            return response.json()
        except ValueError as e:
            logger.warning(
                "couchdb answered with a non JSON body", extra={"url": url, "status_code": response.status_code}
            )
            raise DatabaseError("invalid JSON response", status_code=response.status_code) from e

    async def info(self) -> Json:
        return await self._request("GET", "")

    async def create_database(self) -> Json:
        return await self._request("PUT", "")

    async def delete_database(self) -> Json:
        return await self._request("DELETE", "")

    async def get(self, doc_id: str) -> Json:
        return await self._request("GET", "/" + _doc_path(doc_id))

    async def insert(self, doc: Json) -> WriteResult:
        doc_id = doc.get(ID)
        if doc_id is None:
            return await self._request("POST", "", json=doc)
        return await self._request("PUT", "/" + _doc_path(doc_id), json=doc)

    async def destroy(self, doc_id: str, rev: Optional[str]) -> WriteResult:
        params = {"rev": rev} if rev is not None else None
        return await self._request("DELETE", "/" + _doc_path(doc_id), params=params)

    async def query_view(self, path: str, params: Mapping[str, Any]) -> ViewResult:
        return await self._request("GET", "/" + path.lstrip("/"), params=encode_view_params(params))

    async def list_all(self, include_docs: bool = True) -> ViewResult:
        return await self._request("GET", "/_all_docs", params=encode_view_params({INCLUDE_DOCS: include_docs}))

    async def close(self):
        await self.client.aclose()


def make_store(  # nosec: B107
    db_name: str,
    url: str = "http://127.0.0.1:5984",
    username: Optional[str] = None,
    password: str = "",
    timeout: Union[float, httpx.Timeout] = 10.0,
    http_client: Optional[httpx.AsyncClient] = None,
) -> CouchStore:
    if http_client is None:
        auth = httpx.BasicAuth(username, password) if username is not None else None
        http_client = httpx.AsyncClient(base_url=url, auth=auth, timeout=timeout)

    return CouchStore(http_client, db_name)
