import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from pycouch.connection.exceptions import ConfigurationError
from pycouch.rest.router import RestRouter

logger = logging.getLogger(__name__)

METHODS = ["GET", "PUT", "POST", "DELETE", "PATCH"]


class RestApp(Starlette):
    """
    Starlette application serving a collection's REST surface::

        articles = Collection(store, {"restapi": {"index": True, "byID": True}})
        app = RestApp(articles.router, store=store)

    Every request goes to the router, ``store`` is closed on shutdown when it has a ``close`` coroutine.
    """

    def __init__(self, router: Optional[RestRouter], store: Any = None, debug: bool = False):
        if router is None:
            raise ConfigurationError("the collection has no restapi configured")
        self.rest_router = router
        self.store = store
        super().__init__(
            debug=debug,
            routes=[Route("/{path:path}", self.endpoint, methods=METHODS)],
            lifespan=self._lifespan,
        )

    async def endpoint(self, request: Request) -> Response:
        body = await request.body()
        response = await self.rest_router.dispatch(request.method, request.scope["path"], request.url.query, body)
        return Response(response.body, status_code=response.status, headers=dict(response.headers))

    @asynccontextmanager
    async def _lifespan(self, app: Starlette) -> AsyncIterator[None]:
        logger.debug("rest app starting", extra={"router": repr(self.rest_router)})
        try:
            yield
        finally:
            close = getattr(self.store, "close", None)
            if close is not None:
                await close()
