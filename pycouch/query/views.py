import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pycouch.query.params import normalize_view_args

if TYPE_CHECKING:
    from pycouch.orm.collection import Collection
    from pycouch.orm.config import ViewDescriptor

logger = logging.getLogger(__name__)

ViewMethod = Callable[..., Awaitable[Any]]


class ViewMethods:
    """
    The pair of query methods generated for one view.

    ``find_one(startkey, [endkey, [sort, [skip]]], [callback])`` or ``find_one(None, params, [callback])``

    ``find_many(startkey, [endkey, [sort, [limit, [skip]]]], [callback])`` or
    ``find_many(None, params, [callback])``

    Both return an awaitable when called without a callback.
    """

    def __init__(self, view: "ViewDescriptor", collection: "Collection"):
        self.view = view
        self.collection = collection

    def __repr__(self):
        return f"<ViewMethods: {self.view.find_one_name}, {self.view.find_many_name}>"

    @property
    def names(self) -> tuple[str, str]:
        return self.view.find_one_name, self.view.find_many_name

    def find_one(self, *args):
        params, callback = normalize_view_args(args, many=False)
        logger.debug("view method called", extra={"method": self.view.find_one_name, "params": params})
        return self.collection.find_one_by_view(self.view.path, params, callback)

    def find_many(self, *args):
        params, callback = normalize_view_args(args, many=True)
        logger.debug("view method called", extra={"method": self.view.find_many_name, "params": params})
        return self.collection.find_many_by_view(self.view.path, params, callback)

    def bound(self) -> dict[str, ViewMethod]:
        return {self.view.find_one_name: self.find_one, self.view.find_many_name: self.find_many}


def build_view_methods(views, collection: "Collection") -> dict[str, ViewMethods]:
    return {view.name: ViewMethods(view, collection) for view in views}
