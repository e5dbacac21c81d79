from typing import TYPE_CHECKING

from pycouch.connection.exceptions import DatabaseError, NotFoundError

if TYPE_CHECKING:
    from pycouch.connection.client import CouchStore

_DATABASE_EXISTS = 412


async def get_or_create_db(store: "CouchStore") -> "CouchStore":
    try:
        await store.info()
    except NotFoundError:
        try:
            await store.create_database()
        except DatabaseError as e:
            # created concurrently
            if e.status_code != _DATABASE_EXISTS:
                raise e
    return store


async def delete_db(store: "CouchStore", ignore_missing: bool = True) -> None:
    try:
        await store.delete_database()
    except NotFoundError:
        if not ignore_missing:
            raise
