import json

import pytest
from pydiction import ANY_NOT_NONE

from pycouch.connection.exceptions import DatabaseError
from pycouch.orm.collection import Collection
from pycouch.orm.document import Document
from pycouch.rest.router import RestResponse, RestRouter, parse_query_string
from tests.data import ARTICLES, VIEWS_CONFIG
from tests.memory_store import InMemoryStore


def make_router(store: InMemoryStore, **restapi) -> RestRouter:
    collection = Collection(store, {"views": VIEWS_CONFIG, "restapi": restapi})
    assert collection.router is not None
    return collection.router


async def seed(store: InMemoryStore) -> None:
    collection = Collection(store)
    for data in ARTICLES:
        await collection.create(data).save()
    store.calls.clear()


def assert_error(response: RestResponse, status: int, reason: str):
    assert response.status == status
    assert response.json() == {"error": status, "reason": reason}


def test_router_only_when_configured(store: InMemoryStore):
    assert Collection(store, {"restapi": {}}).router is not None
    assert Collection(store, {"restapi": None}).router is None
    assert Collection(store).router is None


@pytest.mark.asyncio
async def test_index(store: InMemoryStore):
    await seed(store)
    router = make_router(store, index=True)

    response = await router.dispatch("GET", "/")

    assert response.status == 200
    documents = await router.collection.find_all()
    assert response.json() == [document.to_wire() for document in documents]
    assert len(response.json()) == 4


@pytest.mark.asyncio
async def test_index_disabled(store: InMemoryStore):
    router = make_router(store, index=False)

    response = await router.dispatch("GET", "/")

    assert_error(response, 403, "Indexing Not Allowed")
    assert response.header("Content-Type") == "application/json"
    assert response.header("Content-Length") == str(len(response.body))
    assert store.calls == []


@pytest.mark.asyncio
async def test_index_store_error(store: InMemoryStore):
    store.failure = DatabaseError("unauthorized", status_code=401)
    router = make_router(store, index=True)

    assert_error(await router.dispatch("GET", "/"), 500, "Database Error")


@pytest.mark.asyncio
async def test_prefix(store: InMemoryStore):
    await seed(store)
    router = make_router(store, index=True, byID=True, prefix="/testmodel")

    assert (await router.dispatch("GET", "/testmodel/")).status == 200
    assert (await router.dispatch("GET", "/testmodel")).status == 200
    assert (await router.dispatch("GET", "/testmodel/2")).json()["slug"] == "test_article_two_slug"
    # paths outside the prefix are matched as they are
    assert (await router.dispatch("GET", "/")).status == 200
    assert (await router.dispatch("GET", "/testmodelx")).status == 404


@pytest.mark.asyncio
async def test_by_id(store: InMemoryStore):
    await seed(store)
    router = make_router(store, byID=True)

    response = await router.dispatch("GET", "/2")

    assert response.status == 200
    assert response.json() == {**ARTICLES[2], "_rev": ANY_NOT_NONE}


@pytest.mark.asyncio
async def test_by_id_not_found(store: InMemoryStore):
    router = make_router(store, byID=True)

    assert_error(await router.dispatch("GET", "/ghost"), 404, "Not Found")


@pytest.mark.asyncio
async def test_by_id_disabled(store: InMemoryStore):
    router = make_router(store)

    assert_error(await router.dispatch("GET", "/ghost"), 403, "ByID Queries Not Allowed")


@pytest.mark.asyncio
async def test_by_id_store_error(store: InMemoryStore):
    store.failure = DatabaseError("timeout")
    router = make_router(store, byID=True)

    assert_error(await router.dispatch("GET", "/x"), 500, "Database Error")


@pytest.mark.asyncio
async def test_save_disabled(store: InMemoryStore):
    router = make_router(store)

    for method in ("PUT", "POST"):
        response = await router.dispatch(method, "/", body=json.dumps({"value": "new"}))
        assert_error(response, 403, "Save Is Not Allowed")
    assert store.docs == {}


@pytest.mark.asyncio
async def test_save_new_document(store: InMemoryStore, matcher):
    router = make_router(store, save=True)

    response = await router.dispatch("POST", "/", body=b'{"value": "new"}')

    assert response.status == 200
    matcher.assert_declarative_object(response.json(), {"ok": True, "id": ANY_NOT_NONE, "rev": ANY_NOT_NONE})
    assert store.docs[response.json()["id"]]["value"] == "new"


@pytest.mark.asyncio
async def test_save_updates_existing_document(store: InMemoryStore):
    collection = Collection(store)
    existing = collection.create({"_id": "x", "value": "old"})
    await existing.save()
    router = make_router(store, save=True)

    response = await router.dispatch("PUT", "/", body=json.dumps({"_rev": existing.rev, "_id": "x", "value": "new"}))

    assert response.status == 200
    assert response.json()["id"] == "x"
    assert response.json()["rev"] != existing.rev
    assert store.docs["x"] == {"_id": "x", "_rev": response.json()["rev"], "value": "new"}


@pytest.mark.asyncio
async def test_save_conflict(store: InMemoryStore):
    await Collection(store).create({"_id": "x", "value": "old"}).save()
    router = make_router(store, save=True)

    response = await router.dispatch("PUT", "/", body=json.dumps({"_id": "x", "_rev": "1-stale", "value": "new"}))

    assert_error(response, 409, "Conflict")
    assert store.docs["x"]["value"] == "old"


@pytest.mark.parametrize("body", [b"{not json", b"", b"[1, 2]", "42"])
@pytest.mark.asyncio
async def test_save_invalid_json(store: InMemoryStore, body):
    router = make_router(store, save=True)

    assert_error(await router.dispatch("PUT", "/", body=body), 400, "Invalid JSON")
    assert store.calls == []


@pytest.mark.asyncio
async def test_save_store_error(store: InMemoryStore):
    store.failure = DatabaseError("disk full", status_code=500)
    router = make_router(store, save=True)

    assert_error(await router.dispatch("POST", "/", body="{}"), 500, "Database Error")


@pytest.mark.asyncio
async def test_view_not_enabled(store: InMemoryStore):
    await seed(store)
    router = make_router(store, views={"byOneOfTheTags": False, "bySlug": True})

    response = await router.dispatch("GET", "/by_one_of_the_tags/even")

    assert_error(response, 403, "View Queries Not Allowed")
    assert store.calls == []


@pytest.mark.asyncio
async def test_view_unknown(store: InMemoryStore):
    router = make_router(store, views={"byAuthor": True})

    assert_error(await router.dispatch("GET", "/by_author/x"), 400, "View Does Not Exist")
    assert_error(await router.handle("GET", "/by_author/?key=x"), 400, "View Does Not Exist")


@pytest.mark.asyncio
async def test_view_find_one(store: InMemoryStore):
    await seed(store)
    router = make_router(store, views={"bySlug": True})

    response = await router.dispatch("GET", "/by_slug/test_article_one_slug")

    assert response.status == 200
    expected = await router.collection.view_method("findOneBySlug")("test_article_one_slug")
    assert response.json() == expected.to_wire()


@pytest.mark.asyncio
async def test_view_find_one_not_found(store: InMemoryStore):
    await seed(store)
    router = make_router(store, views={"bySlug": True})

    assert_error(await router.dispatch("GET", "/by_slug/nonexistent"), 404, "Not Found")


@pytest.mark.asyncio
async def test_view_flag_by_plain_name(store: InMemoryStore):
    await seed(store)
    router = make_router(store, views={"by_slug": True})

    assert (await router.dispatch("GET", "/by_slug/test_article_two_slug")).json()["_id"] == "2"


@pytest.mark.asyncio
async def test_view_find_many(store: InMemoryStore):
    await seed(store)
    router = make_router(store, views={"byDate": True})

    response = await router.dispatch("GET", "/by_date/", "startkey=2014-01-01&endkey=2014-12-31")

    assert response.status == 200
    expected = await router.collection.view_method("findManyByDate")(
        None, {"startkey": "2014-01-01", "endkey": "2014-12-31"}
    )
    assert response.json() == [document.to_wire() for document in expected]
    assert [document["_id"] for document in response.json()] == ["2", "3"]


@pytest.mark.asyncio
async def test_view_find_many_passes_query_through(store: InMemoryStore):
    await seed(store)
    router = make_router(store, views={"byDate": True})

    response = await router.handle("GET", "/by_date/?startkey=2015&endkey=2014&descending=true&limit=1")

    assert [document["_id"] for document in response.json()] == ["3"]
    assert store.calls[-1] == (
        "query_view",
        "_design/article/_view/by_date",
        {"startkey": "2015", "endkey": "2014", "descending": "true", "limit": "1"},
    )


@pytest.mark.asyncio
async def test_view_find_many_empty(store: InMemoryStore):
    router = make_router(store, views={"byOneOfTheTags": True})

    response = await router.dispatch("GET", "/by_one_of_the_tags/", "key=missing")

    assert response.status == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_view_store_error(store: InMemoryStore):
    store.failure = DatabaseError("boom")
    router = make_router(store, views={"bySlug": True, "byDate": True})

    assert_error(await router.dispatch("GET", "/by_slug/x"), 500, "Database Error")
    assert_error(await router.dispatch("GET", "/by_date/", "key=x"), 500, "Database Error")


@pytest.mark.parametrize(
    "method, path",
    [
        ("DELETE", "/"),
        ("DELETE", "/x"),
        ("PUT", "/x"),
        ("GET", "/a/b/c"),
        ("GET", "//"),
    ],
)
@pytest.mark.asyncio
async def test_unmatched_requests(store: InMemoryStore, method, path):
    router = make_router(store, index=True, byID=True, save=True, views={"bySlug": True})

    assert_error(await router.dispatch(method, path), 400, "Bad Request")


@pytest.mark.asyncio
async def test_handle_unquotes_path(store: InMemoryStore):
    await Collection(store).create({"_id": "a b", "value": 1}).save()
    router = make_router(store, byID=True)

    assert (await router.handle("get", "/a%20b")).json()["value"] == 1


def test_parse_query_string():
    assert parse_query_string("startkey=a&endkey=b&flag") == {"startkey": "a", "endkey": "b", "flag": ""}
    assert parse_query_string("key=a&key=b&key=c") == {"key": ["a", "b", "c"]}
    assert parse_query_string("") == {}


class BrokenDocument(Document):
    def to_wire(self):
        raise TypeError("not serializable")


@pytest.mark.asyncio
async def test_projection_errors_are_mapped(store: InMemoryStore):
    await seed(store)
    collection = Collection(
        store,
        {"views": VIEWS_CONFIG, "restapi": {"index": True, "byID": True, "views": {"bySlug": True, "byDate": True}}},
        factory=BrokenDocument,
    )
    router = collection.router

    assert_error(await router.dispatch("GET", "/"), 500, "Database Error")
    assert_error(await router.dispatch("GET", "/2"), 500, "Database Error")
    assert_error(await router.dispatch("GET", "/by_slug/test_article_two_slug"), 500, "Database Error")
    assert_error(await router.dispatch("GET", "/by_date/", "startkey=1970"), 500, "Database Error")


@pytest.mark.asyncio
async def test_document_fields_named_like_handle_members(store: InMemoryStore):
    store.docs["x"] = {"_id": "x", "_rev": "1-a", "to_wire": "field", "save": 1}
    router = make_router(store, byID=True, save=True)

    response = await router.dispatch("GET", "/x")

    assert response.status == 200
    assert response.json() == {"_id": "x", "_rev": "1-a", "to_wire": "field", "save": 1}


@pytest.mark.asyncio
async def test_save_body_with_internal_names(store: InMemoryStore):
    router = make_router(store, save=True)

    response = await router.dispatch("PUT", "/", body=b'{"_collection": 1, "delete": true, "value": 2}')

    assert response.status == 200
    assert store.docs[response.json()["id"]] == {
        "_id": response.json()["id"],
        "_rev": response.json()["rev"],
        "delete": True,
        "value": 2,
    }
