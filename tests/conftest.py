import logging
import sys
from typing import AsyncGenerator, TypeVar

import pytest
from pydiction import Matcher

from pycouch.orm.collection import Collection
from tests.data import ARTICLES, DATE_VIEW, SLUG_VIEW, TAG_VIEW, VIEWS_CONFIG, by_date, by_slug, by_tag
from tests.memory_store import InMemoryStore

exclude = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "message",
    "taskName",
}


@pytest.fixture(autouse=True)
def add_log(caplog):
    class CustomFormatter(logging.Formatter):
        def format(self, record):
            formatted_record = record.getMessage()

            for i in record.__dict__:
                if i not in exclude:
                    formatted_record += f"\n{i}=\n{record.__dict__[i]}"

            return formatted_record

    formatter = CustomFormatter()
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(formatter)
    logger = logging.getLogger("pycouch")
    logger.addHandler(handler)
    with caplog.at_level(logging.DEBUG, "pycouch"):
        yield
    logger.removeHandler(handler)


T = TypeVar("T")

AsyncFixture = AsyncGenerator[T, None]


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore({DATE_VIEW: by_date, TAG_VIEW: by_tag, SLUG_VIEW: by_slug})


@pytest.fixture
def collection(store: InMemoryStore) -> Collection:
    return Collection(store, {"views": VIEWS_CONFIG})


@pytest.fixture
async def articles(collection: Collection, store: InMemoryStore) -> AsyncFixture[list]:
    documents = [collection.create(data) for data in ARTICLES]
    for document in documents:
        await document.save()
    store.calls.clear()
    yield documents


@pytest.fixture
def matcher():
    return Matcher()
