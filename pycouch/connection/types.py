import sys
from typing import Any, Mapping, Optional, Protocol, TypedDict, runtime_checkable

if sys.version_info >= (3, 10):
    from typing import TypeAlias
else:
    from typing_extensions import TypeAlias

Json: TypeAlias = dict[str, Any]
ViewParams: TypeAlias = dict[str, Any]


class WriteResult(TypedDict, total=False):
    ok: bool
    id: str
    rev: str


class ViewRow(TypedDict, total=False):
    id: str
    key: Any
    value: Any
    doc: Json


class ViewResult(TypedDict, total=False):
    total_rows: int
    offset: int
    rows: list[ViewRow]


@runtime_checkable
class DocumentStore(Protocol):
    async def get(self, doc_id: str) -> Json: ...

    async def insert(self, doc: Json) -> WriteResult: ...

    async def destroy(self, doc_id: str, rev: Optional[str]) -> WriteResult: ...

    async def query_view(self, path: str, params: Mapping[str, Any]) -> ViewResult: ...

    async def list_all(self, include_docs: bool = True) -> ViewResult: ...
