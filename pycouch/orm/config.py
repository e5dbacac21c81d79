from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pycouch.orm.utils import camelize
from pycouch.query.consts import RESERVED_PREFIX

FIND_ONE: str = "findOne"
FIND_MANY: str = "findMany"


class ViewDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    name: str

    @model_validator(mode="before")
    @classmethod
    def _from_path(cls, data: Any) -> Any:
        if isinstance(data, str):
            data = {"path": data}
        if isinstance(data, dict) and not data.get("name") and data.get("path"):
            data = {**data, "name": data["path"].rstrip("/").split("/")[-1]}
        return data

    @property
    def method_suffix(self) -> str:
        # the leading underscore makes camelize capitalize the first word
        return camelize("_" + self.name)

    @property
    def flag_name(self) -> str:
        return camelize(self.name)

    @property
    def find_one_name(self) -> str:
        return FIND_ONE + self.method_suffix

    @property
    def find_many_name(self) -> str:
        return FIND_MANY + self.method_suffix


class RestApiOptions(BaseModel):
    """
    Switches for the generated REST surface. Everything is disabled unless turned on.

    ``views`` is keyed by the camel cased view name (``bySlug`` for a view named ``by_slug``),
    the plain view name is accepted as well.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prefix: Optional[str] = None
    index: bool = False
    by_id: bool = Field(False, alias="byID")
    save: bool = False
    views: dict[str, bool] = Field(default_factory=dict)

    @field_validator("prefix")
    @classmethod
    def _strip_prefix(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.rstrip("/")
        if value and not value.startswith("/"):
            value = "/" + value
        return value or None

    def view_allowed(self, segment: str) -> bool:
        return bool(self.views.get(camelize(segment), self.views.get(segment, False)))


class CollectionOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    views: list[ViewDescriptor] = Field(default_factory=list)
    restapi: Optional[RestApiOptions] = None
    reserved_prefix: str = RESERVED_PREFIX

    @field_validator("views")
    @classmethod
    def _unique_names(cls, views: list[ViewDescriptor]) -> list[ViewDescriptor]:
        seen: set[str] = set()
        for view in views:
            if view.method_suffix in seen:
                raise ValueError(f"duplicate view name {view.name!r}")
            seen.add(view.method_suffix)
        return views


OptionsInput = Union[CollectionOptions, dict[str, Any], None]
