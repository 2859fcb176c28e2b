from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


ViewT = TypeVar("ViewT", bound="ApiModel")


class ApiModel(BaseModel):
    """Wire model: snake_case in Python, camelCase in JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_record(cls: type[ViewT], record: BaseModel, **extra: Any) -> ViewT:
        return cls.model_validate({**record.model_dump(), **extra})


class MessageResponse(ApiModel):
    message: str
