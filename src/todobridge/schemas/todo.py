"""Pydantic schemas for todo items.

Learn: Separate schemas for create/update/read keeps the API clean.
- TodoCreate: what you POST to create an item
- TodoReplace: what you PUT to overwrite an item
- TodoUpdate: what you PATCH to modify an item (all optional)
- TodoRead: what the API (and every side channel) returns

JSON field names are camelCase (isCompleted, createdAt); Python attributes
stay snake_case. populate_by_name lets clients send either form.
"""

from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from todobridge.db.models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("title must not be blank")
    return value


Title = Annotated[
    str,
    Field(min_length=1, max_length=TITLE_MAX_LENGTH),
    AfterValidator(_not_blank),
]
Description = Optional[Annotated[str, Field(max_length=DESCRIPTION_MAX_LENGTH)]]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TodoCreate(_CamelModel):
    title: Title
    description: Description = None
    is_completed: bool = False


class TodoReplace(_CamelModel):
    """Full update. id is optional but must match the path when sent."""
    id: Optional[int] = None
    title: Title
    description: Description = None
    is_completed: bool = False


class TodoUpdate(_CamelModel):
    """Partial update — only non-None fields are applied."""
    title: Optional[Title] = None
    description: Description = None
    is_completed: Optional[bool] = None


class TodoRead(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    title: str
    description: Optional[str]
    is_completed: bool
    created_at: datetime
    completed_at: Optional[datetime]

    @field_validator("created_at", "completed_at")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands timestamps back without tzinfo
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def to_payload(item) -> dict:
    """Serialize an ORM item to its camelCase JSON-ready dict."""
    return TodoRead.model_validate(item).model_dump(mode="json", by_alias=True)
