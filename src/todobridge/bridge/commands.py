"""Command envelopes — typed requests decoded from pub/sub payloads.

Learn: Each command name maps to one request model carrying only the
fields that command needs. Decoding is one schema-validating step, and
every way it can fail maps to exactly one response message:

    payload is not a JSON object      → "Invalid JSON format"
    id missing / not an integer       → "Invalid request: id is required"
    id outside the 32-bit id column   → "Invalid JSON format"
    title missing / blank             → "Invalid request: title is required"
    field longer than the column      → "Invalid request: <field> must be at most N characters"
    any other wrong type              → "Invalid JSON format"

Field names are matched case-insensitively (isCompleted, iscompleted,
IsCompleted all work).
"""

import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
)

from todobridge.db.models import (
    DESCRIPTION_MAX_LENGTH,
    ITEM_ID_MAX,
    ITEM_ID_MIN,
    TITLE_MAX_LENGTH,
    utcnow,
)

INVALID_FORMAT = "Invalid JSON format"
UNKNOWN_COMMAND = "Unknown command"
ITEM_NOT_FOUND = "Item not found"
ITEM_DELETED = "Item deleted successfully"


class CommandError(Exception):
    """A command payload that can't be turned into a request."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CommandName(str, Enum):
    GET_ALL = "getall"
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    UPDATE_PARTIAL = "updatepartial"
    DELETE = "delete"


# ─── Request models ──────────────────────────────────────


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("blank")
    return value


Title = Annotated[StrictStr, Field(max_length=TITLE_MAX_LENGTH), AfterValidator(_not_blank)]
Description = Annotated[StrictStr, Field(max_length=DESCRIPTION_MAX_LENGTH)]
ItemId = Annotated[StrictInt, Field(ge=ITEM_ID_MIN, le=ITEM_ID_MAX)]


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class GetAllRequest(_Request):
    pass


class GetRequest(_Request):
    id: ItemId


class CreateRequest(_Request):
    title: Title
    description: Optional[Description] = None
    is_completed: Optional[StrictBool] = Field(None, alias="iscompleted")


class UpdateRequest(_Request):
    id: ItemId
    title: Optional[StrictStr] = Field(None, max_length=TITLE_MAX_LENGTH)
    description: Optional[Description] = None
    is_completed: Optional[StrictBool] = Field(None, alias="iscompleted")


class DeleteRequest(_Request):
    id: ItemId


CommandRequest = Union[GetAllRequest, GetRequest, CreateRequest, UpdateRequest, DeleteRequest]

REQUEST_MODELS: dict[CommandName, type[_Request]] = {
    CommandName.GET_ALL: GetAllRequest,
    CommandName.GET: GetRequest,
    CommandName.CREATE: CreateRequest,
    CommandName.UPDATE: UpdateRequest,
    CommandName.UPDATE_PARTIAL: UpdateRequest,
    CommandName.DELETE: DeleteRequest,
}

_REQUIRED = {"id", "title"}
_MAX_LENGTHS = {"title": TITLE_MAX_LENGTH, "description": DESCRIPTION_MAX_LENGTH}
_OUT_OF_RANGE = {"greater_than_equal", "less_than_equal"}


# ─── Response envelope ───────────────────────────────────


class CommandResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "CommandResponse":
        return cls(success=True, data=data, message=message)

    @classmethod
    def failure(cls, error: str) -> "CommandResponse":
        return cls(success=False, error=error)

    def to_wire(self) -> str:
        return self.model_dump_json(exclude_none=True)


# ─── Decoding ────────────────────────────────────────────


def _load_object(payload: str) -> Optional[dict[str, Any]]:
    try:
        document = json.loads(payload)
    except (TypeError, ValueError):
        return None
    if not isinstance(document, dict):
        return None
    return {str(key).lower(): value for key, value in document.items()}


def extract_correlation_id(payload: str) -> Optional[str]:
    """Best-effort correlationId lookup. Anything unusable means "no id"."""
    document = _load_object(payload)
    if document is None:
        return None
    value = document.get("correlationid")
    if isinstance(value, str) and value:
        return value
    return None


def _describe(exc: ValidationError) -> str:
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else ""
        if error["type"] == "string_too_long" and field in _MAX_LENGTHS:
            return f"Invalid request: {field} must be at most {_MAX_LENGTHS[field]} characters"
        if error["type"] in _OUT_OF_RANGE:
            return INVALID_FORMAT
        if field in _REQUIRED or error["type"] == "missing":
            return f"Invalid request: {field} is required"
    return INVALID_FORMAT


def parse_command(name: CommandName, payload: str) -> CommandRequest:
    """Decode a payload into the request model for a command.

    Raises CommandError with the response message on any failure.
    """
    model = REQUEST_MODELS[name]
    if model is GetAllRequest:
        return GetAllRequest()

    document = _load_object(payload)
    if document is None:
        raise CommandError(INVALID_FORMAT)
    try:
        return model.model_validate(document)
    except ValidationError as e:
        raise CommandError(_describe(e)) from e
