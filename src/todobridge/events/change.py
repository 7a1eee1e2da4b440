"""ChangeEvent — the tagged notification describing one mutation.

Learn: The same event feeds two channels with different shapes:
- WebSocket clients get the full record (to_wire)
- pub/sub subscribers get a small projection (projection)

Events are transient: built right after the store commits, never persisted.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from todobridge.db.models import TodoItem, utcnow
from todobridge.events.types import CREATED, DELETED, UPDATED, UPDATED_PARTIAL
from todobridge.schemas.todo import to_payload

# Fields each action exposes on the pub/sub event topic
_PROJECTIONS: dict[str, tuple[str, ...]] = {
    CREATED: ("id", "title"),
    UPDATED: ("id", "title", "isCompleted"),
    UPDATED_PARTIAL: ("id", "title", "isCompleted"),
    DELETED: ("id",),
}


class ChangeEvent(BaseModel):
    action: str
    data: dict[str, Any]
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def item_id(self) -> int:
        return self.data["id"]

    @classmethod
    def created(cls, item: TodoItem) -> "ChangeEvent":
        return cls(action=CREATED, data=to_payload(item))

    @classmethod
    def updated(cls, item: TodoItem, partial: bool = False) -> "ChangeEvent":
        return cls(action=UPDATED_PARTIAL if partial else UPDATED, data=to_payload(item))

    @classmethod
    def deleted(cls, item_id: int) -> "ChangeEvent":
        return cls(action=DELETED, data={"id": item_id})

    def to_wire(self) -> str:
        """WebSocket frame: {"action", "data", "timestamp"}."""
        return self.model_dump_json()

    def projection(self) -> dict[str, Any]:
        """Pub/sub event payload: the action's fields plus the timestamp."""
        fields = _PROJECTIONS[self.action]
        payload = {key: self.data.get(key) for key in fields}
        payload["timestamp"] = self.timestamp
        return payload
