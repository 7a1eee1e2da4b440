"""Todo service — the record store behind the REST API and the command bridge.

Learn: Every call is one short transaction: load, mutate, commit. Callers
(HTTP handlers, the command bridge) never touch the session directly, and
never stitch several calls into a bigger transaction.

The completion rule lives in _apply_completion and nowhere else:
  false → true   completed_at = now (unless already set)
  true  → true   completed_at unchanged
  *     → false  completed_at = None
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from todobridge.db.models import TodoItem, utcnow

SAMPLE_ITEMS = [
    {
        "title": "Welcome to TodoBridge",
        "description": "This is a sample TODO item to get you started",
    },
    {
        "title": "Explore the API",
        "description": "Check out the interactive docs at /docs",
    },
]


def _apply_completion(item: TodoItem, is_completed: bool) -> None:
    if is_completed and item.completed_at is None:
        item.completed_at = utcnow()
    elif not is_completed:
        item.completed_at = None
    item.is_completed = is_completed


class TodoService:
    """CRUD over todo items."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Read ────────────────────────────────────────────

    async def list_items(self) -> list[TodoItem]:
        result = await self.db.execute(select(TodoItem).order_by(TodoItem.id))
        return list(result.scalars().all())

    async def count_items(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(TodoItem))
        return result.scalar_one()

    async def get_item(self, item_id: int) -> Optional[TodoItem]:
        return await self.db.get(TodoItem, item_id)

    # ─── Create ──────────────────────────────────────────

    async def create_item(
        self,
        title: str,
        description: Optional[str] = None,
        is_completed: bool = False,
    ) -> TodoItem:
        """Insert a new item. created_at is stamped here and never changes."""
        item = TodoItem(
            title=title,
            description=description,
            is_completed=False,
            created_at=utcnow(),
        )
        _apply_completion(item, is_completed)
        self.db.add(item)
        await self.db.commit()
        return item

    # ─── Update ──────────────────────────────────────────

    async def replace_item(
        self,
        item_id: int,
        title: str,
        description: Optional[str],
        is_completed: bool,
    ) -> Optional[TodoItem]:
        """Full update — every editable field is overwritten."""
        item = await self.get_item(item_id)
        if not item:
            return None

        item.title = title
        item.description = description
        _apply_completion(item, is_completed)

        await self.db.commit()
        return item

    async def update_item(
        self,
        item_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        is_completed: Optional[bool] = None,
    ) -> Optional[TodoItem]:
        """Partial update — only non-None fields are applied."""
        item = await self.get_item(item_id)
        if not item:
            return None

        if title is not None:
            item.title = title
        if description is not None:
            item.description = description
        if is_completed is not None:
            _apply_completion(item, is_completed)

        await self.db.commit()
        return item

    # ─── Delete ──────────────────────────────────────────

    async def delete_item(self, item_id: int) -> Optional[TodoItem]:
        """Delete an item. Returns the removed item, or None if it didn't exist."""
        item = await self.get_item(item_id)
        if not item:
            return None

        await self.db.delete(item)
        await self.db.commit()
        return item


async def seed_sample_items(db: AsyncSession) -> int:
    """Insert the sample items into an empty table. Returns how many were added."""
    svc = TodoService(db)
    if await svc.count_items():
        return 0
    for sample in SAMPLE_ITEMS:
        await svc.create_item(**sample)
    return len(SAMPLE_ITEMS)
