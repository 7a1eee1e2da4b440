"""Todo item API routes.

Learn: These routes are thin: call the service, then emit the change.
Emission mirrors the mutation to the pub/sub bridge and to every
WebSocket client. Emission never fails the request; the store commit
has already happened by then.

Key patterns:
- PUT overwrites every editable field, PATCH applies only what's sent
- Failed mutations (404, 400) emit nothing
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from todobridge.db.engine import get_db
from todobridge.db.models import ITEM_ID_MAX, ITEM_ID_MIN
from todobridge.events.change import ChangeEvent
from todobridge.events.notifier import ChangeNotifier
from todobridge.schemas.todo import TodoCreate, TodoRead, TodoReplace, TodoUpdate
from todobridge.services.todo_service import TodoService

router = APIRouter()

NOT_FOUND = "Item not found"

ItemId = Annotated[int, Path(ge=ITEM_ID_MIN, le=ITEM_ID_MAX)]


def _svc(db: AsyncSession = Depends(get_db)) -> TodoService:
    return TodoService(db)


def _notifier(request: Request) -> ChangeNotifier:
    return request.app.state.notifier


@router.get("/todoitems", response_model=list[TodoRead])
async def list_todo_items(svc: TodoService = Depends(_svc)):
    """List all todo items."""
    return await svc.list_items()


@router.get("/todoitems/{item_id}", response_model=TodoRead)
async def get_todo_item(item_id: ItemId, svc: TodoService = Depends(_svc)):
    item = await svc.get_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return item


@router.post("/todoitems", response_model=TodoRead, status_code=201)
async def create_todo_item(
    body: TodoCreate,
    svc: TodoService = Depends(_svc),
    notifier: ChangeNotifier = Depends(_notifier),
):
    """Create a new todo item and announce it."""
    item = await svc.create_item(
        title=body.title,
        description=body.description,
        is_completed=body.is_completed,
    )
    await notifier.emit(ChangeEvent.created(item))
    return item


@router.put("/todoitems/{item_id}", response_model=TodoRead)
async def replace_todo_item(
    item_id: ItemId,
    body: TodoReplace,
    svc: TodoService = Depends(_svc),
    notifier: ChangeNotifier = Depends(_notifier),
):
    """Overwrite title, description and completion of an item."""
    if body.id is not None and body.id != item_id:
        raise HTTPException(status_code=400, detail="Body id does not match path id")

    item = await svc.replace_item(
        item_id,
        title=body.title,
        description=body.description,
        is_completed=body.is_completed,
    )
    if not item:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    await notifier.emit(ChangeEvent.updated(item))
    return item


@router.patch("/todoitems/{item_id}", response_model=TodoRead)
async def update_todo_item(
    item_id: ItemId,
    body: TodoUpdate,
    svc: TodoService = Depends(_svc),
    notifier: ChangeNotifier = Depends(_notifier),
):
    """Partially update an item (only the fields sent are applied)."""
    item = await svc.update_item(
        item_id,
        title=body.title,
        description=body.description,
        is_completed=body.is_completed,
    )
    if not item:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    await notifier.emit(ChangeEvent.updated(item, partial=True))
    return item


@router.delete("/todoitems/{item_id}", status_code=204)
async def delete_todo_item(
    item_id: ItemId,
    svc: TodoService = Depends(_svc),
    notifier: ChangeNotifier = Depends(_notifier),
):
    item = await svc.delete_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    await notifier.emit(ChangeEvent.deleted(item_id))
    return Response(status_code=204)
