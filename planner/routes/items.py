"""Item routes for managing the things participants bring."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session, select

from planner.access.bulk import (
    ITEM_NOT_FOUND,
    build_item,
    bulk_create,
    bulk_update,
    check_assignment,
    load_participant_plans,
    update_item,
)
from planner.access.policy import get_readable_plan
from planner.access.principals import AuthenticatedUser
from planner.core.database import get_session
from planner.core.errors import NotFoundError
from planner.core.security import required_user
from planner.models import Item
from planner.schemas import BulkItemCreate, BulkItemUpdate, ItemCreate, ItemUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["items"])


def _get_readable_item(session: Session, user: AuthenticatedUser, item_id: UUID) -> Item:
    item = session.get(Item, item_id)
    if item is None:
        raise NotFoundError(ITEM_NOT_FOUND)
    try:
        get_readable_plan(session, user, item.plan_id)
    except NotFoundError:
        raise NotFoundError(ITEM_NOT_FOUND)
    return item


@router.post("/plans/{plan_id}/items", status_code=201)
async def create_item(
    plan_id: UUID,
    body: ItemCreate,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """
    Add an item to a plan.

    Food items need an explicit unit; equipment defaults to pieces. An
    assigned participant must belong to the same plan.
    """
    get_readable_plan(session, user, plan_id)
    participant_plans = load_participant_plans(session, [body.assigned_participant_id])
    check_assignment(participant_plans, body.assigned_participant_id, plan_id)

    item = build_item(plan_id, body, body.assigned_participant_id)
    session.add(item)
    session.commit()
    session.refresh(item)

    logger.info(f"Item created (item_id={item.id}, plan_id={plan_id}, user_id={user.id})")
    return item


@router.get("/plans/{plan_id}/items")
async def list_items(
    plan_id: UUID,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """List the items of a plan."""
    get_readable_plan(session, user, plan_id)
    items = session.exec(select(Item).where(Item.plan_id == plan_id).order_by(Item.created_at)).all()
    return items


@router.post("/plans/{plan_id}/items/bulk")
async def create_items_bulk(
    plan_id: UUID,
    body: BulkItemCreate,
    response: Response,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """
    Create many items at once.

    Returns 200 when every item was created, otherwise 207 with the failed
    items listed under ``errors``.
    """
    get_readable_plan(session, user, plan_id)
    result = bulk_create(session, plan_id, body.items)
    response.status_code = result.status_code
    return result.to_dict()


@router.patch("/plans/{plan_id}/items/bulk")
async def update_items_bulk(
    plan_id: UUID,
    body: BulkItemUpdate,
    response: Response,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Update many items at once, with the same 200/207 convention as bulk create."""
    get_readable_plan(session, user, plan_id)
    result = bulk_update(session, plan_id, body.items)
    response.status_code = result.status_code
    return result.to_dict()


@router.patch("/items/{item_id}")
async def patch_item(
    item_id: UUID,
    body: ItemUpdate,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Update item fields."""
    _get_readable_item(session, user, item_id)
    item = update_item(session, item_id, body.model_dump(exclude_unset=True))

    logger.info(f"Item updated (item_id={item_id}, user_id={user.id})")
    return item


@router.delete("/items/{item_id}")
async def delete_item(
    item_id: UUID,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Delete an item."""
    item = _get_readable_item(session, user, item_id)
    session.delete(item)
    session.commit()

    logger.info(f"Item deleted (item_id={item_id}, user_id={user.id})")
    return {"ok": True}
