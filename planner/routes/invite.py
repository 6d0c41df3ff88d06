"""Guest routes reached through an invite link.

The invite token travels in the URL (``/plans/{plan_id}/invite/{token}``)
or, for the plan view, in the ``X-Invite-Token`` header. Other guests are
shown without contact details.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session

from planner.access.bulk import build_item, bulk_create, bulk_update, update_item
from planner.access.principals import GuestViaInvite
from planner.core.database import get_session
from planner.core.errors import NotFoundError, ValidationError
from planner.core.security import guest_from_header, guest_from_path
from planner.models import Participant, Plan, RsvpStatus, utcnow
from planner.schemas import (
    GuestBulkItemCreate,
    GuestBulkItemUpdate,
    GuestItemCreate,
    GuestItemUpdate,
    InvitePreferencesUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans/{plan_id}/invite", tags=["invite"])

PREFERENCE_FIELDS = ("adults_count", "kids_count", "food_preferences", "allergies", "notes")


def guest_display_name(participant: Participant) -> str:
    """The participant's display name, else "First L."."""
    if participant.display_name and participant.display_name.strip():
        return participant.display_name
    last_initial = f" {participant.last_name[0]}." if participant.last_name else ""
    return f"{participant.name or ''}{last_initial}".strip()


def preferences(participant: Participant) -> dict:
    return {name: getattr(participant, name) for name in PREFERENCE_FIELDS}


def invite_view(session: Session, guest: GuestViaInvite) -> dict:
    plan = session.get(Plan, guest.plan_id)
    me = session.get(Participant, guest.participant_id)
    if plan is None or me is None:
        raise NotFoundError("Plan not found")

    items = [
        item for item in plan.items
        if item.assigned_participant_id is None or item.assigned_participant_id == me.id
    ]
    participants = [
        {"participant_id": p.id, "display_name": guest_display_name(p), "role": p.role}
        for p in plan.participants
    ]

    logger.info(
        f"Guest accessed plan via invite link (plan_id={plan.id}, participant_id={me.id}, "
        f"visible_items={len(items)}/{len(plan.items)})"
    )
    return {
        **plan.model_dump(mode="json", exclude={"created_by_user_id", "owner_participant_id"}),
        "items": [item.model_dump(mode="json") for item in items],
        "participants": participants,
        "my_participant_id": me.id,
        "my_rsvp_status": me.rsvp_status,
        "my_preferences": preferences(me),
    }


@router.get("")
async def get_invite_by_header(
    guest: GuestViaInvite = Depends(guest_from_header),
    session: Session = Depends(get_session),
):
    """Plan view for a guest whose token is in the X-Invite-Token header."""
    return invite_view(session, guest)


@router.get("/{invite_token}")
async def get_invite(
    guest: GuestViaInvite = Depends(guest_from_path),
    session: Session = Depends(get_session),
):
    """
    Plan view for a guest holding an invite link.

    Items are limited to those unassigned or assigned to the guest. Other
    participants appear with display name and role only.
    """
    return invite_view(session, guest)


@router.patch("/{invite_token}/preferences")
async def update_preferences(
    body: InvitePreferencesUpdate,
    guest: GuestViaInvite = Depends(guest_from_path),
    session: Session = Depends(get_session),
):
    """Update the guest's own RSVP and preferences. Send null to clear a field."""
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    if "rsvp_status" in changes:
        if changes["rsvp_status"] is None:
            raise ValidationError("RSVP status cannot be empty")
        changes["rsvp_status"] = RsvpStatus(changes["rsvp_status"])

    participant = session.get(Participant, guest.participant_id)
    for name, value in changes.items():
        setattr(participant, name, value)
    participant.updated_at = utcnow()
    session.add(participant)
    session.commit()
    session.refresh(participant)

    logger.info(
        f"Guest preferences updated via invite token "
        f"(participant_id={participant.id}, fields={sorted(changes)})"
    )
    return {
        "participant_id": participant.id,
        "display_name": participant.display_name,
        "role": participant.role,
        "rsvp_status": participant.rsvp_status,
        **preferences(participant),
    }


@router.post("/{invite_token}/items", status_code=201)
async def create_guest_item(
    body: GuestItemCreate,
    guest: GuestViaInvite = Depends(guest_from_path),
    session: Session = Depends(get_session),
):
    """Create an item assigned to the guest."""
    item = build_item(guest.plan_id, body, guest.participant_id)
    session.add(item)
    session.commit()
    session.refresh(item)

    logger.info(f"Guest created item (item_id={item.id}, participant_id={guest.participant_id})")
    return item


@router.post("/{invite_token}/items/bulk")
async def create_guest_items_bulk(
    body: GuestBulkItemCreate,
    response: Response,
    guest: GuestViaInvite = Depends(guest_from_path),
    session: Session = Depends(get_session),
):
    """Create many items, all assigned to the guest. 200 or 207."""
    result = bulk_create(session, guest.plan_id, body.items, guest=guest)
    response.status_code = result.status_code
    return result.to_dict()


@router.patch("/{invite_token}/items/bulk")
async def update_guest_items_bulk(
    body: GuestBulkItemUpdate,
    response: Response,
    guest: GuestViaInvite = Depends(guest_from_path),
    session: Session = Depends(get_session),
):
    """Update many items the guest may edit. 200 or 207."""
    result = bulk_update(session, guest.plan_id, body.items, guest=guest)
    response.status_code = result.status_code
    return result.to_dict()


@router.patch("/{invite_token}/items/{item_id}")
async def update_guest_item(
    item_id: UUID,
    body: GuestItemUpdate,
    guest: GuestViaInvite = Depends(guest_from_path),
    session: Session = Depends(get_session),
):
    """Update an item that is unassigned or assigned to the guest."""
    item = update_item(
        session, item_id, body.model_dump(exclude_unset=True), plan_id=guest.plan_id, guest=guest
    )
    logger.info(f"Guest updated item (item_id={item_id}, participant_id={guest.participant_id})")
    return item
