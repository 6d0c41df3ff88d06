"""Participant routes for managing who takes part in a plan."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import update
from sqlmodel import Session, select

from planner.access.identity import derive_identity_fields
from planner.access.invites import issue_invite, regenerate_invite_token
from planner.access.policy import can_manage_plan, get_manageable_plan, get_readable_plan, participant_view
from planner.access.principals import Anonymous, AuthenticatedUser
from planner.access.profile_sync import sync_one
from planner.core.database import get_session
from planner.core.errors import NotFoundError, ValidationError
from planner.core.security import optional_principal, required_user
from planner.models import Item, Participant, ParticipantRole, RsvpStatus, utcnow
from planner.schemas import ParticipantCreate, ParticipantUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["participants"])

PARTICIPANT_NOT_FOUND = "Participant not found"


def _get_participant(session: Session, participant_id: UUID) -> Participant:
    participant = session.get(Participant, participant_id)
    if participant is None:
        raise NotFoundError(PARTICIPANT_NOT_FOUND)
    return participant


def _get_managed_participant(session: Session, user: AuthenticatedUser, participant_id: UUID) -> Participant:
    """Participant whose plan the user manages; 404 for everything else."""
    participant = _get_participant(session, participant_id)
    try:
        get_manageable_plan(session, user, participant.plan_id)
    except NotFoundError:
        raise NotFoundError(PARTICIPANT_NOT_FOUND)
    return participant


@router.get("/plans/{plan_id}/participants")
async def list_participants(
    plan_id: UUID,
    principal: Anonymous | AuthenticatedUser = Depends(optional_principal),
    session: Session = Depends(get_session),
):
    """List participants of a readable plan; invite tokens are shown to managers only."""
    plan = get_readable_plan(session, principal, plan_id)
    participants = session.exec(
        select(Participant).where(Participant.plan_id == plan_id).order_by(Participant.created_at)
    ).all()
    reveal = can_manage_plan(session, principal, plan)
    return [participant_view(p, reveal) for p in participants]


@router.post("/plans/{plan_id}/participants", status_code=201)
async def create_participant(
    plan_id: UUID,
    body: ParticipantCreate,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Add a participant to a plan and issue their invite token."""
    get_manageable_plan(session, user, plan_id)

    participant = Participant(
        **body.model_dump(exclude={"role"}),
        role=ParticipantRole(body.role),
        plan_id=plan_id,
    )
    issue_invite(participant)
    session.add(participant)
    session.commit()
    session.refresh(participant)

    logger.info(f"Participant created (participant_id={participant.id}, plan_id={plan_id})")
    return participant


@router.get("/participants/{participant_id}")
async def get_participant(
    participant_id: UUID,
    principal: Anonymous | AuthenticatedUser = Depends(optional_principal),
    session: Session = Depends(get_session),
):
    """
    Read one participant.

    When the caller is the user linked to this participant, the row is
    synced with their profile claims before it is returned.
    """
    participant = _get_participant(session, participant_id)
    try:
        plan = get_readable_plan(session, principal, participant.plan_id)
    except NotFoundError:
        raise NotFoundError(PARTICIPANT_NOT_FOUND)

    if isinstance(principal, AuthenticatedUser) and participant.user_id == principal.id:
        participant = sync_one(session, participant, derive_identity_fields(principal.claims)) or participant

    return participant_view(participant, can_manage_plan(session, principal, plan))


@router.patch("/participants/{participant_id}")
async def update_participant(
    participant_id: UUID,
    body: ParticipantUpdate,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Update participant fields. The owner's role cannot change."""
    participant = _get_managed_participant(session, user, participant_id)

    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    if "role" in changes:
        if participant.role == ParticipantRole.OWNER:
            raise ValidationError("Cannot change role of owner participant")
        if changes["role"] is None:
            raise ValidationError("Role cannot be empty")
        changes["role"] = ParticipantRole(changes["role"])
    if "rsvp_status" in changes and changes["rsvp_status"] is None:
        changes["rsvp_status"] = RsvpStatus.PENDING

    for name, value in changes.items():
        setattr(participant, name, value)
    participant.updated_at = utcnow()
    session.add(participant)
    session.commit()
    session.refresh(participant)

    logger.info(f"Participant updated (participant_id={participant_id}, fields={sorted(changes)})")
    return participant


@router.delete("/participants/{participant_id}")
async def delete_participant(
    participant_id: UUID,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Remove a participant. Their items stay in the plan, unassigned."""
    participant = _get_managed_participant(session, user, participant_id)
    if participant.role == ParticipantRole.OWNER:
        raise ValidationError("Cannot delete participant with owner role")

    session.exec(
        update(Item)
        .where(Item.assigned_participant_id == participant_id)
        .values(assigned_participant_id=None, updated_at=utcnow())
    )
    session.delete(participant)
    session.commit()

    logger.info(f"Participant deleted (participant_id={participant_id}, user_id={user.id})")
    return {"ok": True}


@router.post("/plans/{plan_id}/participants/{participant_id}/regenerate-token")
async def regenerate_token(
    plan_id: UUID,
    participant_id: UUID,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Issue a new invite token; the previous link stops working."""
    get_manageable_plan(session, user, plan_id)
    participant = regenerate_invite_token(session, plan_id, participant_id)
    return {"participant_id": participant.id, "invite_token": participant.invite_token}
