"""Plan routes: create, list, read, update and delete plans."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import Session

from planner.access.invites import issue_invite
from planner.access.policy import (
    can_manage_plan,
    get_manageable_plan,
    get_readable_plan,
    participant_view,
    readable_plans_query,
    resolve_visibility,
)
from planner.access.principals import Anonymous, AuthenticatedUser
from planner.access.profile_sync import sync_for_plan_read
from planner.core.database import get_session
from planner.core.errors import ValidationError
from planner.core.security import optional_principal, required_user
from planner.models import Participant, ParticipantRole, Plan, utcnow
from planner.schemas import PlanCreate, PlanUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans", tags=["plans"])


def plan_detail(plan: Plan, reveal_tokens: bool = False) -> dict:
    """Plan fields plus its items and participants; invite tokens only when ``reveal_tokens``."""
    return {
        **plan.model_dump(mode="json"),
        "items": [item.model_dump(mode="json") for item in plan.items],
        "participants": [participant_view(p, reveal_tokens) for p in plan.participants],
    }


@router.post("", status_code=201)
async def create_plan(
    body: PlanCreate,
    principal: Anonymous | AuthenticatedUser = Depends(optional_principal),
    session: Session = Depends(get_session),
):
    """
    Create a plan together with its owner participant.

    Signed-in callers become the plan's creator and are linked to the owner
    participant. The owner participant always gets an invite token.
    """
    visibility = resolve_visibility(principal, body.visibility)
    user_id = principal.id if isinstance(principal, AuthenticatedUser) else None

    plan = Plan(
        **body.model_dump(exclude={"owner", "visibility"}),
        visibility=visibility,
        created_by_user_id=user_id,
    )
    session.add(plan)
    session.flush()

    owner = Participant(
        **body.owner.model_dump(),
        plan_id=plan.id,
        user_id=user_id,
        role=ParticipantRole.OWNER,
    )
    issue_invite(owner)
    session.add(owner)
    session.flush()

    plan.owner_participant_id = owner.id
    session.add(plan)
    session.commit()
    session.refresh(plan)

    logger.info(f"Plan created (plan_id={plan.id}, visibility={visibility.value}, user_id={user_id})")
    return plan_detail(plan, reveal_tokens=True)


@router.get("")
async def list_plans(
    principal: Anonymous | AuthenticatedUser = Depends(optional_principal),
    session: Session = Depends(get_session),
):
    """List the plans visible to the caller, oldest first."""
    plans = session.exec(readable_plans_query(principal)).all()
    return plans


@router.get("/{plan_id}")
async def get_plan(
    plan_id: UUID,
    principal: Anonymous | AuthenticatedUser = Depends(optional_principal),
    session: Session = Depends(get_session),
):
    """
    Read one plan with its items and participants.

    A plan the caller may not read is reported exactly like a missing one.
    When the caller is linked to a participant of the plan, their profile
    claims are synced into their participant rows first.
    """
    plan = get_readable_plan(session, principal, plan_id)

    if isinstance(principal, AuthenticatedUser) and sync_for_plan_read(session, principal, plan_id):
        session.refresh(plan)

    return plan_detail(plan, reveal_tokens=can_manage_plan(session, principal, plan))


@router.patch("/{plan_id}")
async def update_plan(
    plan_id: UUID,
    body: PlanUpdate,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Update plan fields. Only the plan's managers may do this."""
    plan = get_manageable_plan(session, user, plan_id)

    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    if "visibility" in changes:
        if changes["visibility"] is None:
            raise ValidationError("Visibility cannot be empty")
        changes["visibility"] = resolve_visibility(user, changes["visibility"])

    for name, value in changes.items():
        setattr(plan, name, value)
    plan.updated_at = utcnow()
    session.add(plan)
    session.commit()
    session.refresh(plan)

    logger.info(f"Plan updated (plan_id={plan_id}, user_id={user.id}, fields={sorted(changes)})")
    return plan


@router.delete("/{plan_id}")
async def delete_plan(
    plan_id: UUID,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Delete a plan with all of its participants and items."""
    plan = get_manageable_plan(session, user, plan_id)
    session.delete(plan)
    session.commit()

    logger.info(f"Plan deleted (plan_id={plan_id}, user_id={user.id})")
    return {"ok": True}
