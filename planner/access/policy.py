"""Plan visibility rules.

Read access:
    1. Admins read everything.
    2. Public plans are readable by anyone.
    3. Anonymous callers (and invite guests) read nothing else.
    4. The creator reads their own plan.
    5. A user linked to any participant of the plan reads it.

Write-side visibility constraints:
    - Admins may set any visibility.
    - Signed-in users may only create/keep invite_only or private plans.
    - Anonymous callers may only create public plans.

A denied read is reported exactly like a missing plan.
"""
from uuid import UUID

from sqlalchemy import or_
from sqlmodel import Session, select

from planner.access.principals import Admin, AuthenticatedUser, Principal
from planner.core.errors import NotFoundError, ValidationError
from planner.models import Participant, ParticipantRole, Plan, Visibility

PLAN_NOT_FOUND = "Plan not found"

USER_VISIBILITIES = frozenset({Visibility.INVITE_ONLY, Visibility.PRIVATE})
ANONYMOUS_VISIBILITIES = frozenset({Visibility.PUBLIC})


def _user_id(principal: Principal) -> str | None:
    if isinstance(principal, AuthenticatedUser):
        return principal.id
    return None


def is_linked(session: Session, plan_id: UUID, user_id: str) -> bool:
    """Whether ``user_id`` is linked to a participant of the plan."""
    statement = (
        select(Participant.id)
        .where(Participant.plan_id == plan_id)
        .where(Participant.user_id == user_id)
        .limit(1)
    )
    return session.exec(statement).first() is not None


def can_read(session: Session, principal: Principal, plan: Plan) -> bool:
    if isinstance(principal, Admin):
        return True
    if plan.visibility == Visibility.PUBLIC:
        return True

    user_id = _user_id(principal)
    if user_id is None:
        return False
    if plan.created_by_user_id == user_id:
        return True
    return is_linked(session, plan.id, user_id)


def can_set_visibility(principal: Principal, requested: Visibility) -> bool:
    if isinstance(principal, Admin):
        return True
    if isinstance(principal, AuthenticatedUser):
        return requested in USER_VISIBILITIES
    return requested in ANONYMOUS_VISIBILITIES


def default_visibility(principal: Principal) -> Visibility:
    if isinstance(principal, AuthenticatedUser):
        return Visibility.INVITE_ONLY
    return Visibility.PUBLIC


def resolve_visibility(principal: Principal, requested: Visibility | None) -> Visibility:
    """Pick the visibility for a create/update, or raise ValidationError."""
    if requested is None:
        return default_visibility(principal)
    requested = Visibility(requested)
    if not can_set_visibility(principal, requested):
        raise ValidationError(f"Visibility '{requested.value}' is not allowed for this user")
    return requested


def get_readable_plan(session: Session, principal: Principal, plan_id: UUID) -> Plan:
    """Load a plan the principal may read, else raise the generic 404."""
    plan = session.get(Plan, plan_id)
    if plan is None or not can_read(session, principal, plan):
        raise NotFoundError(PLAN_NOT_FOUND)
    return plan


def readable_plans_query(principal: Principal):
    """SELECT for the plans the principal may list."""
    statement = select(Plan).order_by(Plan.created_at)
    if isinstance(principal, Admin):
        return statement

    user_id = _user_id(principal)
    if user_id is None:
        return statement.where(Plan.visibility == Visibility.PUBLIC)

    linked_plan_ids = select(Participant.plan_id).where(Participant.user_id == user_id)
    return statement.where(
        or_(
            Plan.visibility == Visibility.PUBLIC,
            Plan.created_by_user_id == user_id,
            Plan.id.in_(linked_plan_ids),
        )
    )


def can_manage_plan(session: Session, principal: Principal, plan: Plan) -> bool:
    """Admins, the creator and the linked owner participant manage a plan."""
    if isinstance(principal, Admin):
        return True
    user_id = _user_id(principal)
    if user_id is None:
        return False
    if plan.created_by_user_id == user_id:
        return True
    statement = (
        select(Participant.id)
        .where(Participant.plan_id == plan.id)
        .where(Participant.user_id == user_id)
        .where(Participant.role == ParticipantRole.OWNER)
        .limit(1)
    )
    return session.exec(statement).first() is not None


def get_manageable_plan(session: Session, principal: Principal, plan_id: UUID) -> Plan:
    """Load a plan the principal may modify.

    Readers without management rights get the same 404 as strangers.
    """
    plan = session.get(Plan, plan_id)
    if plan is None or not can_manage_plan(session, principal, plan):
        raise NotFoundError(PLAN_NOT_FOUND)
    return plan


def participant_view(participant: Participant, reveal_token: bool) -> dict:
    """Serialized participant; the invite token is a credential and only shown to managers."""
    data = participant.model_dump(mode="json")
    if not reveal_token:
        data.pop("invite_token", None)
    return data
