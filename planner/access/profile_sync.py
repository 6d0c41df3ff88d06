"""Keep linked participants in step with the identity provider's profile.

Identity fields (name, last name, email, phone, avatar) of every participant
linked to a user follow that user's token claims. Writes only happen for
rows that actually differ, so repeated syncs converge to a no-op.
"""
import logging
from typing import Any

from sqlalchemy import update
from sqlmodel import Session, select

from planner.access.identity import derive_identity_fields
from planner.access.principals import AuthenticatedUser
from planner.models import Participant, utcnow

logger = logging.getLogger(__name__)


def fields_needing_sync(participant: Participant, fields: dict[str, Any]) -> dict[str, Any]:
    """The subset of ``fields`` whose value differs from the stored one."""
    return {
        name: value
        for name, value in fields.items()
        if getattr(participant, name) != value
    }


def sync_one(session: Session, participant: Participant, fields: dict[str, Any]) -> Participant | None:
    """Write identity ``fields`` into one participant.

    Returns the updated participant, or None when nothing differed and no
    write happened.
    """
    if not fields or not fields_needing_sync(participant, fields):
        return None

    for name, value in fields.items():
        setattr(participant, name, value)
    participant.updated_at = utcnow()
    session.add(participant)
    session.commit()
    session.refresh(participant)

    logger.info(
        f"Participant identity synced from JWT profile "
        f"(participant_id={participant.id}, plan_id={participant.plan_id})"
    )
    return participant


def sync_all(session: Session, user: AuthenticatedUser) -> int:
    """Sync every participant linked to ``user`` across all plans.

    Rows that already match are left untouched. Returns the number of rows
    written.
    """
    fields = derive_identity_fields(user.claims)
    if not fields:
        return 0

    linked = session.exec(select(Participant).where(Participant.user_id == user.id)).all()
    stale_ids = [p.id for p in linked if fields_needing_sync(p, fields)]
    if not stale_ids:
        return 0

    session.exec(
        update(Participant)
        .where(Participant.id.in_(stale_ids))
        .values(**fields, updated_at=utcnow())
    )
    session.commit()

    logger.info(f"Participant identity synced across all plans (user_id={user.id}, synced={len(stale_ids)})")
    return len(stale_ids)


def sync_for_plan_read(session: Session, user: AuthenticatedUser, plan_id) -> int:
    """Implicit sync when ``user`` reads a plan they are linked to."""
    linked = session.exec(
        select(Participant.id)
        .where(Participant.plan_id == plan_id)
        .where(Participant.user_id == user.id)
        .limit(1)
    ).first()
    if linked is None:
        return 0
    return sync_all(session, user)
