"""Invite token lifecycle: issue, regenerate, resolve and claim."""
import logging
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from planner.access.identity import derive_identity_fields
from planner.access.principals import AuthenticatedUser
from planner.access.tokens import generate_invite_token, is_well_formed, mask_token
from planner.core.errors import ConflictError, NotFoundError
from planner.models import InviteStatus, Participant, UserDetails, utcnow

logger = logging.getLogger(__name__)

INVALID_INVITE = "Invalid invite token or plan not found"
LINKED_TO_ANOTHER_ACCOUNT = "This participant is already linked to another account"
ALREADY_A_PARTICIPANT = "You are already a participant in this plan"
CLAIMED_PARTICIPANT = "Cannot regenerate token for a claimed participant"

# Preference fields backfilled from UserDetails when empty on the participant
BACKFILL_FIELDS = ("food_preferences", "allergies")


def issue_invite(participant: Participant) -> Participant:
    """Attach a fresh invite token to a participant that is not yet linked."""
    participant.invite_token = generate_invite_token()
    if participant.user_id is None and participant.name:
        participant.invite_status = InviteStatus.INVITED
    else:
        participant.invite_status = InviteStatus.PENDING
    return participant


def regenerate_invite_token(session: Session, plan_id: UUID, participant_id: UUID) -> Participant:
    """Replace the participant's token; the old one stops resolving at once."""
    participant = session.get(Participant, participant_id)
    if participant is None or participant.plan_id != plan_id:
        raise NotFoundError("Participant not found")
    if participant.user_id is not None:
        raise ConflictError(CLAIMED_PARTICIPANT)

    previous = participant.invite_token
    token = generate_invite_token()
    while token == previous:
        token = generate_invite_token()

    participant.invite_token = token
    participant.updated_at = utcnow()
    session.add(participant)
    session.commit()
    session.refresh(participant)

    logger.info(f"Invite token regenerated (participant_id={participant_id}, plan_id={plan_id})")
    return participant


def find_participant_by_token(session: Session, plan_id: UUID, token: str) -> Participant:
    """The unique participant of ``plan_id`` holding ``token``."""
    participant = None
    if is_well_formed(token):
        participant = session.exec(
            select(Participant)
            .where(Participant.plan_id == plan_id)
            .where(Participant.invite_token == token)
        ).first()

    if participant is None:
        logger.warning(f"Invite token rejected (plan_id={plan_id}, token={mask_token(token)})")
        raise NotFoundError(INVALID_INVITE)
    return participant


def _linked_participant_id(session: Session, plan_id: UUID, user_id: str) -> UUID | None:
    return session.exec(
        select(Participant.id)
        .where(Participant.plan_id == plan_id)
        .where(Participant.user_id == user_id)
        .limit(1)
    ).first()


def _preference_backfill(session: Session, participant: Participant, user_id: str) -> dict:
    empty = [name for name in BACKFILL_FIELDS if not getattr(participant, name)]
    if not empty:
        return {}

    defaults = session.get(UserDetails, user_id)
    if defaults is None:
        return {}
    return {name: getattr(defaults, name) for name in empty if getattr(defaults, name)}


def _resolve_lost_race(session: Session, participant: Participant, user: AuthenticatedUser) -> Participant:
    """Decide the outcome after the conditional claim write matched no row."""
    session.refresh(participant)
    if participant.user_id == user.id:
        return participant
    if participant.user_id is not None:
        raise ConflictError(LINKED_TO_ANOTHER_ACCOUNT)
    # Token was regenerated between lookup and write
    raise NotFoundError(INVALID_INVITE)


def claim_participant(
    session: Session, user: AuthenticatedUser, plan_id: UUID, token: str
) -> Participant:
    """Link ``user`` to the participant holding ``token``.

    Claiming is idempotent for the same user. The final write only applies
    while the row is still unclaimed and still holds ``token``, so two
    concurrent claims cannot both succeed.
    """
    participant = find_participant_by_token(session, plan_id, token)

    if participant.user_id is not None and participant.user_id != user.id:
        logger.warning(
            f"Claim rejected, participant linked to another account "
            f"(plan_id={plan_id}, user_id={user.id})"
        )
        raise ConflictError(LINKED_TO_ANOTHER_ACCOUNT)

    if participant.user_id == user.id:
        logger.info(f"Claim is idempotent (participant_id={participant.id}, user_id={user.id})")
        return participant

    if _linked_participant_id(session, plan_id, user.id) is not None:
        logger.warning(f"Claim rejected, user already a participant (plan_id={plan_id}, user_id={user.id})")
        raise ConflictError(ALREADY_A_PARTICIPANT)

    values = {
        **_preference_backfill(session, participant, user.id),
        **derive_identity_fields(user.claims),
        "user_id": user.id,
        "invite_status": InviteStatus.ACCEPTED,
        "invite_token": None,
        "updated_at": utcnow(),
    }
    statement = (
        update(Participant)
        .where(Participant.id == participant.id)
        .where(Participant.user_id.is_(None))
        .where(Participant.invite_token == token)
        .values(**values)
    )

    try:
        result = session.exec(statement)
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.warning(f"Claim lost a race on (plan_id, user_id) (plan_id={plan_id}, user_id={user.id})")
        raise ConflictError(ALREADY_A_PARTICIPANT)

    if result.rowcount == 0:
        return _resolve_lost_race(session, participant, user)

    session.refresh(participant)
    logger.info(
        f"Participant claimed (participant_id={participant.id}, plan_id={plan_id}, user_id={user.id})"
    )
    return participant
