"""Request principals and the resolver that produces them.

Every request resolves to exactly one of:

    Anonymous          no credential, or a credential that did not verify
                       on a route where authentication is optional
    AuthenticatedUser  a verified identity token
    Admin              an AuthenticatedUser whose role claim is "admin"
    GuestViaInvite     an invite token matching one participant of the plan

Guests are resolved separately from identity tokens and never satisfy
routes that require an authenticated user.
"""
import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from planner.access.identity import ADMIN_ROLE, IdentityClaims, parse_claims
from planner.access.tokens import is_well_formed, mask_token, tokens_match
from planner.access.verifier import JwtVerifier, VerificationError
from planner.core.errors import NotFoundError, UnauthorizedError
from planner.models import Participant, utcnow

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    role: str
    claims: IdentityClaims = field(compare=False, repr=False)


@dataclass(frozen=True)
class Admin(AuthenticatedUser):
    pass


@dataclass(frozen=True)
class GuestViaInvite:
    participant_id: UUID
    plan_id: UUID


ANONYMOUS = Anonymous()

Principal = Anonymous | AuthenticatedUser | Admin | GuestViaInvite


def principal_from_claims(claims: IdentityClaims) -> AuthenticatedUser:
    if claims.role == ADMIN_ROLE:
        return Admin(id=claims.user_id, role=claims.role, claims=claims)
    return AuthenticatedUser(id=claims.user_id, role=claims.role, claims=claims)


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token of a ``Bearer`` header, or None."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip() or None


class PrincipalResolver:
    """Turn raw request credentials into a principal.

    ``jwt_enabled`` is fixed at construction. When it is False every bearer
    token is treated as unverifiable.
    """

    def __init__(self, verifier: JwtVerifier | None, jwt_enabled: bool):
        self.verifier = verifier
        self.jwt_enabled = jwt_enabled and verifier is not None

    def _verify(self, token: str) -> AuthenticatedUser | None:
        if not self.jwt_enabled:
            return None
        try:
            payload = self.verifier.verify(token)
        except VerificationError as e:
            logger.warning(f"JWT verification failed ({e.kind.value}): {e.message}")
            return None

        claims = parse_claims(payload)
        if claims is None:
            logger.warning("JWT verified but carries no subject")
            return None

        principal = principal_from_claims(claims)
        logger.info(f"User authenticated via JWT (user_id={principal.id}, role={principal.role})")
        return principal

    def resolve_optional(self, authorization: str | None) -> Anonymous | AuthenticatedUser:
        """Resolve for routes where authentication is optional.

        Verification failures degrade to Anonymous.
        """
        token = extract_bearer(authorization)
        if token is None:
            return ANONYMOUS
        return self._verify(token) or ANONYMOUS

    def resolve_required(self, authorization: str | None) -> AuthenticatedUser:
        """Resolve for routes that require an authenticated user.

        A missing header and a header that fails verification are both
        rejected, with different messages.
        """
        token = extract_bearer(authorization)
        if token is None:
            raise UnauthorizedError("Authentication required")

        principal = self._verify(token)
        if principal is None:
            raise UnauthorizedError("JWT token present but verification failed")
        return principal

    def resolve_guest(
        self, session: Session, plan_id: UUID, token: str | None
    ) -> GuestViaInvite | Anonymous:
        """Match an invite token to one participant of ``plan_id``.

        On a match the participant's last_activity_at is bumped. That write
        is best-effort and never fails the request.
        """
        if not is_well_formed(token):
            return ANONYMOUS

        participant = session.exec(
            select(Participant)
            .where(Participant.plan_id == plan_id)
            .where(Participant.invite_token == token)
        ).first()
        if participant is None or not tokens_match(token, participant.invite_token):
            logger.warning(f"Invite token not found (plan_id={plan_id}, token={mask_token(token)})")
            return ANONYMOUS

        guest = GuestViaInvite(participant_id=participant.id, plan_id=participant.plan_id)
        self._touch_activity(session, participant)
        logger.info(f"Guest authenticated via invite token (participant_id={guest.participant_id}, plan_id={plan_id})")
        return guest

    def require_guest(self, session: Session, plan_id: UUID, token: str | None) -> GuestViaInvite:
        guest = self.resolve_guest(session, plan_id, token)
        if not isinstance(guest, GuestViaInvite):
            raise NotFoundError("Invalid invite token or plan not found")
        return guest

    @staticmethod
    def _touch_activity(session: Session, participant: Participant) -> None:
        try:
            participant.last_activity_at = utcnow()
            session.add(participant)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning(f"Failed to record guest activity for {participant.id}: {e}")
