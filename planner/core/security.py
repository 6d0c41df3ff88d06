"""FastAPI dependencies that resolve the request principal.

The resolver is built once at startup and kept on ``app.state``; tests swap
it through ``app.dependency_overrides[get_principal_resolver]``.
"""
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlmodel import Session

from planner.access.principals import (
    Anonymous,
    AuthenticatedUser,
    GuestViaInvite,
    PrincipalResolver,
)
from planner.core.database import get_session

INVITE_TOKEN_HEADER = "X-Invite-Token"


def get_principal_resolver(request: Request) -> PrincipalResolver:
    """Dependency for getting the application's principal resolver."""
    return request.app.state.principal_resolver


def optional_principal(
    authorization: str | None = Header(default=None),
    resolver: PrincipalResolver = Depends(get_principal_resolver),
) -> Anonymous | AuthenticatedUser:
    """Caller identity where signing in is optional."""
    return resolver.resolve_optional(authorization)


def required_user(
    authorization: str | None = Header(default=None),
    resolver: PrincipalResolver = Depends(get_principal_resolver),
) -> AuthenticatedUser:
    """Caller identity where signing in is mandatory (401 otherwise)."""
    return resolver.resolve_required(authorization)


def guest_from_path(
    plan_id: UUID,
    invite_token: str,
    session: Session = Depends(get_session),
    resolver: PrincipalResolver = Depends(get_principal_resolver),
) -> GuestViaInvite:
    """Guest identified by the invite token in the URL."""
    return resolver.require_guest(session, plan_id, invite_token)


def guest_from_header(
    plan_id: UUID,
    x_invite_token: str | None = Header(default=None, alias=INVITE_TOKEN_HEADER),
    session: Session = Depends(get_session),
    resolver: PrincipalResolver = Depends(get_principal_resolver),
) -> GuestViaInvite:
    """Guest identified by the ``X-Invite-Token`` header."""
    return resolver.require_guest(session, plan_id, x_invite_token)
