"""Claim route: link a signed-in user to a participant via invite token."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import Session

from planner.access.invites import claim_participant
from planner.access.principals import AuthenticatedUser
from planner.core.database import get_session
from planner.core.security import required_user

router = APIRouter(tags=["auth"])


@router.post("/plans/{plan_id}/claim/{invite_token}")
async def claim(
    plan_id: UUID,
    invite_token: str,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """
    Claim a participant spot.

    After claiming, the user reaches the plan with their JWT; the invite
    token is cleared. Repeating the claim as the same user is a no-op.
    """
    return claim_participant(session, user, plan_id, invite_token)
