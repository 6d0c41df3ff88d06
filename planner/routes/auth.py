"""Authenticated user routes: identity, preferences and profile sync."""
import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from planner.access.principals import AuthenticatedUser
from planner.access.profile_sync import sync_all
from planner.core.database import get_session
from planner.core.security import required_user
from planner.models import UserDetails, utcnow
from planner.schemas import ProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def user_info(user: AuthenticatedUser) -> dict:
    return {"id": user.id, "email": user.claims.email, "role": user.role}


def preferences_info(details: UserDetails | None) -> dict | None:
    if details is None:
        return None
    return {
        "food_preferences": details.food_preferences,
        "allergies": details.allergies,
        "default_equipment": details.default_equipment,
    }


@router.get("/me")
async def me(user: AuthenticatedUser = Depends(required_user)):
    """Return the identity carried by the caller's JWT."""
    return {"user": user_info(user)}


@router.get("/profile")
async def get_profile(
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Return the caller's identity and stored app preferences."""
    details = session.get(UserDetails, user.id)
    return {"user": user_info(user), "preferences": preferences_info(details)}


@router.patch("/profile")
async def update_profile(
    body: ProfileUpdate,
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """
    Create or update the caller's app preferences.

    Only fields present in the body change; send null to clear one.
    """
    changes = body.model_dump(exclude_unset=True)
    details = session.get(UserDetails, user.id)
    if details is None:
        details = UserDetails(user_id=user.id)

    for name, value in changes.items():
        setattr(details, name, value)
    details.updated_at = utcnow()
    session.add(details)
    session.commit()
    session.refresh(details)

    logger.info(f"User preferences saved (user_id={user.id}, fields={sorted(changes)})")
    return {"preferences": preferences_info(details)}


@router.post("/sync-profile")
async def sync_profile(
    user: AuthenticatedUser = Depends(required_user),
    session: Session = Depends(get_session),
):
    """Push the caller's JWT profile into every participant linked to them."""
    synced = sync_all(session, user)
    return {"synced": synced}
