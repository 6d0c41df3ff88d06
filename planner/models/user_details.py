"""Per-user preference defaults.

Keyed by external identity. Used to pre-fill a participant's empty
food preferences and allergies when the user claims an invite.
"""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from planner.models.plan import utcnow


class UserDetails(SQLModel, table=True):
    """Application preferences stored for an authenticated user.

    Attributes:
        user_id: External identity (JWT subject).
        food_preferences: Default food preferences.
        allergies: Default allergies.
        default_equipment: Equipment the user usually brings.
    """
    __tablename__ = "user_details"

    user_id: str = Field(primary_key=True)
    food_preferences: str | None = None
    allergies: str | None = None
    default_equipment: list[str] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
