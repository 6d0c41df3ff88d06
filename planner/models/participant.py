"""Participant model for people taking part in a plan.

A participant starts out unclaimed, reachable through its invite token, and
is linked to an external identity at most once through the claim flow.
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from planner.models.plan import utcnow

if TYPE_CHECKING:
    from planner.models.plan import Plan


class ParticipantRole(str, enum.Enum):
    OWNER = "owner"
    PARTICIPANT = "participant"
    VIEWER = "viewer"


class InviteStatus(str, enum.Enum):
    PENDING = "pending"
    INVITED = "invited"
    ACCEPTED = "accepted"


class RsvpStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    NOT_SURE = "not_sure"


class Participant(SQLModel, table=True):
    """A person taking part in a plan.

    Attributes:
        id: Unique identifier (UUID).
        plan_id: Foreign key to the owning Plan (cascade delete).
        user_id: External identity linked through the claim flow. At most
            one participant per (plan, user).
        name: First name.
        last_name: Last name.
        contact_phone: Phone number.
        display_name: Optional name shown to other guests.
        role: "owner", "participant" or "viewer". The owner cannot be
            deleted and its role cannot change.
        avatar_url: Profile picture.
        contact_email: Email address.
        invite_token: 64-char hex bearer credential for guest access.
            Cleared once the participant is claimed.
        invite_status: "pending", "invited" or "accepted".
        rsvp_status: "pending", "confirmed" or "not_sure".
        last_activity_at: Last time the invite token was used.
    """
    __table_args__ = (UniqueConstraint("plan_id", "user_id", name="uq_participant_plan_user"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    plan_id: UUID = Field(foreign_key="plan.id", ondelete="CASCADE", index=True)
    user_id: str | None = Field(default=None, index=True)
    name: str = Field(max_length=255)
    last_name: str = Field(max_length=255)
    contact_phone: str = Field(max_length=50)
    display_name: str | None = Field(default=None, max_length=255)
    role: ParticipantRole = Field(default=ParticipantRole.PARTICIPANT)
    avatar_url: str | None = None
    contact_email: str | None = Field(default=None, max_length=255)
    invite_token: str | None = Field(default=None, max_length=64, unique=True)
    invite_status: InviteStatus = Field(default=InviteStatus.PENDING)
    rsvp_status: RsvpStatus = Field(default=RsvpStatus.PENDING)
    adults_count: int | None = None
    kids_count: int | None = None
    food_preferences: str | None = None
    allergies: str | None = None
    notes: str | None = None
    last_activity_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    # Relationship
    plan: Optional["Plan"] = Relationship(back_populates="participants")
