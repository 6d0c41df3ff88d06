"""Plan model for trips and gatherings.

A Plan is the central entity: it owns its Participants and Items and carries
the visibility tier that decides who may read it.
"""

import enum
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from planner.models.item import Item
    from planner.models.participant import Participant


def utcnow() -> datetime:
    return datetime.now(UTC)


class PlanStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class Visibility(str, enum.Enum):
    """Read-access tier of a plan."""

    PUBLIC = "public"
    INVITE_ONLY = "invite_only"
    PRIVATE = "private"


class Plan(SQLModel, table=True):
    """A trip or gathering that participants bring items to.

    Attributes:
        id: Unique identifier (UUID).
        title: Display title.
        description: Free text description.
        status: Lifecycle status: "draft", "active" or "archived".
        visibility: Read-access tier: "public", "invite_only" or "private".
        owner_participant_id: The Participant acting as owner. Not a foreign
            key because the owner row is created after the plan.
        created_by_user_id: External identity that created the plan. Set
            once at creation and never reassigned; None for anonymous plans.
        location: Free-form location object (name, city, coordinates...).
        start_date: When the plan starts.
        end_date: When the plan ends.
        tags: Free-form labels.
        participants: People taking part in the plan.
        items: Things to bring.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=255)
    description: str | None = None
    status: PlanStatus = Field(default=PlanStatus.DRAFT)
    visibility: Visibility = Field(default=Visibility.PUBLIC)
    owner_participant_id: UUID | None = Field(default=None)
    created_by_user_id: str | None = Field(default=None, index=True)
    location: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    start_date: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    end_date: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    tags: list[str] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    # Relationships
    participants: list["Participant"] = Relationship(
        back_populates="plan",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    items: list["Item"] = Relationship(
        back_populates="plan",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
