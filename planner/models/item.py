"""Item model for things participants bring to a plan.

Items belong to one plan and may be assigned to one participant of that
plan. Deleting the participant clears the assignment; the item survives.
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, Relationship, SQLModel

from planner.models.plan import utcnow

if TYPE_CHECKING:
    from planner.models.plan import Plan


class ItemCategory(str, enum.Enum):
    EQUIPMENT = "equipment"
    FOOD = "food"


class ItemStatus(str, enum.Enum):
    PENDING = "pending"
    PURCHASED = "purchased"
    PACKED = "packed"
    CANCELED = "canceled"


class Unit(str, enum.Enum):
    PCS = "pcs"
    KG = "kg"
    G = "g"
    LB = "lb"
    OZ = "oz"
    L = "l"
    ML = "ml"
    M = "m"
    CM = "cm"
    PACK = "pack"
    SET = "set"


class Item(SQLModel, table=True):
    """A thing to bring.

    Attributes:
        id: Unique identifier (UUID).
        plan_id: Foreign key to the parent Plan.
        name: Display text.
        category: "equipment" or "food". Food needs an explicit unit;
            equipment defaults to pieces.
        quantity: How many units (at least 1).
        unit: Unit of measure for quantity.
        status: "pending", "purchased", "packed" or "canceled".
        notes: Free text.
        assigned_participant_id: Participant responsible for the item, if any.
        plan: Reference to the parent Plan object.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    plan_id: UUID = Field(foreign_key="plan.id", ondelete="CASCADE", index=True)
    name: str = Field(max_length=255)
    category: ItemCategory
    quantity: int = Field(default=1, ge=1)
    unit: Unit = Field(default=Unit.PCS)
    status: ItemStatus = Field(default=ItemStatus.PENDING)
    notes: str | None = None
    assigned_participant_id: UUID | None = Field(
        default=None, foreign_key="participant.id", ondelete="SET NULL", index=True
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    # Relationship
    plan: Optional["Plan"] = Relationship(back_populates="items")
