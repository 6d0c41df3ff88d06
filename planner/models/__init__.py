from planner.models.item import Item, ItemCategory, ItemStatus, Unit
from planner.models.participant import (
    InviteStatus,
    Participant,
    ParticipantRole,
    RsvpStatus,
)
from planner.models.plan import Plan, PlanStatus, Visibility, utcnow
from planner.models.user_details import UserDetails

__all__ = [
    "Plan",
    "PlanStatus",
    "Visibility",
    "Participant",
    "ParticipantRole",
    "InviteStatus",
    "RsvpStatus",
    "Item",
    "ItemCategory",
    "ItemStatus",
    "Unit",
    "UserDetails",
    "utcnow",
]
