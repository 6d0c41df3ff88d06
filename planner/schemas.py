"""Request bodies for the JSON API.

Only fields the client actually sends are applied on updates
(``model_dump(exclude_unset=True)``); sending null clears a nullable field.
"""
from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from sqlmodel import Field, SQLModel

from planner.models import ItemCategory, ItemStatus, PlanStatus, RsvpStatus, Unit, Visibility


class OwnerCreate(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    contact_phone: str = Field(min_length=1, max_length=50)
    display_name: str | None = Field(default=None, max_length=255)
    contact_email: str | None = Field(default=None, max_length=255)
    avatar_url: str | None = None


class PlanCreate(SQLModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: PlanStatus = PlanStatus.DRAFT
    visibility: Visibility | None = None
    location: dict[str, Any] | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    tags: list[str] | None = None
    owner: OwnerCreate


class PlanUpdate(SQLModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: PlanStatus | None = None
    visibility: Visibility | None = None
    location: dict[str, Any] | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    tags: list[str] | None = None


class ParticipantCreate(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    contact_phone: str = Field(min_length=1, max_length=50)
    display_name: str | None = Field(default=None, max_length=255)
    role: Literal["participant", "viewer"] = "participant"
    contact_email: str | None = Field(default=None, max_length=255)
    avatar_url: str | None = None


class ParticipantUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_phone: str | None = Field(default=None, min_length=1, max_length=50)
    display_name: str | None = Field(default=None, max_length=255)
    role: Literal["participant", "viewer"] | None = None
    contact_email: str | None = Field(default=None, max_length=255)
    avatar_url: str | None = None
    rsvp_status: RsvpStatus | None = None
    adults_count: int | None = Field(default=None, ge=0)
    kids_count: int | None = Field(default=None, ge=0)
    food_preferences: str | None = None
    allergies: str | None = None
    notes: str | None = None


class GuestItemCreate(SQLModel):
    name: str = Field(min_length=1, max_length=255)
    category: ItemCategory
    quantity: int = Field(default=1, ge=1)
    unit: Unit | None = None
    status: ItemStatus = ItemStatus.PENDING
    notes: str | None = None


class ItemCreate(GuestItemCreate):
    assigned_participant_id: UUID | None = None


class GuestItemUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: ItemCategory | None = None
    quantity: int | None = Field(default=None, ge=1)
    unit: Unit | None = None
    status: ItemStatus | None = None
    notes: str | None = None


class ItemUpdate(GuestItemUpdate):
    assigned_participant_id: UUID | None = None


class GuestItemUpdateEntry(GuestItemUpdate):
    id: UUID


class ItemUpdateEntry(ItemUpdate):
    id: UUID


class BulkItemCreate(SQLModel):
    items: list[ItemCreate] = Field(min_length=1)


class GuestBulkItemCreate(SQLModel):
    items: list[GuestItemCreate] = Field(min_length=1)


class BulkItemUpdate(SQLModel):
    items: list[ItemUpdateEntry] = Field(min_length=1)


class GuestBulkItemUpdate(SQLModel):
    items: list[GuestItemUpdateEntry] = Field(min_length=1)


class InvitePreferencesUpdate(SQLModel):
    display_name: str | None = Field(default=None, max_length=255)
    adults_count: int | None = Field(default=None, ge=0)
    kids_count: int | None = Field(default=None, ge=0)
    food_preferences: str | None = None
    allergies: str | None = None
    notes: str | None = None
    rsvp_status: Literal["confirmed", "not_sure"] | None = None


class ProfileUpdate(SQLModel):
    food_preferences: str | None = None
    allergies: str | None = None
    default_equipment: list[str] | None = None
