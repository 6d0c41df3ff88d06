"""Batch item mutations with per-item failure reporting.

Each spec in a batch is validated on its own. Valid specs are written in a
single storage call; invalid ones are reported as ``{name, message}`` and
never abort the batch. The batch answers 200 when every spec succeeded and
207 otherwise, including when none did.

Guest (invite token) batches add an ownership rule: a guest may only edit
items assigned to their own participant or not assigned at all, and every
item a guest creates is assigned to them.
"""
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from uuid import UUID

from sqlmodel import Session, select

from planner.access.principals import GuestViaInvite
from planner.core.errors import ForbiddenError, NotFoundError, PlannerError, ValidationError
from planner.models import Item, ItemCategory, Participant, Unit, utcnow

logger = logging.getLogger(__name__)

UNIT_REQUIRED = "Unit is required for food items"
ITEM_NOT_FOUND = "Item not found"
NO_FIELDS = "No fields to update"
NOT_YOUR_ITEM = "You can only edit items assigned to you"
PARTICIPANT_NOT_FOUND = "Participant not found"
PARTICIPANT_OTHER_PLAN = "Participant does not belong to this plan"


@dataclass
class BulkItemError:
    name: str
    message: str


@dataclass
class BulkResult:
    items: list[Item] = field(default_factory=list)
    errors: list[BulkItemError] = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return 200 if not self.errors else 207

    def to_dict(self) -> dict:
        return {
            "items": [item.model_dump(mode="json") for item in self.items],
            "errors": [{"name": e.name, "message": e.message} for e in self.errors],
        }


def resolve_unit(category: ItemCategory, unit: Unit | None) -> Unit:
    """Food needs an explicit unit; equipment defaults to pieces."""
    if unit is not None:
        return Unit(unit)
    if category == ItemCategory.FOOD:
        raise ValidationError(UNIT_REQUIRED)
    return Unit.PCS


def ensure_guest_can_edit(guest: GuestViaInvite, item: Item) -> None:
    if item.assigned_participant_id is not None and item.assigned_participant_id != guest.participant_id:
        raise ForbiddenError(NOT_YOUR_ITEM)


def load_participant_plans(session: Session, participant_ids: Iterable[UUID | None]) -> dict[UUID, UUID]:
    """participant id -> plan id, in one query."""
    ids = {pid for pid in participant_ids if pid is not None}
    if not ids:
        return {}
    rows = session.exec(select(Participant.id, Participant.plan_id).where(Participant.id.in_(ids))).all()
    return {pid: plan_id for pid, plan_id in rows}


def check_assignment(participant_plans: dict[UUID, UUID], participant_id: UUID | None, plan_id: UUID) -> None:
    if participant_id is None:
        return
    owner_plan = participant_plans.get(participant_id)
    if owner_plan is None:
        raise ValidationError(PARTICIPANT_NOT_FOUND)
    if owner_plan != plan_id:
        raise ValidationError(PARTICIPANT_OTHER_PLAN)


def build_item(plan_id: UUID, spec, assigned_participant_id: UUID | None) -> Item:
    """Validate one create spec and build its Item (not yet persisted)."""
    unit = resolve_unit(spec.category, spec.unit)
    return Item(
        plan_id=plan_id,
        name=spec.name,
        category=ItemCategory(spec.category),
        quantity=spec.quantity,
        unit=unit,
        status=spec.status,
        notes=spec.notes,
        assigned_participant_id=assigned_participant_id,
    )


def bulk_create(
    session: Session,
    plan_id: UUID,
    specs: Sequence,
    guest: GuestViaInvite | None = None,
) -> BulkResult:
    result = BulkResult()
    participant_plans = {}
    if guest is None:
        participant_plans = load_participant_plans(
            session, (getattr(spec, "assigned_participant_id", None) for spec in specs)
        )

    for spec in specs:
        try:
            if guest is not None:
                assigned = guest.participant_id
            else:
                assigned = getattr(spec, "assigned_participant_id", None)
                check_assignment(participant_plans, assigned, plan_id)
            result.items.append(build_item(plan_id, spec, assigned))
        except PlannerError as e:
            result.errors.append(BulkItemError(name=spec.name, message=e.message))

    if result.items:
        session.add_all(result.items)
        session.commit()
        for item in result.items:
            session.refresh(item)

    logger.info(
        f"Bulk items created (plan_id={plan_id}, guest={guest.participant_id if guest else None}, "
        f"created={len(result.items)}, failed={len(result.errors)})"
    )
    return result


REQUIRED_ITEM_FIELDS = ("name", "category", "quantity", "status")


def validate_changes(item: Item, changes: dict) -> None:
    """Reject nulls on required fields; a cleared unit falls back to the category default."""
    for name in REQUIRED_ITEM_FIELDS:
        if name in changes and changes[name] is None:
            raise ValidationError(f"Field '{name}' cannot be null")
    if "unit" in changes and changes["unit"] is None:
        changes["unit"] = resolve_unit(changes.get("category") or item.category, None)


def _apply_changes(item: Item, changes: dict) -> None:
    for name, value in changes.items():
        setattr(item, name, value)
    item.updated_at = utcnow()


def bulk_update(
    session: Session,
    plan_id: UUID,
    entries: Sequence,
    guest: GuestViaInvite | None = None,
) -> BulkResult:
    result = BulkResult()

    ids = {entry.id for entry in entries}
    existing = {item.id: item for item in session.exec(select(Item).where(Item.id.in_(ids))).all()}
    changes_by_entry = [entry.model_dump(exclude_unset=True, exclude={"id"}) for entry in entries]
    participant_plans = {}
    if guest is None:
        participant_plans = load_participant_plans(
            session, (changes.get("assigned_participant_id") for changes in changes_by_entry)
        )

    for entry, changes in zip(entries, changes_by_entry):
        item = existing.get(entry.id)
        if item is None or item.plan_id != plan_id:
            result.errors.append(BulkItemError(name=changes.get("name") or str(entry.id), message=ITEM_NOT_FOUND))
            continue

        try:
            if not changes:
                raise ValidationError(NO_FIELDS)
            if guest is not None:
                ensure_guest_can_edit(guest, item)
            else:
                check_assignment(participant_plans, changes.get("assigned_participant_id"), plan_id)
            validate_changes(item, changes)
        except PlannerError as e:
            result.errors.append(BulkItemError(name=item.name, message=e.message))
            continue

        _apply_changes(item, changes)
        session.add(item)
        result.items.append(item)

    if result.items:
        session.commit()
        for item in result.items:
            session.refresh(item)

    logger.info(
        f"Bulk items updated (plan_id={plan_id}, guest={guest.participant_id if guest else None}, "
        f"updated={len(result.items)}, failed={len(result.errors)})"
    )
    return result


def update_item(
    session: Session,
    item_id: UUID,
    changes: dict,
    plan_id: UUID | None = None,
    guest: GuestViaInvite | None = None,
) -> Item:
    """Single-item update sharing the batch rules, raising instead of collecting."""
    if not changes:
        raise ValidationError(NO_FIELDS)

    item = session.get(Item, item_id)
    if item is None or (plan_id is not None and item.plan_id != plan_id):
        raise NotFoundError(ITEM_NOT_FOUND)

    if guest is not None:
        ensure_guest_can_edit(guest, item)
    elif changes.get("assigned_participant_id") is not None:
        participant_plans = load_participant_plans(session, [changes["assigned_participant_id"]])
        check_assignment(participant_plans, changes["assigned_participant_id"], item.plan_id)
    validate_changes(item, changes)

    _apply_changes(item, changes)
    session.add(item)
    session.commit()
    session.refresh(item)
    return item
