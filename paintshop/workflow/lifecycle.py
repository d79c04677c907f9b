"""
Item lifecycle commands.

Each command validates every item in its set before touching any of them,
so a rejected command leaves all items unchanged. Commands mutate the
loaded objects in place and return the audit entries they appended; the
caller persists the result.
"""

from __future__ import annotations

from datetime import datetime

from paintshop.errors import ValidationError
from paintshop.orders.types import AuditEntry, Item, Order, ShippingInfo
from paintshop.schema import AREA_LABELS, AREA_MANAGED_STAGES, Area, AuditAction, Stage

from .audit import DAMAGE_NOTE_PREFIX, Actor, record
from .transitions import backward_transition, forward_transition, resolve_area_for_stage


def _require_text(value: str | None, message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(message)
    return text


def _ensure_not_finished(item: Item) -> None:
    if item.is_finished:
        raise ValidationError(f"Item {item.internal_id} is finished; no further transitions allowed")


def assign_items(
    items: list[Item],
    employee_id: str,
    area: Area,
    actor: Actor,
    now: datetime,
) -> list[AuditEntry]:
    """Assign unassigned items on one of the area's managed stages to an employee."""
    employee_id = _require_text(employee_id, "Select an employee before assigning items")
    if not items:
        raise ValidationError("Select at least one item to assign")

    managed = AREA_MANAGED_STAGES[area]
    for item in items:
        _ensure_not_finished(item)
        if item.is_assigned:
            raise ValidationError(f"Item {item.internal_id} is already assigned")
        if item.current_status not in managed:
            raise ValidationError(
                f"Item {item.internal_id} is in stage '{item.current_status.value}', "
                f"which {AREA_LABELS[area]} does not manage"
            )

    entries: list[AuditEntry] = []
    for item in items:
        item.assigned_employee_id = employee_id
        entries.append(record(item, AuditAction.ASSIGNED, actor, now, origin_area=area))
    return entries


def finish_task(
    order: Order,
    item: Item,
    employee_id: str,
    actor: Actor,
    now: datetime,
    shipping: ShippingInfo | None = None,
) -> AuditEntry:
    """
    Submit an operator's work for review.

    The assignee is kept so the reviewer knows who did the work. Shipped
    orders leaving the delivery area need carrier and tracking code; when
    given, they are stamped onto the order.
    """
    _require_text(employee_id, "An employee is required to finish a task")
    _ensure_not_finished(item)
    if item.is_in_review:
        raise ValidationError(f"Item {item.internal_id} is already waiting for review")

    in_delivery = item.current_area is Area.DELIVERY
    if in_delivery and order.client.requires_shipping_info:
        if shipping is None or not shipping.is_complete:
            raise ValidationError(
                "Enter the shipping carrier and tracking code before finishing this delivery"
            )
    elif shipping is not None and not shipping.is_complete:
        raise ValidationError("Shipping info needs both a carrier and a tracking code")

    origin = item.current_area
    item.last_status = item.current_status
    item.current_status = Stage.IN_REVIEW
    if shipping is not None:
        order.shipping = shipping

    notes = "Delivered by messenger" if in_delivery else "Task finished by operator."
    return record(item, AuditAction.IN_REVIEW, actor, now, origin_area=origin, notes=notes)


def approve_quality(
    items: list[Item],
    actor_area: Area,
    actor: Actor,
    now: datetime,
) -> list[AuditEntry]:
    """Advance reviewed items to the stage after the one they were worked in."""
    if not items:
        raise ValidationError("Select at least one item to approve")

    targets: list[tuple[Stage, Area | None]] = []
    for item in items:
        if not item.is_in_review:
            raise ValidationError(f"Item {item.internal_id} is not waiting for review")
        source = item.last_status or item.current_status
        targets.append(forward_transition(source, item.finish_type))

    entries: list[AuditEntry] = []
    for item, (next_stage, next_area) in zip(items, targets):
        item.current_status = next_stage
        item.current_area = next_area
        item.assigned_employee_id = None
        entries.append(
            record(
                item,
                AuditAction.APPROVED,
                actor,
                now,
                origin_area=actor_area,
                destination_area=next_area,
                notes="Approved",
            )
        )
    return entries


def reprocess_items(
    items: list[Item],
    target_stage: Stage | None,
    reason: str,
    actor_area: Area,
    actor: Actor,
    now: datetime,
) -> list[AuditEntry]:
    """Send items to any named stage for rework."""
    if target_stage is None:
        raise ValidationError("Select the stage the items should be reprocessed in")
    reason = _require_text(reason, "A reason is required to reprocess items")
    if not items:
        raise ValidationError("Select at least one item to reprocess")
    target_area = resolve_area_for_stage(target_stage)
    for item in items:
        _ensure_not_finished(item)

    entries: list[AuditEntry] = []
    for item in items:
        item.current_status = target_stage
        item.current_area = target_area
        item.assigned_employee_id = None
        item.rework_count += 1
        entries.append(
            record(
                item,
                AuditAction.REPROCESS,
                actor,
                now,
                origin_area=actor_area,
                destination_area=target_area,
                notes=reason,
            )
        )
    return entries


def report_damage(item: Item, reason: str, actor: Actor, now: datetime) -> AuditEntry:
    """Send a damaged item back to pre-prep, whatever stage it is in."""
    reason = _require_text(reason, "Describe the damage before reporting it")
    _ensure_not_finished(item)

    origin = item.current_area
    item.current_status = Stage.PRE_PREP
    item.current_area = Area.PRE_PREP
    item.assigned_employee_id = None
    item.rework_count += 1
    return record(
        item,
        AuditAction.REPROCESS,
        actor,
        now,
        origin_area=origin,
        destination_area=Area.PRE_PREP,
        notes=f"{DAMAGE_NOTE_PREFIX}{reason}",
    )


def return_task(item: Item, reason: str, actor: Actor, now: datetime) -> AuditEntry:
    """Operator hands an item back to the previous stage."""
    reason = _require_text(reason, "A reason is required to return an item")
    _ensure_not_finished(item)
    if item.is_in_review:
        raise ValidationError(f"Item {item.internal_id} is waiting for review and cannot be returned")

    origin = item.current_area
    previous_stage, previous_area = backward_transition(
        item.current_status, item.finish_type, item.current_area
    )
    item.current_status = previous_stage
    item.current_area = previous_area
    item.assigned_employee_id = None
    item.rework_count += 1
    return record(
        item,
        AuditAction.RETURNED_BY_OPERATOR,
        actor,
        now,
        origin_area=origin,
        destination_area=previous_area,
        notes=f"Returned by operator: {reason}",
    )
