"""Append-only audit trail helpers for items."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from paintshop.orders.ids import new_record_id
from paintshop.orders.types import AuditEntry, Item, Order
from paintshop.schema import AREA_LABELS, Area, AuditAction, REWORK_ACTIONS

DAMAGE_NOTE_PREFIX = "DAMAGE REPORTED: "


@dataclass(frozen=True)
class Actor:
    """Who performed an action: stable id plus the display name at that time."""

    name: str
    id: str | None = None


def leader_actor(area: Area, employee_id: str | None = None) -> Actor:
    return Actor(name=f"Leader {AREA_LABELS[area]}", id=employee_id)


def record(
    item: Item,
    action: AuditAction,
    actor: Actor,
    at: datetime,
    origin_area: Area | None = None,
    destination_area: Area | None = None,
    notes: str = "",
) -> AuditEntry:
    """Append an entry stamped with the item's current rework count."""
    entry = AuditEntry(
        id=new_record_id(),
        at=at,
        action=action,
        actor_id=actor.id,
        actor_name=actor.name,
        origin_area=origin_area,
        destination_area=destination_area,
        notes=notes,
        attempt_number=item.rework_count,
    )
    item.history.append(entry)
    return entry


def is_damage_entry(entry: AuditEntry) -> bool:
    return entry.action is AuditAction.REPROCESS and entry.notes.startswith(DAMAGE_NOTE_PREFIX)


def count_rework_actions(item: Item) -> int:
    return sum(1 for entry in item.history if entry.action in REWORK_ACTIONS)


def rework_count_consistent(item: Item) -> bool:
    """Rework counter must equal the number of rework-class history entries."""
    return item.rework_count == count_rework_actions(item)


def history_rows(item: Item) -> list[dict[str, Any]]:
    """History as display rows, oldest first."""
    return [
        {
            "at": entry.at.isoformat(),
            "action": entry.action.value,
            "actor": entry.actor_name,
            "actor_id": entry.actor_id,
            "from": entry.origin_area.value if entry.origin_area else None,
            "to": entry.destination_area.value if entry.destination_area else None,
            "notes": entry.notes,
            "attempt": entry.attempt_number,
            "damage": is_damage_entry(entry),
        }
        for entry in item.history
    ]


def replay_summary(order: Order) -> list[str]:
    """Return a compact, replayable per-item history for an order."""
    lines = [f"order:{order.id}"]
    for item in order.items:
        area = item.current_area.value if item.current_area else "-"
        lines.append(
            f"item:{item.internal_id}:{item.current_status.value}:{area}:rework={item.rework_count}"
        )
        for entry in item.history:
            lines.append(
                "event:"
                f"{entry.action.value}:"
                f"{entry.origin_area.value if entry.origin_area else '-'}->"
                f"{entry.destination_area.value if entry.destination_area else '-'}:"
                f"attempt={entry.attempt_number}:"
                f"{entry.actor_name}"
            )
    return lines
