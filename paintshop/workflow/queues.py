"""Board views derived from the order collection by full scan."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Iterator, Sequence

from paintshop.orders.types import Item, Order
from paintshop.schema import AREA_MANAGED_STAGES, Area, Stage, stage_weight

from .transitions import is_urgent

ORDER_STATUS_FILTERS = ("active", "finished", "all")


@dataclass(frozen=True)
class QueueEntry:
    """An item together with its owning order."""

    order: Order
    item: Item


@dataclass
class AreaQueues:
    unassigned: list[QueueEntry] = field(default_factory=list)
    assigned: list[QueueEntry] = field(default_factory=list)
    in_review: list[QueueEntry] = field(default_factory=list)


@dataclass(frozen=True)
class AreaCounters:
    in_review_count: int = 0
    unassigned_pending_count: int = 0


def _entries(orders: Iterable[Order]) -> Iterator[QueueEntry]:
    for order in orders:
        for item in order.items:
            yield QueueEntry(order=order, item=item)


def matches_search(order: Order, item: Item | None, search: str) -> bool:
    """Case-insensitive substring match on client, model, order id, part and internal id."""
    term = (search or "").strip().lower()
    if not term:
        return True
    fields = [order.client.name, order.model_name, order.id]
    if item is not None:
        fields += [item.part_name, item.internal_id, item.id]
    return any(term in (value or "").lower() for value in fields)


def _passes_filters(
    entry: QueueEntry,
    search: str,
    urgent_only: bool,
    now: datetime,
    window_hours: int,
) -> bool:
    if urgent_only and not is_urgent(entry.order.estimated_delivery_date, now, window_hours):
        return False
    return matches_search(entry.order, entry.item, search)


def _delivery_sort_key(entry: QueueEntry) -> tuple[int, float]:
    delivery = entry.order.estimated_delivery_date
    if delivery is None:
        return (1, 0.0)
    return (0, delivery.timestamp())


def sort_queue(entries: list[QueueEntry], managed_stages: Sequence[Stage]) -> list[QueueEntry]:
    """
    Order by position in the managed-stage list, then by delivery date.

    Stages outside the list sort last, as do orders without a delivery date.
    The sort is stable.
    """
    positions = {stage: index for index, stage in enumerate(managed_stages)}

    def key(entry: QueueEntry) -> tuple[int, int, float]:
        position = positions.get(entry.item.current_status, len(positions))
        missing_date, timestamp = _delivery_sort_key(entry)
        return (position, missing_date, timestamp)

    return sorted(entries, key=key)


def categorize_area_items(
    orders: Iterable[Order],
    area: Area,
    managed_stages: Sequence[Stage] | None = None,
    search: str = "",
    urgent_only: bool = False,
    now: datetime | None = None,
    window_hours: int = 48,
) -> AreaQueues:
    """Split an area's items into unassigned, assigned and in-review buckets."""
    managed = tuple(managed_stages) if managed_stages is not None else AREA_MANAGED_STAGES[area]
    current_time = now or datetime.now(timezone.utc)
    queues = AreaQueues()

    for entry in _entries(orders):
        item = entry.item
        if item.current_area is not area:
            continue
        if not _passes_filters(entry, search, urgent_only, current_time, window_hours):
            continue
        if item.is_in_review:
            queues.in_review.append(entry)
        elif item.current_status in managed:
            if item.is_assigned:
                queues.assigned.append(entry)
            else:
                queues.unassigned.append(entry)

    queues.unassigned = sort_queue(queues.unassigned, managed)
    queues.assigned = sort_queue(queues.assigned, managed)
    queues.in_review = sort_queue(queues.in_review, managed)
    return queues


def leader_attention_counts(orders: Iterable[Order]) -> dict[Area, AreaCounters]:
    """In-review and unassigned-pending counts per area."""
    in_review = {area: 0 for area in Area}
    pending = {area: 0 for area in Area}

    for entry in _entries(orders):
        item = entry.item
        area = item.current_area
        if area is None:
            continue
        if item.is_in_review:
            in_review[area] += 1
        if not item.is_assigned and item.current_status in AREA_MANAGED_STAGES[area]:
            pending[area] += 1

    return {
        area: AreaCounters(in_review_count=in_review[area], unassigned_pending_count=pending[area])
        for area in Area
    }


def _is_active_for(item: Item, employee_id: str) -> bool:
    return (
        item.assigned_employee_id == employee_id
        and not item.is_finished
        and not item.is_in_review
    )


def employee_pending_counts(orders: Iterable[Order], employee_id: str) -> dict[Area, int]:
    """Count of an employee's active items (assigned, not finished, not in review) per area."""
    counts = {area: 0 for area in Area}
    for entry in _entries(orders):
        item = entry.item
        if item.current_area is not None and _is_active_for(item, employee_id):
            counts[item.current_area] += 1
    return counts


def operator_board(orders: Iterable[Order], area: Area) -> dict[str, list[QueueEntry]]:
    """Active items of an area grouped by assignee."""
    board: dict[str, list[QueueEntry]] = {}
    for entry in _entries(orders):
        item = entry.item
        if item.current_area is area and item.is_assigned and not item.is_in_review:
            board.setdefault(item.assigned_employee_id, []).append(entry)
    for employee_id, entries in board.items():
        board[employee_id] = sorted(entries, key=_delivery_sort_key)
    return board


def employee_tasks(orders: Iterable[Order], employee_id: str) -> list[QueueEntry]:
    """An employee's unfinished items, soonest delivery first."""
    tasks = [
        entry
        for entry in _entries(orders)
        if entry.item.assigned_employee_id == employee_id and not entry.item.is_finished
    ]
    return sorted(tasks, key=_delivery_sort_key)


def search_items(
    orders: Iterable[Order],
    search: str = "",
    area: Area | None = None,
    finished: bool = False,
    employee_id: str | None = None,
    urgent_only: bool = False,
    now: datetime | None = None,
    window_hours: int = 48,
) -> list[QueueEntry]:
    """
    Tracker search across all items.

    `finished=True` selects finished items only; `area` selects unfinished
    items currently in that area.
    """
    current_time = now or datetime.now(timezone.utc)
    results: list[QueueEntry] = []
    for entry in _entries(orders):
        item = entry.item
        if finished and not item.is_finished:
            continue
        if area is not None and (item.current_area is not area or item.is_finished):
            continue
        if employee_id is not None and item.assigned_employee_id != employee_id:
            continue
        if not _passes_filters(entry, search, urgent_only, current_time, window_hours):
            continue
        results.append(entry)
    return results


def filter_orders(
    orders: Iterable[Order],
    search: str = "",
    status: str = "active",
    urgent_only: bool = False,
    now: datetime | None = None,
    window_hours: int = 48,
) -> list[Order]:
    """Order list filtered by search text, completion status and urgency."""
    if status not in ORDER_STATUS_FILTERS:
        raise ValueError(f"status must be one of {ORDER_STATUS_FILTERS}")
    current_time = now or datetime.now(timezone.utc)

    selected: list[Order] = []
    for order in orders:
        if urgent_only and not is_urgent(order.estimated_delivery_date, current_time, window_hours):
            continue
        if not (
            matches_search(order, None, search)
            or any(matches_search(order, item, search) for item in order.items)
        ):
            continue
        if status == "active" and order.is_finished:
            continue
        if status == "finished" and not order.is_finished:
            continue
        selected.append(order)
    return selected


def order_progress(order: Order) -> int:
    """Mean stage weight of the order's items, 0-100."""
    if not order.items:
        return 0
    total = sum(stage_weight(item.current_status) for item in order.items)
    return round(total / len(order.items))


def production_summary(orders: Iterable[Order]) -> dict[str, int]:
    orders = list(orders)
    items = [item for order in orders for item in order.items]
    return {
        "pending_parts": sum(1 for item in items if not item.is_finished),
        "finished_parts": sum(1 for item in items if item.is_finished),
        "active_orders": sum(1 for order in orders if any(not item.is_finished for item in order.items)),
    }
