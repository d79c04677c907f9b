"""
Workflow service: load, apply a lifecycle command, commit, notify.

The service is the only writer of item state. Each command loads fresh
copies of the targeted items, runs the pure command from `lifecycle`, and
commits the result through the store's versioned `commit`. Validation
failures leave the store untouched; a concurrent write surfaces as
`ConcurrencyConflict` and nothing is written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from paintshop.directory import EmployeeDirectory
from paintshop.errors import ValidationError, WorkflowError
from paintshop.logger import get_logger
from paintshop.notifications import ChangeSignal, NotificationSink
from paintshop.orders.store import ItemChange, OrderStore
from paintshop.orders.types import AuditEntry, Item, Order, ShippingInfo
from paintshop.schema import AREA_LABELS, Area, Stage

from . import lifecycle
from .audit import Actor, leader_actor

log = get_logger("WORKFLOW")

DEFAULT_OPERATOR_NAME = "Operator"


@dataclass
class CommandResult:
    """Outcome of a committed command."""

    command: str
    item_ids: list[str]
    entry_ids: list[str] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique(item_ids: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item_id in item_ids:
        if item_id not in seen:
            seen.add(item_id)
            ordered.append(item_id)
    return ordered


class WorkflowService:
    def __init__(
        self,
        store: OrderStore,
        directory: EmployeeDirectory | None = None,
        notifier: NotificationSink | None = None,
        change_signal: ChangeSignal | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.change_signal = change_signal or ChangeSignal()
        self._clock = clock or _utcnow

    # Helpers

    def _load(self, item_ids: list[str]) -> list[tuple[Order, Item]]:
        return [self.store.find_item(item_id) for item_id in _unique(item_ids)]

    def _employee_actor(self, employee_id: str | None) -> Actor:
        employee = self.directory.get(employee_id) if self.directory and employee_id else None
        return Actor(name=employee.name if employee else DEFAULT_OPERATOR_NAME, id=employee_id)

    def _leader(self, area: Area, leader_id: str | None) -> Actor:
        if leader_id and self.directory:
            employee = self.directory.get(leader_id)
            if employee is not None:
                return Actor(name=employee.name, id=leader_id)
        return leader_actor(area, leader_id)

    def _commit(
        self,
        command: str,
        loaded: list[tuple[Order, Item]],
        versions: dict[str, int],
        entries: list[AuditEntry],
        shipping: dict[str, ShippingInfo] | None = None,
    ) -> CommandResult:
        changes = [
            ItemChange(order_id=order.id, item=item, expected_version=versions[item.id])
            for order, item in loaded
        ]
        committed = self.store.commit(changes, shipping=shipping)
        result = CommandResult(
            command=command,
            item_ids=[item.id for item in committed],
            entry_ids=[entry.id for entry in entries],
            items=committed,
        )
        log.info(
            f"{command} committed",
            item_ids=result.item_ids,
            entry_ids=result.entry_ids,
        )
        self.change_signal.emit()
        return result

    def _run(self, command: str, item_ids: list[str], apply: Callable[[list], tuple]) -> CommandResult:
        """Load, apply and commit; log rejections at warning level."""
        try:
            loaded = self._load(item_ids)
            versions = {item.id: item.version for _, item in loaded}
            entries, shipping = apply(loaded)
            return self._commit(command, loaded, versions, entries, shipping)
        except ValidationError as e:
            log.warning(f"{command} rejected", item_ids=list(item_ids), error=str(e))
            raise
        except WorkflowError as e:
            log.error(f"{command} failed", item_ids=list(item_ids), error=str(e))
            raise

    def _notify(self, employee_id: str, message: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(employee_id, message)
        except Exception as e:
            log.error("Notification failed", employee_id=employee_id, error=str(e))

    # Commands

    def assign_items(
        self,
        item_ids: list[str],
        employee_id: str,
        area: Area,
        leader_id: str | None = None,
    ) -> CommandResult:
        """Assign pending items of an area to an employee and notify them."""
        if not (employee_id or "").strip():
            log.warning("assign_items rejected", error="no employee selected")
            raise ValidationError("Select an employee before assigning items")

        actor = self._leader(area, leader_id)

        def apply(loaded):
            items = [item for _, item in loaded]
            return lifecycle.assign_items(items, employee_id, area, actor, self._clock()), None

        result = self._run("assign_items", item_ids, apply)
        count = len(result.item_ids)
        noun = "task" if count == 1 else "tasks"
        self._notify(
            employee_id,
            f"You have been assigned {count} new {noun} in {AREA_LABELS[area]}.",
        )
        return result

    def finish_task(
        self,
        item_id: str,
        employee_id: str,
        shipping: ShippingInfo | None = None,
    ) -> CommandResult:
        """Operator marks an item done; it waits in review with its assignee kept."""
        actor = self._employee_actor(employee_id)

        def apply(loaded):
            order, item = loaded[0]
            entry = lifecycle.finish_task(order, item, employee_id, actor, self._clock(), shipping)
            stamped = {order.id: order.shipping} if shipping is not None else None
            return [entry], stamped

        return self._run("finish_task", [item_id], apply)

    def approve_quality(
        self,
        item_ids: list[str],
        actor_area: Area,
        leader_id: str | None = None,
    ) -> CommandResult:
        actor = self._leader(actor_area, leader_id)

        def apply(loaded):
            items = [item for _, item in loaded]
            return lifecycle.approve_quality(items, actor_area, actor, self._clock()), None

        return self._run("approve_quality", item_ids, apply)

    def reprocess_items(
        self,
        item_ids: list[str],
        target_stage: Stage | None,
        reason: str,
        actor_area: Area,
        leader_id: str | None = None,
    ) -> CommandResult:
        """Send items to any stage for rework; leader only."""
        actor = self._leader(actor_area, leader_id)

        def apply(loaded):
            items = [item for _, item in loaded]
            entries = lifecycle.reprocess_items(
                items, target_stage, reason, actor_area, actor, self._clock()
            )
            return entries, None

        return self._run("reprocess_items", item_ids, apply)

    def report_damage(
        self,
        item_id: str,
        reason: str,
        actor_label: str,
        actor_id: str | None = None,
    ) -> CommandResult:
        actor = Actor(name=actor_label or DEFAULT_OPERATOR_NAME, id=actor_id)

        def apply(loaded):
            _, item = loaded[0]
            return [lifecycle.report_damage(item, reason, actor, self._clock())], None

        return self._run("report_damage", [item_id], apply)

    def return_task(self, item_id: str, employee_id: str, reason: str) -> CommandResult:
        """Operator hands an item back to the previous stage."""
        actor = self._employee_actor(employee_id)

        def apply(loaded):
            _, item = loaded[0]
            return [lifecycle.return_task(item, reason, actor, self._clock())], None

        return self._run("return_task", [item_id], apply)
