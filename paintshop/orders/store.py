"""Order persistence with per-item optimistic versioning."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable
import copy
import os
import threading
import time

import yaml

from paintshop.errors import ConcurrencyConflict, NotFoundError, StoreLockTimeout, ValidationError
from paintshop.logger import get_logger

from .ids import counter_key
from .types import Item, Order, ShippingInfo

log = get_logger("STORE")


@dataclass
class ItemChange:
    """A mutated item plus the version it was loaded at."""

    order_id: str
    item: Item
    expected_version: int


@runtime_checkable
class OrderStore(Protocol):
    """
    Persistence contract for orders and their items.

    `load_orders`/`save_orders` keep whole-collection semantics for bulk
    import and export. Workflow commands go through `commit`, which only
    writes when every item in the change set still has the version it was
    loaded at.
    """

    def load_orders(self) -> list[Order]:
        """Return copies of all orders."""

    def save_orders(self, orders: list[Order]) -> None:
        """Replace the whole collection."""

    def get_order(self, order_id: str) -> Order:
        """Return a copy of one order or raise NotFoundError."""

    def find_item(self, item_id: str) -> tuple[Order, Item]:
        """Return copies of the owning order and the item, or raise NotFoundError."""

    def add_order(self, order: Order) -> None:
        """Persist a new order; raises ValidationError if the id exists."""

    def delete_order(self, order_id: str) -> None:
        """Delete an order with all its items."""

    def commit(
        self,
        changes: list[ItemChange],
        shipping: dict[str, ShippingInfo] | None = None,
    ) -> list[Item]:
        """Atomically write changed items (and order shipping info); return committed items."""

    def next_sequence(self, namespace: str, period: str) -> int:
        """Increment and return the monthly counter for a namespace."""


def _apply_commit(
    orders: dict[str, Order],
    changes: list[ItemChange],
    shipping: dict[str, ShippingInfo] | None,
) -> tuple[list[Order], list[Item]]:
    """Check every version first, then apply; nothing is mutated on conflict."""
    for change in changes:
        order = orders.get(change.order_id)
        if order is None:
            raise NotFoundError(f"Order not found: {change.order_id}")
        current = order.find_item(change.item.id)
        if current is None:
            raise NotFoundError(f"Item not found: {change.item.id}")
        if current.version != change.expected_version:
            raise ConcurrencyConflict(change.item.id, change.expected_version, current.version)
    for order_id in (shipping or {}):
        if order_id not in orders:
            raise NotFoundError(f"Order not found: {order_id}")

    touched: dict[str, Order] = {}
    committed: list[Item] = []
    for change in changes:
        order = orders[change.order_id]
        item = copy.deepcopy(change.item)
        item.version = change.expected_version + 1
        order.items = [item if existing.id == item.id else existing for existing in order.items]
        touched[order.id] = order
        committed.append(copy.deepcopy(item))

    for order_id, info in (shipping or {}).items():
        order = orders[order_id]
        order.shipping = info
        touched[order_id] = order

    return list(touched.values()), committed


def _locate_item(orders: list[Order], item_id: str) -> tuple[Order, Item]:
    for order in orders:
        item = order.find_item(item_id)
        if item is not None:
            return order, item
    raise NotFoundError(f"Item not found: {item_id}")


class InMemoryOrderStore:
    """Process-local store; every read and write copies."""

    def __init__(self, orders: list[Order] | None = None):
        self._lock = threading.Lock()
        self._orders: dict[str, Order] = {}
        self._counters: dict[str, int] = {}
        for order in orders or []:
            self._orders[order.id] = copy.deepcopy(order)

    def load_orders(self) -> list[Order]:
        with self._lock:
            return [copy.deepcopy(order) for order in self._orders.values()]

    def save_orders(self, orders: list[Order]) -> None:
        with self._lock:
            self._orders = {order.id: copy.deepcopy(order) for order in orders}

    def get_order(self, order_id: str) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise NotFoundError(f"Order not found: {order_id}")
            return copy.deepcopy(order)

    def find_item(self, item_id: str) -> tuple[Order, Item]:
        with self._lock:
            order, item = _locate_item(list(self._orders.values()), item_id)
            order_copy = copy.deepcopy(order)
            return order_copy, order_copy.find_item(item.id)

    def add_order(self, order: Order) -> None:
        with self._lock:
            if order.id in self._orders:
                raise ValidationError(f"Order already exists: {order.id}")
            self._orders[order.id] = copy.deepcopy(order)

    def delete_order(self, order_id: str) -> None:
        with self._lock:
            if order_id not in self._orders:
                raise NotFoundError(f"Order not found: {order_id}")
            del self._orders[order_id]

    def commit(
        self,
        changes: list[ItemChange],
        shipping: dict[str, ShippingInfo] | None = None,
    ) -> list[Item]:
        with self._lock:
            working = {
                order_id: copy.deepcopy(self._orders[order_id])
                for order_id in {change.order_id for change in changes} | set(shipping or {})
                if order_id in self._orders
            }
            touched, committed = _apply_commit(working, changes, shipping)
            for order in touched:
                self._orders[order.id] = order
            return committed

    def next_sequence(self, namespace: str, period: str) -> int:
        with self._lock:
            key = counter_key(namespace, period)
            self._counters[key] = self._counters.get(key, 0) + 1
            return self._counters[key]


@contextmanager
def lock_file(path: Path, timeout_s: float = 10.0, stale_after_s: float = 60.0) -> Iterator[None]:
    """
    Exclusive lock shared by every process using the same data directory.

    The lock is a file created with O_EXCL. A lock file older than
    `stale_after_s` is assumed to belong to a crashed writer and is removed.
    """
    deadline = time.monotonic() + timeout_s
    while True:
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            try:
                if time.time() - path.stat().st_mtime > stale_after_s:
                    log.warning("Removing stale store lock", lock_path=str(path))
                    path.unlink()
                    continue
            except FileNotFoundError:
                continue
            if time.monotonic() >= deadline:
                raise StoreLockTimeout(
                    f"Timed out waiting for store lock {path} (timeout: {timeout_s}s)"
                ) from None
            time.sleep(0.05)
            continue
        try:
            os.write(fd, str(os.getpid()).encode("ascii"))
        finally:
            os.close(fd)
        break

    try:
        yield
    finally:
        path.unlink(missing_ok=True)


class YamlOrderStore:
    """
    One YAML file per order under `<data_dir>/orders/`.

    Monthly counters live in `<data_dir>/counters.yaml`. Writes go through a
    temporary file and an atomic replace. Every write path runs under
    `<data_dir>/.store.lock`, so version checks and the writes that follow
    them are serialized across processes sharing the directory.
    """

    def __init__(self, data_dir: Path, lock_timeout_s: float = 10.0):
        self._data_dir = Path(data_dir)
        self._orders_dir = self._data_dir / "orders"
        self._counters_path = self._data_dir / "counters.yaml"
        self._lock_path = self._data_dir / ".store.lock"
        self._lock_timeout_s = lock_timeout_s
        self._lock = threading.RLock()
        self._orders_dir.mkdir(parents=True, exist_ok=True)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        with self._lock, lock_file(self._lock_path, self._lock_timeout_s):
            yield

    def _order_path(self, order_id: str) -> Path:
        if not order_id or "/" in order_id or order_id.startswith("."):
            raise ValidationError(f"Invalid order id: {order_id!r}")
        return self._orders_dir / f"{order_id}.yaml"

    @staticmethod
    def _stage_yaml(path: Path, data: Any) -> Path:
        tmp_path = path.with_suffix(".yaml.tmp")
        tmp_path.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
        return tmp_path

    def _write_yaml(self, path: Path, data: Any) -> None:
        self._stage_yaml(path, data).replace(path)

    def _read_order(self, path: Path) -> Order:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return Order.from_dict(data)

    def _write_order(self, order: Order) -> None:
        self._write_yaml(self._order_path(order.id), order.to_dict())

    def _write_orders_atomically(self, orders: list[Order]) -> None:
        """
        Stage every order file before replacing any of them.

        If staging fails nothing on disk changes. If a replace fails the
        files already replaced are restored from their previous content.
        """
        paths = [self._order_path(order.id) for order in orders]
        staged: list[Path] = []
        try:
            for order, path in zip(orders, paths):
                staged.append(self._stage_yaml(path, order.to_dict()))
        except Exception:
            for tmp_path in staged:
                tmp_path.unlink(missing_ok=True)
            raise

        previous = {path: path.read_bytes() if path.exists() else None for path in paths}
        replaced: list[Path] = []
        try:
            for tmp_path, path in zip(staged, paths):
                tmp_path.replace(path)
                replaced.append(path)
        except Exception:
            for path in replaced:
                content = previous[path]
                if content is None:
                    path.unlink(missing_ok=True)
                else:
                    path.write_bytes(content)
            for tmp_path in staged:
                tmp_path.unlink(missing_ok=True)
            log.error("Commit rolled back", order_ids=[order.id for order in orders])
            raise

    def load_orders(self) -> list[Order]:
        with self._lock:
            return [self._read_order(path) for path in sorted(self._orders_dir.glob("*.yaml"))]

    def save_orders(self, orders: list[Order]) -> None:
        with self._exclusive():
            keep = set()
            for order in orders:
                self._write_order(order)
                keep.add(self._order_path(order.id).name)
            for path in self._orders_dir.glob("*.yaml"):
                if path.name not in keep:
                    path.unlink()
            log.info("Saved order collection", order_count=len(orders))

    def get_order(self, order_id: str) -> Order:
        with self._lock:
            path = self._order_path(order_id)
            if not path.exists():
                raise NotFoundError(f"Order not found: {order_id}")
            return self._read_order(path)

    def find_item(self, item_id: str) -> tuple[Order, Item]:
        with self._lock:
            order, item = _locate_item(self.load_orders(), item_id)
            return order, item

    def add_order(self, order: Order) -> None:
        with self._exclusive():
            if self._order_path(order.id).exists():
                raise ValidationError(f"Order already exists: {order.id}")
            self._write_order(order)

    def delete_order(self, order_id: str) -> None:
        with self._exclusive():
            path = self._order_path(order_id)
            if not path.exists():
                raise NotFoundError(f"Order not found: {order_id}")
            path.unlink()
            log.info("Deleted order", order_id=order_id)

    def commit(
        self,
        changes: list[ItemChange],
        shipping: dict[str, ShippingInfo] | None = None,
    ) -> list[Item]:
        with self._exclusive():
            working: dict[str, Order] = {}
            for order_id in {change.order_id for change in changes} | set(shipping or {}):
                path = self._order_path(order_id)
                if path.exists():
                    working[order_id] = self._read_order(path)
            touched, committed = _apply_commit(working, changes, shipping)
            self._write_orders_atomically(touched)
            return committed

    def _load_counters(self) -> dict[str, int]:
        if not self._counters_path.exists():
            return {}
        data = yaml.safe_load(self._counters_path.read_text(encoding="utf-8")) or {}
        return {str(key): int(value) for key, value in data.items()}

    def next_sequence(self, namespace: str, period: str) -> int:
        with self._exclusive():
            counters = self._load_counters()
            key = counter_key(namespace, period)
            counters[key] = counters.get(key, 0) + 1
            self._write_yaml(self._counters_path, counters)
            return counters[key]
