"""Tests for order stores, versioned commits and id generation."""

from datetime import datetime, timezone
from pathlib import Path
import os
import threading
import time

import pytest
import yaml

from conftest import build_item, build_order
from paintshop.errors import ConcurrencyConflict, NotFoundError, StoreLockTimeout, ValidationError
from paintshop.orders.ids import (
    format_item_internal_id,
    format_order_id,
    next_item_internal_id,
    next_order_id,
    period_key,
)
from paintshop.orders.store import InMemoryOrderStore, ItemChange, YamlOrderStore, lock_file
from paintshop.orders.types import ShippingInfo
from paintshop.schema import Stage


class TestIds:
    def test_period_key(self):
        assert period_key(datetime(2026, 3, 1)) == "0326"
        assert period_key(datetime(2030, 12, 31)) == "1230"

    def test_formats(self):
        assert format_order_id("1126", 7) == "ORDEN1126-007"
        assert format_item_internal_id("1126", 42) == "1126-0042"

    def test_counters_are_per_namespace_and_month(self):
        store = InMemoryOrderStore()
        nov = datetime(2026, 11, 3, tzinfo=timezone.utc)
        dec = datetime(2026, 12, 1, tzinfo=timezone.utc)

        assert next_order_id(store, nov) == "ORDEN1126-001"
        assert next_order_id(store, nov) == "ORDEN1126-002"
        assert next_item_internal_id(store, nov) == "1126-0001"
        assert next_order_id(store, dec) == "ORDEN1226-001"
        assert next_order_id(store, nov) == "ORDEN1126-003"


@pytest.fixture(params=["memory", "yaml"])
def store(request, tmp_path: Path):
    orders = [build_order("ORDEN1126-001", items=[build_item("item-1"), build_item("item-2")])]
    if request.param == "memory":
        return InMemoryOrderStore(orders)
    yaml_store = YamlOrderStore(tmp_path / "data")
    yaml_store.save_orders(orders)
    return yaml_store


class TestStoreContract:
    def test_find_item_returns_copies(self, store):
        order, item = store.find_item("item-1")
        item.part_name = "changed"
        assert store.find_item("item-1")[1].part_name == "Tanque"
        assert order.id == "ORDEN1126-001"

    def test_missing_lookups_raise(self, store):
        with pytest.raises(NotFoundError):
            store.find_item("nope")
        with pytest.raises(NotFoundError):
            store.get_order("ORDEN0000-999")
        with pytest.raises(NotFoundError):
            store.delete_order("ORDEN0000-999")

    def test_commit_bumps_version(self, store):
        order, item = store.find_item("item-1")
        item.assigned_employee_id = "e1"
        committed = store.commit([ItemChange(order.id, item, expected_version=0)])

        assert committed[0].version == 1
        assert store.find_item("item-1")[1].assigned_employee_id == "e1"

    def test_conflict_leaves_whole_change_set_unapplied(self, store):
        order, first = store.find_item("item-1")
        _, second = store.find_item("item-2")
        store.commit([ItemChange(order.id, second, expected_version=0)])

        first.assigned_employee_id = "e1"
        second.assigned_employee_id = "e2"
        with pytest.raises(ConcurrencyConflict):
            store.commit(
                [
                    ItemChange(order.id, first, expected_version=0),
                    ItemChange(order.id, second, expected_version=0),
                ]
            )

        assert store.find_item("item-1")[1].assigned_employee_id is None
        assert store.find_item("item-1")[1].version == 0

    def test_commit_stamps_shipping(self, store):
        order, item = store.find_item("item-1")
        shipping = {order.id: ShippingInfo("Envia", "EN-1")}
        store.commit([ItemChange(order.id, item, expected_version=0)], shipping=shipping)
        assert store.get_order(order.id).shipping == ShippingInfo("Envia", "EN-1")

    def test_add_and_delete_whole_order(self, store):
        store.add_order(build_order("ORDEN1126-002", items=[build_item("item-3")]))
        with pytest.raises(ValidationError):
            store.add_order(build_order("ORDEN1126-002", items=[]))

        store.delete_order("ORDEN1126-002")
        assert [order.id for order in store.load_orders()] == ["ORDEN1126-001"]

    def test_save_orders_replaces_collection(self, store):
        store.save_orders([build_order("ORDEN1126-009", items=[build_item("item-9")])])
        assert [order.id for order in store.load_orders()] == ["ORDEN1126-009"]


class TestYamlOrderStore:
    def test_one_file_per_order(self, tmp_path: Path):
        store = YamlOrderStore(tmp_path)
        store.add_order(build_order("ORDEN1126-001"))

        path = tmp_path / "orders" / "ORDEN1126-001.yaml"
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data["items"][0]["current_status"] == Stage.PRE_PREP.value
        assert list((tmp_path / "orders").glob("*.tmp")) == []

    def test_counters_persist_across_instances(self, tmp_path: Path):
        now = datetime(2026, 11, 3, tzinfo=timezone.utc)
        assert next_order_id(YamlOrderStore(tmp_path), now) == "ORDEN1126-001"
        assert next_order_id(YamlOrderStore(tmp_path), now) == "ORDEN1126-002"

        counters = yaml.safe_load((tmp_path / "counters.yaml").read_text(encoding="utf-8"))
        assert counters == {"ORD_1126": 2}

    def test_rejects_path_like_order_ids(self, tmp_path: Path):
        store = YamlOrderStore(tmp_path)
        with pytest.raises(ValidationError):
            store.get_order("../escape")

    def test_round_trip_preserves_history(self, tmp_path: Path):
        from paintshop.workflow import lifecycle
        from paintshop.workflow.audit import Actor

        store = YamlOrderStore(tmp_path)
        store.add_order(build_order("ORDEN1126-001"))
        order, item = store.find_item("item-1")
        lifecycle.report_damage(item, "Dent", Actor("Ana", "l1"), datetime(2026, 11, 10, tzinfo=timezone.utc))
        store.commit([ItemChange(order.id, item, expected_version=0)])

        reloaded = store.find_item("item-1")[1]
        assert reloaded.history == item.history
        assert reloaded.rework_count == 1


def _two_order_store(data_dir: Path) -> YamlOrderStore:
    store = YamlOrderStore(data_dir)
    store.save_orders(
        [
            build_order("ORDEN1126-001", items=[build_item("item-1")]),
            build_order("ORDEN1126-002", items=[build_item("item-2")]),
        ]
    )
    return store


def _assign(store: YamlOrderStore, item_id: str, employee_id: str) -> list[ItemChange]:
    order, item = store.find_item(item_id)
    item.assigned_employee_id = employee_id
    return [ItemChange(order.id, item, expected_version=item.version)]


class TestYamlOrderStoreSharedDirectory:
    """Several store instances (one per process in practice) on one data dir."""

    def test_interleaved_writers_on_one_order_keep_both_changes(self, tmp_path: Path):
        YamlOrderStore(tmp_path).save_orders(
            [build_order("ORDEN1126-001", items=[build_item("item-1"), build_item("item-2")])]
        )
        first, second = YamlOrderStore(tmp_path), YamlOrderStore(tmp_path)
        pending = {"item-1": _assign(first, "item-1", "e1"), "item-2": _assign(second, "item-2", "e2")}
        barrier = threading.Barrier(2)
        errors = []

        def run(store, item_id):
            barrier.wait()
            try:
                store.commit(pending[item_id])
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=run, args=(first, "item-1")),
            threading.Thread(target=run, args=(second, "item-2")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        reader = YamlOrderStore(tmp_path)
        assert reader.find_item("item-1")[1].assigned_employee_id == "e1"
        assert reader.find_item("item-2")[1].assigned_employee_id == "e2"

    def test_stale_read_from_other_instance_conflicts(self, tmp_path: Path):
        first = _two_order_store(tmp_path)
        second = YamlOrderStore(tmp_path)
        stale = _assign(second, "item-1", "e2")

        first.commit(_assign(first, "item-1", "e1"))

        with pytest.raises(ConcurrencyConflict):
            second.commit(stale)
        assert first.find_item("item-1")[1].assigned_employee_id == "e1"

    def test_commit_waits_for_lock_held_elsewhere(self, tmp_path: Path):
        store = _two_order_store(tmp_path)
        waiting = YamlOrderStore(tmp_path, lock_timeout_s=0.2)

        with lock_file(tmp_path / ".store.lock"):
            with pytest.raises(StoreLockTimeout):
                waiting.commit(_assign(waiting, "item-1", "e1"))

        assert store.find_item("item-1")[1].assigned_employee_id is None
        assert not (tmp_path / ".store.lock").exists()

    def test_stale_lock_file_is_removed(self, tmp_path: Path):
        store = _two_order_store(tmp_path)
        lock_path = tmp_path / ".store.lock"
        lock_path.write_text("99999", encoding="ascii")
        old = time.time() - 3600
        os.utime(lock_path, (old, old))

        store.commit(_assign(store, "item-1", "e1"))

        assert store.find_item("item-1")[1].assigned_employee_id == "e1"
        assert not lock_path.exists()

    def test_counters_shared_between_instances(self, tmp_path: Path):
        now = datetime(2026, 11, 3, tzinfo=timezone.utc)
        stores = [YamlOrderStore(tmp_path) for _ in range(4)]
        ids = []
        threads = [
            threading.Thread(target=lambda s=store: ids.append(next_order_id(s, now)))
            for store in stores
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(ids) == [f"ORDEN1126-00{n}" for n in range(1, 5)]


class TestYamlOrderStoreFailedCommit:
    """A commit spanning several orders lands completely or not at all."""

    def _changes(self, store):
        return _assign(store, "item-1", "e1") + _assign(store, "item-2", "e2")

    def _assignees(self, store):
        return {
            item_id: store.find_item(item_id)[1].assigned_employee_id
            for item_id in ("item-1", "item-2")
        }

    def test_write_failure_on_second_order_changes_nothing(self, tmp_path: Path, monkeypatch):
        store = _two_order_store(tmp_path)
        changes = self._changes(store)
        calls = []

        def failing_stage(path, data):
            calls.append(path)
            if len(calls) == 2:
                raise OSError("disk full")
            return YamlOrderStore._stage_yaml(path, data)

        monkeypatch.setattr(store, "_stage_yaml", failing_stage)

        with pytest.raises(OSError, match="disk full"):
            store.commit(changes)

        assert self._assignees(store) == {"item-1": None, "item-2": None}
        assert store.find_item("item-1")[1].version == 0
        assert list((tmp_path / "orders").glob("*.tmp")) == []

    def test_replace_failure_restores_replaced_orders(self, tmp_path: Path, monkeypatch):
        store = _two_order_store(tmp_path)
        changes = self._changes(store)
        original_replace = Path.replace
        calls = []

        def failing_replace(self, target):
            if str(self).endswith(".yaml.tmp"):
                calls.append(target)
                if len(calls) == 2:
                    raise OSError("device lost")
            return original_replace(self, target)

        monkeypatch.setattr(Path, "replace", failing_replace)

        with pytest.raises(OSError, match="device lost"):
            store.commit(changes)

        monkeypatch.undo()
        assert self._assignees(store) == {"item-1": None, "item-2": None}
        assert store.find_item("item-1")[1].version == 0
        assert list((tmp_path / "orders").glob("*.tmp")) == []
