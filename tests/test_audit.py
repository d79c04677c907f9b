"""Tests for audit helpers and item serialization."""

from datetime import timedelta

import pytest

from conftest import NOW, build_item, build_order
from paintshop.errors import ValidationError
from paintshop.orders.types import Item, Order, parse_datetime
from paintshop.schema import Area, AuditAction, Stage
from paintshop.workflow import lifecycle
from paintshop.workflow.audit import Actor, history_rows, replay_summary

LEADER = Actor(name="Leader Paint", id="e5")


def _worked_item():
    item = build_item(stage=Stage.COLOR_COAT, area=Area.PAINT)
    lifecycle.assign_items([item], "e6", Area.PAINT, LEADER, NOW)
    lifecycle.report_damage(item, "Runs in clear coat", LEADER, NOW + timedelta(minutes=5))
    return item


def test_history_rows_flag_damage():
    rows = history_rows(_worked_item())
    assert [row["action"] for row in rows] == ["assigned", "reprocess"]
    assert rows[1]["damage"] is True
    assert rows[1]["from"] == "paint"
    assert rows[1]["to"] == "pre_prep"
    assert rows[1]["attempt"] == 1


def test_replay_summary_lines():
    order = build_order(items=[_worked_item()])
    lines = replay_summary(order)
    assert lines[0] == "order:ORDEN1126-001"
    assert lines[1] == "item:1126-0001:pre_prep:pre_prep:rework=1"
    assert lines[2] == "event:assigned:paint->-:attempt=0:Leader Paint"
    assert lines[3] == "event:reprocess:paint->pre_prep:attempt=1:Leader Paint"


def test_order_round_trip_through_dict():
    order = build_order(items=[_worked_item()])
    restored = Order.from_dict(order.to_dict())
    assert restored == order
    assert restored.items[0].history[1].action is AuditAction.REPROCESS


def test_unknown_stage_in_persisted_data_rejected():
    data = build_item().to_dict()
    data["current_status"] = "sanding"
    with pytest.raises(ValidationError, match="stage"):
        Item.from_dict(data)


def test_parse_datetime_handles_dates_and_naive_values():
    assert parse_datetime("2026-11-12").tzinfo is not None
    assert parse_datetime("") is None
    with pytest.raises(ValidationError):
        parse_datetime("next tuesday")
