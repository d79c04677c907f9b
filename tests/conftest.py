"""Pytest configuration for paint shop workflow tests."""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path so 'paintshop' can be imported without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from paintshop.orders.types import ClientSnapshot, Item, Order
from paintshop.schema import Area, DeliveryType, FinishType, Stage

NOW = datetime(2026, 11, 10, 12, 0, tzinfo=timezone.utc)


def build_item(
    item_id: str = "item-1",
    stage: Stage = Stage.PRE_PREP,
    area: Area | None = Area.PRE_PREP,
    finish: FinishType = FinishType.GLOSS,
    assignee: str | None = None,
    part_name: str = "Tanque",
    last_status: Stage | None = None,
) -> Item:
    return Item(
        id=item_id,
        internal_id=f"1126-{item_id[-1:].zfill(4)}",
        part_id=part_name.lower(),
        part_name=part_name,
        finish_type=finish,
        current_status=stage,
        current_area=area,
        assigned_employee_id=assignee,
        last_status=last_status,
    )


def build_order(
    order_id: str = "ORDEN1126-001",
    items: list[Item] | None = None,
    delivery_in: timedelta | None = timedelta(days=5),
    delivery_type: DeliveryType = DeliveryType.LOCAL_PICKUP,
    client_name: str = "Carlos Ruiz",
    model_name: str = "Ducati Panigale V4",
) -> Order:
    return Order(
        id=order_id,
        client=ClientSnapshot(
            client_id="c1",
            name=client_name,
            city="Bogota",
            delivery_type=delivery_type,
        ),
        model_id="m1",
        model_name=model_name,
        entry_date=NOW - timedelta(days=1),
        estimated_delivery_date=NOW + delivery_in if delivery_in is not None else None,
        items=items if items is not None else [build_item()],
    )


@pytest.fixture
def now():
    return NOW
