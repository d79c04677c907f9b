"""Tests for new-order intake."""

from datetime import timedelta

import pytest

from conftest import NOW
from paintshop.errors import ValidationError
from paintshop.orders.intake import ItemDraft, create_order, items_from_special_edition
from paintshop.orders.store import InMemoryOrderStore
from paintshop.orders.types import ClientSnapshot, SpecialEdition, SpecialEditionItem
from paintshop.schema import Area, DeliveryType, FinishType, Stage

CLIENT = ClientSnapshot(
    client_id="c1",
    name="Carlos Ruiz",
    city="Medellin",
    delivery_type=DeliveryType.NATIONAL_SHIPPING,
)

EDITION = SpecialEdition(
    id="se1",
    name="Rosso Corsa",
    model_id="m1",
    model_name="Ducati Panigale V4",
    items=(
        SpecialEditionItem(part_id="tank", part_name="Tanque", color_name="Rojo", finish_type=FinishType.GLOSS, has_decals=True),
        SpecialEditionItem(part_id="fender", part_name="Guardabarros", finish_type=FinishType.MATTE),
    ),
)


def _create(store, **overrides):
    kwargs = dict(
        client=CLIENT,
        model_id="m1",
        model_name="Ducati Panigale V4",
        items=[ItemDraft(part_id="tank", part_name="Tanque")],
        estimated_delivery_date=NOW + timedelta(days=7),
        now=NOW,
    )
    kwargs.update(overrides)
    return create_order(store, **kwargs)


def test_items_start_in_pre_prep_with_monthly_ids():
    store = InMemoryOrderStore()
    order = _create(
        store,
        items=[ItemDraft("tank", "Tanque"), ItemDraft("seat", "Colin", finish_type=FinishType.MATTE)],
    )

    assert order.id == "ORDEN1126-001"
    assert [item.internal_id for item in order.items] == ["1126-0001", "1126-0002"]
    for item in order.items:
        assert (item.current_status, item.current_area) == (Stage.PRE_PREP, Area.PRE_PREP)
        assert item.rework_count == 0
        assert item.history == []
        assert item.assigned_employee_id is None
    assert store.get_order(order.id).client == CLIENT


def test_second_order_continues_sequences():
    store = InMemoryOrderStore()
    _create(store)
    order = _create(store)
    assert order.id == "ORDEN1126-002"
    assert order.items[0].internal_id == "1126-0002"


def test_special_edition_clones_template_parts():
    store = InMemoryOrderStore()
    order = _create(store, items=None, special_edition=EDITION)

    assert [item.part_name for item in order.items] == ["Tanque", "Guardabarros"]
    assert order.items[0].has_decals is True
    assert order.items[1].finish_type is FinishType.MATTE
    assert order.special_edition_name == "Rosso Corsa"


def test_items_from_special_edition_returns_drafts():
    drafts = items_from_special_edition(EDITION)
    assert drafts[0] == ItemDraft(
        part_id="tank",
        part_name="Tanque",
        color_name="Rojo",
        finish_type=FinishType.GLOSS,
        has_decals=True,
    )


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"client": None}, "client"),
        ({"model_id": ""}, "model"),
        ({"items": []}, "at least one part"),
        ({"estimated_delivery_date": None}, "delivery date is required"),
        ({"estimated_delivery_date": NOW - timedelta(days=1)}, "earlier than today"),
    ],
)
def test_validation_rejects_and_persists_nothing(overrides, message):
    store = InMemoryOrderStore()
    with pytest.raises(ValidationError, match=message):
        _create(store, **overrides)
    assert store.load_orders() == []
