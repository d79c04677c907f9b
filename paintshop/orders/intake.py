"""New-order intake: validation, id assignment and special-edition cloning."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import random

from paintshop.errors import ValidationError
from paintshop.logger import get_logger
from paintshop.schema import Area, FinishType, Stage

from .ids import new_record_id, next_item_internal_id, next_order_id
from .store import OrderStore
from .types import ClientSnapshot, Item, Order, SpecialEdition

log = get_logger("INTAKE")

VISUAL_COLORS = (
    "#ef4444", "#f97316", "#f59e0b", "#84cc16", "#10b981",
    "#06b6d4", "#3b82f6", "#6366f1", "#8b5cf6", "#ec4899",
)


@dataclass
class ItemDraft:
    """Part requested at intake, before ids are assigned."""

    part_id: str
    part_name: str
    color_id: str = ""
    color_name: str = ""
    color_code: str = ""
    finish_type: FinishType = FinishType.GLOSS
    has_decals: bool = False
    accessories_detail: str = ""


def items_from_special_edition(edition: SpecialEdition) -> list[ItemDraft]:
    """Clone a special-edition template into item drafts."""
    return [
        ItemDraft(
            part_id=template.part_id,
            part_name=template.part_name,
            color_id=template.color_id,
            color_name=template.color_name,
            color_code=template.color_code,
            finish_type=template.finish_type,
            has_decals=template.has_decals,
            accessories_detail=template.accessories_detail,
        )
        for template in edition.items
    ]


def _validation_errors(
    client: ClientSnapshot | None,
    model_id: str,
    drafts: list[ItemDraft],
    estimated_delivery_date: datetime | None,
    now: datetime,
) -> list[str]:
    errors: list[str] = []
    if client is None or not client.client_id.strip():
        errors.append("A client is required for the order")
    if not model_id.strip():
        errors.append("A motorcycle model or special edition is required")
    if not drafts:
        errors.append("The order must contain at least one part")
    if any(not draft.part_name.strip() for draft in drafts):
        errors.append("Every part needs a name")
    if estimated_delivery_date is None:
        errors.append("An estimated delivery date is required")
    elif estimated_delivery_date.date() < now.date():
        errors.append("The delivery date cannot be earlier than today")
    return errors


def create_order(
    store: OrderStore,
    client: ClientSnapshot | None,
    model_id: str,
    model_name: str,
    items: list[ItemDraft] | None = None,
    estimated_delivery_date: datetime | None = None,
    special_edition: SpecialEdition | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Validate and persist a new order whose items start in pre-prep.

    When a special edition is given and no explicit items are passed, its
    template parts are cloned onto the order.
    """
    current_time = now or datetime.now(timezone.utc)
    drafts = list(items or [])
    if special_edition is not None and not drafts:
        drafts = items_from_special_edition(special_edition)

    errors = _validation_errors(client, model_id, drafts, estimated_delivery_date, current_time)
    if errors:
        log.warning("Order rejected", errors=errors)
        raise ValidationError("; ".join(errors))

    prepared = [
        Item(
            id=new_record_id(),
            internal_id=next_item_internal_id(store, current_time),
            part_id=draft.part_id,
            part_name=draft.part_name,
            color_id=draft.color_id,
            color_name=draft.color_name,
            color_code=draft.color_code,
            finish_type=draft.finish_type,
            has_decals=draft.has_decals,
            accessories_detail=draft.accessories_detail,
            current_status=Stage.PRE_PREP,
            current_area=Area.PRE_PREP,
        )
        for draft in drafts
    ]

    order = Order(
        id=next_order_id(store, current_time),
        client=client,
        model_id=model_id,
        model_name=model_name,
        entry_date=current_time,
        estimated_delivery_date=estimated_delivery_date,
        visual_color_hex=random.choice(VISUAL_COLORS),
        items=prepared,
        special_edition_id=special_edition.id if special_edition else None,
        special_edition_name=special_edition.name if special_edition else None,
    )
    store.add_order(order)
    log.info("Order created", order_id=order.id, item_count=len(prepared))
    return order
