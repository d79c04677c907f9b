"""Stage, area and audit vocabularies for the paint shop pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Any

from paintshop.errors import ValidationError


class Stage(Enum):
    """Process stages an item moves through, in production order."""
    PENDING = "pending"
    PRE_PREP = "pre_prep"
    PREP_1 = "prep_1"
    BASE_COAT = "base_coat"
    PREP_2 = "prep_2"
    COLOR_COAT = "color_coat"
    POLISH = "polish"
    DISPATCH = "dispatch"
    DELIVERY = "delivery"
    IN_REVIEW = "in_review"
    FINISHED = "finished"


class Area(Enum):
    """Physical stations; one area may host several stages."""
    PRE_PREP = "pre_prep"
    PREP = "prep"
    PAINT = "paint"
    POLISH = "polish"
    DISPATCH = "dispatch"
    DELIVERY = "delivery"


class FinishType(Enum):
    GLOSS = "gloss"
    MATTE = "matte"


class DeliveryType(Enum):
    LOCAL_PICKUP = "local_pickup"
    LOCAL_DELIVERY = "local_delivery"
    NATIONAL_SHIPPING = "national_shipping"
    INTERNATIONAL_SHIPPING = "international_shipping"

    @property
    def requires_shipping_info(self) -> bool:
        return self in SHIPPING_DELIVERY_TYPES


SHIPPING_DELIVERY_TYPES = frozenset(
    {DeliveryType.NATIONAL_SHIPPING, DeliveryType.INTERNATIONAL_SHIPPING}
)


class AuditAction(Enum):
    ASSIGNED = "assigned"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REPROCESS = "reprocess"
    RETURNED_BY_OPERATOR = "returned_by_operator"


# Damage reports are recorded as REPROCESS entries.
REWORK_ACTIONS = frozenset({AuditAction.REPROCESS, AuditAction.RETURNED_BY_OPERATOR})

STAGES: tuple[dict[str, Any], ...] = (
    {"id": Stage.PENDING, "label": "Pending", "order": 0, "weight": 5},
    {"id": Stage.PRE_PREP, "label": "Pre-Prep", "order": 1, "weight": 10},
    {"id": Stage.PREP_1, "label": "Prep 1", "order": 2, "weight": 25},
    {"id": Stage.BASE_COAT, "label": "Base Coat", "order": 3, "weight": 40},
    {"id": Stage.PREP_2, "label": "Prep 2", "order": 4, "weight": 55},
    {"id": Stage.COLOR_COAT, "label": "Color Coat", "order": 5, "weight": 70},
    {"id": Stage.POLISH, "label": "Polish", "order": 6, "weight": 85},
    {"id": Stage.DISPATCH, "label": "Dispatch", "order": 7, "weight": 92},
    {"id": Stage.DELIVERY, "label": "On Route", "order": 8, "weight": 96},
    {"id": Stage.IN_REVIEW, "label": "In Review", "order": 9, "weight": 98},
    {"id": Stage.FINISHED, "label": "Finished", "order": 10, "weight": 100},
)

AREA_LABELS = {
    Area.PRE_PREP: "Pre-Prep",
    Area.PREP: "Prep",
    Area.PAINT: "Paint",
    Area.POLISH: "Polish",
    Area.DISPATCH: "Dispatch",
    Area.DELIVERY: "Delivery",
}

# Stages a leader of each area assigns from, in board order.
AREA_MANAGED_STAGES: dict[Area, tuple[Stage, ...]] = {
    Area.PRE_PREP: (Stage.PRE_PREP,),
    Area.PREP: (Stage.PREP_1, Stage.PREP_2),
    Area.PAINT: (Stage.BASE_COAT, Stage.COLOR_COAT),
    Area.POLISH: (Stage.POLISH,),
    Area.DISPATCH: (Stage.DISPATCH,),
    Area.DELIVERY: (Stage.DELIVERY,),
}


def stage_label(stage: Stage) -> str:
    for row in STAGES:
        if row["id"] is stage:
            return str(row["label"])
    return stage.value.replace("_", " ")


def stage_weight(stage: Stage) -> int:
    for row in STAGES:
        if row["id"] is stage:
            return int(row["weight"])
    return 0


def parse_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    """Parse an enum by value or member name, raising ValidationError on unknown input."""
    if isinstance(value, enum_cls):
        return value
    text = str(value or "").strip()
    try:
        return enum_cls(text.lower())
    except ValueError:
        pass
    try:
        return enum_cls[text.upper()]
    except KeyError:
        expected = sorted(member.value for member in enum_cls)
        raise ValidationError(
            f"Unknown {field_name} '{value}'. Expected one of: {expected}"
        ) from None
