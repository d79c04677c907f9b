"""
Order, item and audit data structures.

This module defines the dataclasses persisted by the order store and
mutated by the workflow commands, plus their dictionary serialization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from paintshop.errors import ValidationError
from paintshop.schema import (
    Area,
    AuditAction,
    DeliveryType,
    FinishType,
    REWORK_ACTIONS,
    Stage,
    parse_enum,
)


class EmployeeRole(Enum):
    ADMIN = "admin"
    LEADER = "leader"
    OPERATOR = "operator"
    RECEPTION = "reception"
    MESSENGER = "messenger"


def parse_datetime(value: Any) -> datetime | None:
    """Parse ISO timestamps or plain dates; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            raise ValidationError(f"Invalid date value '{value}'") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _optional_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    if value is None or value == "":
        return None
    return parse_enum(enum_cls, value, field_name)


@dataclass(frozen=True)
class ClientSnapshot:
    """
    Client data copied onto an order at intake.

    Later edits to the client record never change existing orders.
    """
    client_id: str
    name: str
    address: str | None = None
    city: str | None = None
    delivery_type: DeliveryType | None = None

    @property
    def requires_shipping_info(self) -> bool:
        return self.delivery_type is not None and self.delivery_type.requires_shipping_info

    def to_dict(self) -> dict[str, Any]:
        return {
            "client_id": self.client_id,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "delivery_type": self.delivery_type.value if self.delivery_type else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientSnapshot":
        return cls(
            client_id=str(data.get("client_id", "")),
            name=str(data.get("name", "")),
            address=data.get("address"),
            city=data.get("city"),
            delivery_type=_optional_enum(DeliveryType, data.get("delivery_type"), "delivery type"),
        )


@dataclass(frozen=True)
class ShippingInfo:
    """Carrier and tracking code recorded when a shipped item is delivered."""
    carrier: str
    tracking_code: str

    @property
    def is_complete(self) -> bool:
        return bool(self.carrier.strip()) and bool(self.tracking_code.strip())

    def to_dict(self) -> dict[str, Any]:
        return {"carrier": self.carrier, "tracking_code": self.tracking_code}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ShippingInfo | None":
        if not data:
            return None
        return cls(
            carrier=str(data.get("carrier", "")),
            tracking_code=str(data.get("tracking_code", "")),
        )


@dataclass(frozen=True)
class AuditEntry:
    """
    Immutable record of one action on an item.

    Attributes:
        id: Unique entry identifier
        at: When the action happened (UTC)
        action: Action kind
        actor_id: Stable actor reference (employee id), if known
        actor_name: Display name captured at the time of the action
        origin_area: Area the action was taken from
        destination_area: Area the item was sent to
        notes: Free text, holds rework and damage reasons
        attempt_number: Item rework count when the entry was written
    """
    id: str
    at: datetime
    action: AuditAction
    actor_name: str
    actor_id: str | None = None
    origin_area: Area | None = None
    destination_area: Area | None = None
    notes: str = ""
    attempt_number: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "at": self.at.isoformat(),
            "action": self.action.value,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "origin_area": self.origin_area.value if self.origin_area else None,
            "destination_area": self.destination_area.value if self.destination_area else None,
            "notes": self.notes,
            "attempt_number": self.attempt_number,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditEntry":
        return cls(
            id=str(data.get("id", "")),
            at=parse_datetime(data.get("at")) or datetime.now(timezone.utc),
            action=parse_enum(AuditAction, data.get("action"), "audit action"),
            actor_id=data.get("actor_id"),
            actor_name=str(data.get("actor_name", "")),
            origin_area=_optional_enum(Area, data.get("origin_area"), "area"),
            destination_area=_optional_enum(Area, data.get("destination_area"), "area"),
            notes=str(data.get("notes") or ""),
            attempt_number=int(data.get("attempt_number", 0)),
        )


@dataclass
class Item:
    """
    One part of one order, tracked through the pipeline.

    Attributes:
        id: Unique identifier
        internal_id: Monthly tracking code printed on labels (e.g. "1126-0001")
        part_id / part_name: Part descriptor
        color_id / color_name / color_code: Color descriptor
        finish_type: Gloss or matte, fixed at creation
        has_decals / accessories_detail: Extras to handle in pre-prep
        current_status: Current stage
        last_status: Stage held just before entering review
        current_area: Area hosting the current stage (None once finished)
        assigned_employee_id: Assignee for the current stage visit
        rework_count: Number of rework-class actions in history
        history: Append-only audit trail
        version: Store revision, bumped on every committed change
    """
    id: str
    internal_id: str
    part_id: str
    part_name: str
    color_id: str = ""
    color_name: str = ""
    color_code: str = ""
    finish_type: FinishType = FinishType.GLOSS
    has_decals: bool = False
    accessories_detail: str = ""

    current_status: Stage = Stage.PRE_PREP
    last_status: Stage | None = None
    current_area: Area | None = Area.PRE_PREP
    assigned_employee_id: str | None = None

    rework_count: int = 0
    history: list[AuditEntry] = field(default_factory=list)
    version: int = 0

    @property
    def is_finished(self) -> bool:
        return self.current_status is Stage.FINISHED

    @property
    def is_in_review(self) -> bool:
        return self.current_status is Stage.IN_REVIEW

    @property
    def is_assigned(self) -> bool:
        return bool(self.assigned_employee_id)

    def rework_entries(self) -> list[AuditEntry]:
        """History entries that count toward the rework counter."""
        return [entry for entry in self.history if entry.action in REWORK_ACTIONS]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "internal_id": self.internal_id,
            "part_id": self.part_id,
            "part_name": self.part_name,
            "color_id": self.color_id,
            "color_name": self.color_name,
            "color_code": self.color_code,
            "finish_type": self.finish_type.value,
            "has_decals": self.has_decals,
            "accessories_detail": self.accessories_detail,
            "current_status": self.current_status.value,
            "last_status": self.last_status.value if self.last_status else None,
            "current_area": self.current_area.value if self.current_area else None,
            "assigned_employee_id": self.assigned_employee_id,
            "rework_count": self.rework_count,
            "history": [entry.to_dict() for entry in self.history],
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Item":
        return cls(
            id=str(data.get("id", "")),
            internal_id=str(data.get("internal_id", "")),
            part_id=str(data.get("part_id", "")),
            part_name=str(data.get("part_name", "")),
            color_id=str(data.get("color_id") or ""),
            color_name=str(data.get("color_name") or ""),
            color_code=str(data.get("color_code") or ""),
            finish_type=parse_enum(FinishType, data.get("finish_type", "gloss"), "finish"),
            has_decals=bool(data.get("has_decals", False)),
            accessories_detail=str(data.get("accessories_detail") or ""),
            current_status=parse_enum(Stage, data.get("current_status", "pre_prep"), "stage"),
            last_status=_optional_enum(Stage, data.get("last_status"), "stage"),
            current_area=_optional_enum(Area, data.get("current_area"), "area"),
            assigned_employee_id=data.get("assigned_employee_id") or None,
            rework_count=int(data.get("rework_count", 0)),
            history=[AuditEntry.from_dict(entry) for entry in data.get("history") or []],
            version=int(data.get("version", 0)),
        )


@dataclass
class Order:
    """
    One intake record holding the items to be painted.

    Attributes:
        id: Order identifier (e.g. "ORDEN1126-001")
        client: Client snapshot taken at intake
        model_id / model_name: Motorcycle model
        entry_date: Intake timestamp
        estimated_delivery_date: Promised delivery, drives urgency
        visual_color_hex: Display color hint for boards
        items: Parts in this order
        special_edition_id / special_edition_name: Template used at intake
        shipping: Carrier and tracking code, set when a shipped item is delivered
    """
    id: str
    client: ClientSnapshot
    model_id: str
    model_name: str
    entry_date: datetime
    estimated_delivery_date: datetime | None = None
    visual_color_hex: str = "#64748b"
    items: list[Item] = field(default_factory=list)
    special_edition_id: str | None = None
    special_edition_name: str | None = None
    shipping: ShippingInfo | None = None

    @property
    def is_finished(self) -> bool:
        return bool(self.items) and all(item.is_finished for item in self.items)

    def find_item(self, item_id: str) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "client": self.client.to_dict(),
            "model_id": self.model_id,
            "model_name": self.model_name,
            "entry_date": self.entry_date.isoformat(),
            "estimated_delivery_date": _iso(self.estimated_delivery_date),
            "visual_color_hex": self.visual_color_hex,
            "items": [item.to_dict() for item in self.items],
            "special_edition_id": self.special_edition_id,
            "special_edition_name": self.special_edition_name,
            "shipping": self.shipping.to_dict() if self.shipping else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            id=str(data.get("id", "")),
            client=ClientSnapshot.from_dict(data.get("client") or {}),
            model_id=str(data.get("model_id", "")),
            model_name=str(data.get("model_name", "")),
            entry_date=parse_datetime(data.get("entry_date")) or datetime.now(timezone.utc),
            estimated_delivery_date=parse_datetime(data.get("estimated_delivery_date")),
            visual_color_hex=str(data.get("visual_color_hex") or "#64748b"),
            items=[Item.from_dict(item) for item in data.get("items") or []],
            special_edition_id=data.get("special_edition_id"),
            special_edition_name=data.get("special_edition_name"),
            shipping=ShippingInfo.from_dict(data.get("shipping")),
        )


@dataclass(frozen=True)
class Employee:
    """Directory entry; `area` is required for leaders."""
    id: str
    name: str
    role: EmployeeRole
    area: Area | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Employee":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            role=parse_enum(EmployeeRole, data.get("role"), "role"),
            area=_optional_enum(Area, data.get("area"), "area"),
        )


@dataclass(frozen=True)
class SpecialEditionItem:
    part_id: str
    part_name: str
    color_id: str = ""
    color_name: str = ""
    color_code: str = ""
    finish_type: FinishType = FinishType.GLOSS
    has_decals: bool = False
    accessories_detail: str = ""


@dataclass(frozen=True)
class SpecialEdition:
    """Predefined parts/colors/finishes cloned onto a new order."""
    id: str
    name: str
    model_id: str
    model_name: str
    items: tuple[SpecialEditionItem, ...] = ()
