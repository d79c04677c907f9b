"""Identifier generation for orders, items and audit entries."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
import uuid

ORDER_NAMESPACE = "ORD"
ITEM_NAMESPACE = "ITM"


class SequenceSource(Protocol):
    def next_sequence(self, namespace: str, period: str) -> int:
        """Return the next value of the namespace+period counter, starting at 1."""


def period_key(now: datetime) -> str:
    """Two-digit month followed by two-digit year, e.g. '1126'."""
    return f"{now.month:02d}{now.year % 100:02d}"


def counter_key(namespace: str, period: str) -> str:
    return f"{namespace}_{period}"


def format_order_id(period: str, sequence: int) -> str:
    return f"ORDEN{period}-{sequence:03d}"


def format_item_internal_id(period: str, sequence: int) -> str:
    return f"{period}-{sequence:04d}"


def next_order_id(source: SequenceSource, now: datetime) -> str:
    period = period_key(now)
    return format_order_id(period, source.next_sequence(ORDER_NAMESPACE, period))


def next_item_internal_id(source: SequenceSource, now: datetime) -> str:
    period = period_key(now)
    return format_item_internal_id(period, source.next_sequence(ITEM_NAMESPACE, period))


def new_record_id() -> str:
    """Opaque id for items and audit entries."""
    return uuid.uuid4().hex[:12]
