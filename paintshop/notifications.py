"""
Notification sinks and the change signal.

Assignment notifications are fire-and-forget: the workflow service logs
sink failures and never propagates them to the command caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable
import threading
import uuid

import requests
import yaml

from paintshop.errors import ExternalServiceError
from paintshop.logger import get_logger

log = get_logger("NOTIFY")


@runtime_checkable
class NotificationSink(Protocol):
    def notify(self, employee_id: str, message: str) -> None:
        """Deliver a message to an employee."""


class NotificationInbox:
    """
    Per-recipient notification list with read flags.

    Persisted to a YAML file when `path` is given, kept in memory otherwise.
    """

    def __init__(self, path: Path | None = None):
        self._path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._memory: list[dict[str, Any]] = []

    def _load(self) -> list[dict[str, Any]]:
        if self._path is None:
            return self._memory
        if not self._path.exists():
            return []
        return yaml.safe_load(self._path.read_text(encoding="utf-8")) or []

    def _save(self, notifications: list[dict[str, Any]]) -> None:
        if self._path is None:
            self._memory = notifications
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".yaml.tmp")
        tmp_path.write_text(yaml.safe_dump(notifications, sort_keys=False), encoding="utf-8")
        tmp_path.replace(self._path)

    def notify(self, employee_id: str, message: str) -> None:
        with self._lock:
            notifications = list(self._load())
            notifications.append(
                {
                    "id": uuid.uuid4().hex[:9],
                    "recipient_id": employee_id,
                    "message": message,
                    "at": datetime.now(timezone.utc).isoformat(),
                    "read": False,
                }
            )
            self._save(notifications)

    def for_recipient(self, employee_id: str, unread_only: bool = False) -> list[dict[str, Any]]:
        with self._lock:
            return [
                dict(entry)
                for entry in self._load()
                if entry.get("recipient_id") == employee_id
                and not (unread_only and entry.get("read"))
            ]

    def mark_read(self, employee_id: str) -> int:
        """Mark all of a recipient's notifications read; return how many changed."""
        with self._lock:
            notifications = list(self._load())
            changed = 0
            for entry in notifications:
                if entry.get("recipient_id") == employee_id and not entry.get("read"):
                    entry["read"] = True
                    changed += 1
            self._save(notifications)
            return changed


class WebhookNotifier:
    """POST notifications as JSON to an external endpoint."""

    def __init__(self, url: str, timeout_s: int = 10):
        self._url = url
        self._timeout_s = timeout_s

    def notify(self, employee_id: str, message: str) -> None:
        payload = {
            "recipient_id": employee_id,
            "message": message,
            "at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            response = requests.post(self._url, json=payload, timeout=self._timeout_s)
            response.raise_for_status()
        except requests.Timeout as e:
            raise ExternalServiceError(
                f"Notification webhook timed out (timeout: {self._timeout_s}s)"
            ) from e
        except requests.RequestException as e:
            raise ExternalServiceError(f"Notification webhook failed: {e}") from e


class FanOutNotifier:
    """Deliver to several sinks; one failing sink does not block the rest."""

    def __init__(self, sinks: list[NotificationSink]):
        self._sinks = list(sinks)

    def notify(self, employee_id: str, message: str) -> None:
        failures: list[str] = []
        for sink in self._sinks:
            try:
                sink.notify(employee_id, message)
            except ExternalServiceError as e:
                failures.append(str(e))
        if failures:
            raise ExternalServiceError("; ".join(failures))


class ChangeSignal:
    """In-process broadcast raised after every successful mutation; carries no payload."""

    def __init__(self):
        self._subscribers: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def emit(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback()
            except Exception as e:
                log.error("Change subscriber failed", error=str(e))
