#!/usr/bin/env python3
"""CLI for driving the paint shop workflow from a terminal."""

from __future__ import annotations

import argparse
import sys
import time
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

# Support running as a standalone script from repo root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from paintshop.config import Settings, load_settings
from paintshop.directory import load_employee_directory
from paintshop.errors import ValidationError, WorkflowError
from paintshop.notifications import FanOutNotifier, NotificationInbox, WebhookNotifier
from paintshop.orders.intake import ItemDraft, create_order
from paintshop.orders.store import YamlOrderStore
from paintshop.orders.types import ClientSnapshot, ShippingInfo, parse_datetime
from paintshop.schema import Area, DeliveryType, FinishType, Stage, parse_enum, stage_label
from paintshop.workflow.audit import history_rows, replay_summary
from paintshop.workflow.queues import (
    categorize_area_items,
    employee_pending_counts,
    employee_tasks,
    leader_attention_counts,
    order_progress,
    search_items,
)
from paintshop.workflow.service import WorkflowService


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Paint shop workflow CLI")
    parser.add_argument("--config", default=None, help="Path to paintshop.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    order_parser = subparsers.add_parser("new-order", help="Register a new order")
    order_parser.add_argument("--client-id", required=True)
    order_parser.add_argument("--client-name", required=True)
    order_parser.add_argument("--city", default=None)
    order_parser.add_argument("--address", default=None)
    order_parser.add_argument(
        "--delivery-type",
        default=DeliveryType.LOCAL_PICKUP.value,
        choices=[member.value for member in DeliveryType],
    )
    order_parser.add_argument("--model-id", required=True)
    order_parser.add_argument("--model-name", required=True)
    order_parser.add_argument("--delivery-date", required=True, help="ISO date or datetime")
    order_parser.add_argument(
        "--part",
        action="append",
        dest="parts",
        default=[],
        help="Part as NAME[:FINISH[:COLOR]] (repeatable)",
    )

    assign_parser = subparsers.add_parser("assign", help="Assign items to an employee")
    assign_parser.add_argument("--area", required=True)
    assign_parser.add_argument("--employee", required=True)
    assign_parser.add_argument("--leader", default=None)
    assign_parser.add_argument("item_ids", nargs="+")

    finish_parser = subparsers.add_parser("finish", help="Mark an item done, sending it to review")
    finish_parser.add_argument("--employee", required=True)
    finish_parser.add_argument("--carrier", default=None)
    finish_parser.add_argument("--tracking-code", default=None)
    finish_parser.add_argument("item_id")

    approve_parser = subparsers.add_parser("approve", help="Approve reviewed items")
    approve_parser.add_argument("--area", required=True)
    approve_parser.add_argument("--leader", default=None)
    approve_parser.add_argument("item_ids", nargs="+")

    reprocess_parser = subparsers.add_parser("reprocess", help="Send items back for rework")
    reprocess_parser.add_argument("--area", required=True)
    reprocess_parser.add_argument("--to-stage", required=True)
    reprocess_parser.add_argument("--reason", required=True)
    reprocess_parser.add_argument("--leader", default=None)
    reprocess_parser.add_argument("item_ids", nargs="+")

    damage_parser = subparsers.add_parser("damage", help="Report a damaged item")
    damage_parser.add_argument("--reason", required=True)
    damage_parser.add_argument("--actor", default="Operator")
    damage_parser.add_argument("--actor-id", default=None)
    damage_parser.add_argument("item_id")

    return_parser = subparsers.add_parser("return", help="Return an item to the previous stage")
    return_parser.add_argument("--employee", required=True)
    return_parser.add_argument("--reason", required=True)
    return_parser.add_argument("item_id")

    queue_parser = subparsers.add_parser("queue", help="Show an area's work queues")
    queue_parser.add_argument("--area", required=True)
    queue_parser.add_argument("--search", default="")
    queue_parser.add_argument("--urgent", action="store_true")

    subparsers.add_parser("counters", help="Show per-area attention counters")

    tasks_parser = subparsers.add_parser("my-tasks", help="Show an employee's tasks")
    tasks_parser.add_argument("--employee", required=True)

    history_parser = subparsers.add_parser("history", help="Print an order's replay summary")
    history_parser.add_argument("order_id")

    track_parser = subparsers.add_parser("track", help="Search items across all areas")
    track_parser.add_argument("--search", default="")
    track_parser.add_argument("--area", default=None)
    track_parser.add_argument("--finished", action="store_true")
    track_parser.add_argument("--urgent", action="store_true")
    track_parser.add_argument("--detail", action="store_true", help="Include item history")

    watch_parser = subparsers.add_parser("watch", help="Poll the attention counters")
    watch_parser.add_argument("--iterations", type=int, default=0, help="0 polls forever")

    return parser


def _parse_part(raw: str) -> ItemDraft:
    name, _, rest = raw.partition(":")
    finish, _, color = rest.partition(":")
    return ItemDraft(
        part_id=name.strip().lower().replace(" ", "-"),
        part_name=name.strip(),
        color_name=color.strip(),
        finish_type=parse_enum(FinishType, finish or FinishType.GLOSS.value, "finish type"),
    )


def _build_service(settings: Settings, store: YamlOrderStore) -> WorkflowService:
    sinks = [NotificationInbox(settings.data_dir / "notifications.yaml")]
    if settings.webhook_url:
        sinks.append(WebhookNotifier(settings.webhook_url, settings.webhook_timeout_s))
    return WorkflowService(
        store=store,
        directory=load_employee_directory(settings.employees_file),
        notifier=FanOutNotifier(sinks),
    )


def _print_counters(store: YamlOrderStore) -> None:
    counters = leader_attention_counts(store.load_orders())
    for area, counts in counters.items():
        print(
            f"counters:{area.value}:"
            f"review={counts.in_review_count}:"
            f"pending={counts.unassigned_pending_count}"
        )


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
        store = YamlOrderStore(settings.data_dir)
        service = _build_service(settings, store)

        if args.command == "new-order":
            client = ClientSnapshot(
                client_id=args.client_id,
                name=args.client_name,
                address=args.address,
                city=args.city,
                delivery_type=parse_enum(DeliveryType, args.delivery_type, "delivery type"),
            )
            order = create_order(
                store,
                client=client,
                model_id=args.model_id,
                model_name=args.model_name,
                items=[_parse_part(raw) for raw in args.parts],
                estimated_delivery_date=parse_datetime(args.delivery_date),
            )
            print(f"order:{order.id}")
            for item in order.items:
                print(f"item:{item.id}:{item.internal_id}:{item.part_name}")
            service.change_signal.emit()
            return 0

        if args.command == "assign":
            result = service.assign_items(
                args.item_ids,
                args.employee,
                parse_enum(Area, args.area, "area"),
                leader_id=args.leader,
            )
            print(f"assigned:{len(result.item_ids)}:{','.join(result.item_ids)}")
            return 0

        if args.command == "finish":
            shipping = None
            if args.carrier or args.tracking_code:
                shipping = ShippingInfo(args.carrier or "", args.tracking_code or "")
            result = service.finish_task(args.item_id, args.employee, shipping=shipping)
            print(f"in_review:{result.item_ids[0]}")
            return 0

        if args.command == "approve":
            result = service.approve_quality(
                args.item_ids,
                parse_enum(Area, args.area, "area"),
                leader_id=args.leader,
            )
            for item in result.items:
                area = item.current_area.value if item.current_area else "-"
                print(f"approved:{item.id}:{item.current_status.value}:{area}")
            return 0

        if args.command == "reprocess":
            result = service.reprocess_items(
                args.item_ids,
                parse_enum(Stage, args.to_stage, "stage"),
                args.reason,
                parse_enum(Area, args.area, "area"),
                leader_id=args.leader,
            )
            for item in result.items:
                print(f"reprocess:{item.id}:{item.current_status.value}:rework={item.rework_count}")
            return 0

        if args.command == "damage":
            result = service.report_damage(args.item_id, args.reason, args.actor, args.actor_id)
            item = result.items[0]
            print(f"damage:{item.id}:{item.current_status.value}:rework={item.rework_count}")
            return 0

        if args.command == "return":
            result = service.return_task(args.item_id, args.employee, args.reason)
            item = result.items[0]
            area = item.current_area.value if item.current_area else "-"
            print(f"returned:{item.id}:{item.current_status.value}:{area}")
            return 0

        if args.command == "queue":
            queues = categorize_area_items(
                store.load_orders(),
                parse_enum(Area, args.area, "area"),
                search=args.search,
                urgent_only=args.urgent,
                now=datetime.now().astimezone(),
                window_hours=settings.urgency_window_hours,
            )
            for bucket in ("unassigned", "in_review", "assigned"):
                for entry in getattr(queues, bucket):
                    print(
                        f"{bucket}:{entry.item.id}:{entry.item.internal_id}:"
                        f"{stage_label(entry.item.current_status)}:{entry.order.id}:"
                        f"{entry.item.assigned_employee_id or '-'}"
                    )
            return 0

        if args.command == "counters":
            _print_counters(store)
            return 0

        if args.command == "my-tasks":
            orders = store.load_orders()
            for area, count in employee_pending_counts(orders, args.employee).items():
                if count:
                    print(f"pending:{area.value}:{count}")
            for entry in employee_tasks(orders, args.employee):
                print(
                    f"task:{entry.item.id}:{entry.item.internal_id}:"
                    f"{entry.item.current_status.value}:{entry.order.id}"
                )
            return 0

        if args.command == "history":
            for line in replay_summary(store.get_order(args.order_id)):
                print(line)
            return 0

        if args.command == "track":
            orders = store.load_orders()
            results = search_items(
                orders,
                search=args.search,
                area=parse_enum(Area, args.area, "area") if args.area else None,
                finished=args.finished,
                urgent_only=args.urgent,
                window_hours=settings.urgency_window_hours,
            )
            for entry in results:
                print(
                    f"track:{entry.order.id}:{entry.item.internal_id}:"
                    f"{entry.item.current_status.value}:progress={order_progress(entry.order)}"
                )
                if args.detail:
                    for row in history_rows(entry.item):
                        print(f"  {row['at']}:{row['action']}:{row['actor']}:{row['notes']}")
            return 0

        if args.command == "watch":
            polls = 0
            while True:
                _print_counters(store)
                polls += 1
                if args.iterations and polls >= args.iterations:
                    return 0
                time.sleep(settings.poll_interval_s)
    except ValidationError as err:
        print(f"invalid:{err}", file=sys.stderr)
        return 2
    except WorkflowError as err:
        print(f"error:{err}", file=sys.stderr)
        return 1
    except ValueError as err:
        print(f"invalid:{err}", file=sys.stderr)
        return 2

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
