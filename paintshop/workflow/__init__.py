"""Item state machine, lifecycle commands and board views."""

from .transitions import (
    STAGE_AREA,
    backward_transition,
    forward_transition,
    is_urgent,
    resolve_area_for_stage,
    visits_polish,
)
from .audit import DAMAGE_NOTE_PREFIX, Actor, history_rows, replay_summary
from .service import CommandResult, WorkflowService
from .queues import (
    AreaCounters,
    AreaQueues,
    QueueEntry,
    categorize_area_items,
    employee_pending_counts,
    employee_tasks,
    filter_orders,
    leader_attention_counts,
    operator_board,
    order_progress,
    production_summary,
    search_items,
)

__all__ = [
    "STAGE_AREA",
    "backward_transition",
    "forward_transition",
    "is_urgent",
    "resolve_area_for_stage",
    "visits_polish",
    "DAMAGE_NOTE_PREFIX",
    "Actor",
    "history_rows",
    "replay_summary",
    "CommandResult",
    "WorkflowService",
    "AreaCounters",
    "AreaQueues",
    "QueueEntry",
    "categorize_area_items",
    "employee_pending_counts",
    "employee_tasks",
    "filter_orders",
    "leader_attention_counts",
    "operator_board",
    "order_progress",
    "production_summary",
    "search_items",
]
