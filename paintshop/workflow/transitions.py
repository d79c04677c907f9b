"""Stage/area lookup tables for forward, backward and rework movement."""

from __future__ import annotations

from datetime import datetime, timedelta

from paintshop.errors import TransitionError, ValidationError
from paintshop.logger import get_logger
from paintshop.schema import Area, FinishType, Stage

log = get_logger("TRANSITIONS")

STAGE_AREA: dict[Stage, Area] = {
    Stage.PENDING: Area.PRE_PREP,
    Stage.PRE_PREP: Area.PRE_PREP,
    Stage.PREP_1: Area.PREP,
    Stage.BASE_COAT: Area.PAINT,
    Stage.PREP_2: Area.PREP,
    Stage.COLOR_COAT: Area.PAINT,
    Stage.POLISH: Area.POLISH,
    Stage.DISPATCH: Area.DISPATCH,
    Stage.DELIVERY: Area.DELIVERY,
}

# COLOR_COAT is resolved by finish and handled separately.
_FORWARD: dict[Stage, tuple[Stage, Area | None]] = {
    Stage.PRE_PREP: (Stage.PREP_1, Area.PREP),
    Stage.PREP_1: (Stage.BASE_COAT, Area.PAINT),
    Stage.BASE_COAT: (Stage.PREP_2, Area.PREP),
    Stage.PREP_2: (Stage.COLOR_COAT, Area.PAINT),
    Stage.POLISH: (Stage.DISPATCH, Area.DISPATCH),
    Stage.DISPATCH: (Stage.DELIVERY, Area.DELIVERY),
    Stage.DELIVERY: (Stage.FINISHED, None),
}

# DISPATCH is resolved by finish and handled separately.
_BACKWARD: dict[Stage, tuple[Stage, Area]] = {
    Stage.PREP_1: (Stage.PRE_PREP, Area.PRE_PREP),
    Stage.BASE_COAT: (Stage.PREP_1, Area.PREP),
    Stage.PREP_2: (Stage.BASE_COAT, Area.PAINT),
    Stage.COLOR_COAT: (Stage.PREP_2, Area.PREP),
    Stage.POLISH: (Stage.COLOR_COAT, Area.PAINT),
    Stage.DELIVERY: (Stage.DISPATCH, Area.DISPATCH),
}


def visits_polish(finish: FinishType) -> bool:
    """Only gloss parts are polished."""
    return finish is FinishType.GLOSS


def forward_transition(stage: Stage, finish: FinishType) -> tuple[Stage, Area | None]:
    """
    Return the (stage, area) an approved item moves to.

    DELIVERY advances to FINISHED, which has no area. Stages without a forward
    mapping (PENDING, IN_REVIEW, FINISHED) raise TransitionError.
    """
    if stage is Stage.COLOR_COAT:
        if visits_polish(finish):
            return Stage.POLISH, Area.POLISH
        return Stage.DISPATCH, Area.DISPATCH

    if stage not in _FORWARD:
        log.error("No forward transition defined", stage=stage.value, finish=finish.value)
        raise TransitionError(f"No forward transition from stage '{stage.value}'")
    return _FORWARD[stage]


def backward_transition(
    stage: Stage,
    finish: FinishType,
    current_area: Area | None = None,
) -> tuple[Stage, Area | None]:
    """
    Return the (stage, area) an item returned by an operator goes back to.

    Unmapped stages fall back to PENDING in the item's current area.
    """
    if stage is Stage.DISPATCH:
        if visits_polish(finish):
            return Stage.POLISH, Area.POLISH
        return Stage.COLOR_COAT, Area.PAINT

    if stage in _BACKWARD:
        return _BACKWARD[stage]

    log.warning(
        "No backward transition defined, falling back to pending",
        stage=stage.value,
        area=current_area.value if current_area else None,
    )
    return Stage.PENDING, current_area


def resolve_area_for_stage(stage: Stage) -> Area:
    """Area that hosts a stage; used for arbitrary rework targets."""
    area = STAGE_AREA.get(stage)
    if area is None:
        raise ValidationError(f"Stage '{stage.value}' is not a valid rework target")
    return area


def is_urgent(
    delivery_date: datetime | None,
    now: datetime,
    window_hours: int = 48,
) -> bool:
    """True when delivery is less than `window_hours` away or already past."""
    if delivery_date is None:
        return False
    return delivery_date - now < timedelta(hours=window_hours)
