"""Tests for stage/area transition tables and urgency."""

from datetime import datetime, timedelta, timezone

import pytest

from paintshop.errors import TransitionError, ValidationError
from paintshop.schema import Area, FinishType, Stage
from paintshop.workflow.transitions import (
    STAGE_AREA,
    backward_transition,
    forward_transition,
    is_urgent,
    resolve_area_for_stage,
)

FORWARD_MAPPED = [
    Stage.PRE_PREP,
    Stage.PREP_1,
    Stage.BASE_COAT,
    Stage.PREP_2,
    Stage.COLOR_COAT,
    Stage.POLISH,
    Stage.DISPATCH,
]

# matte parts never reach polish
ROUND_TRIP_CASES = [
    (stage, finish)
    for stage in FORWARD_MAPPED
    for finish in FinishType
    if not (stage is Stage.POLISH and finish is FinishType.MATTE)
]


class TestForwardTransition:
    """Forward advance on approval."""

    @pytest.mark.parametrize(
        "stage,expected",
        [
            (Stage.PRE_PREP, (Stage.PREP_1, Area.PREP)),
            (Stage.PREP_1, (Stage.BASE_COAT, Area.PAINT)),
            (Stage.BASE_COAT, (Stage.PREP_2, Area.PREP)),
            (Stage.PREP_2, (Stage.COLOR_COAT, Area.PAINT)),
            (Stage.POLISH, (Stage.DISPATCH, Area.DISPATCH)),
            (Stage.DISPATCH, (Stage.DELIVERY, Area.DELIVERY)),
        ],
    )
    def test_fixed_table(self, stage, expected):
        assert forward_transition(stage, FinishType.GLOSS) == expected
        assert forward_transition(stage, FinishType.MATTE) == expected

    def test_gloss_color_coat_goes_to_polish(self):
        assert forward_transition(Stage.COLOR_COAT, FinishType.GLOSS) == (Stage.POLISH, Area.POLISH)

    def test_matte_color_coat_skips_polish(self):
        assert forward_transition(Stage.COLOR_COAT, FinishType.MATTE) == (
            Stage.DISPATCH,
            Area.DISPATCH,
        )

    def test_delivery_finishes_without_area(self):
        assert forward_transition(Stage.DELIVERY, FinishType.GLOSS) == (Stage.FINISHED, None)

    @pytest.mark.parametrize("stage", [Stage.PENDING, Stage.IN_REVIEW, Stage.FINISHED])
    def test_unmapped_stage_is_an_error(self, stage):
        with pytest.raises(TransitionError):
            forward_transition(stage, FinishType.GLOSS)


class TestBackwardTransition:
    """Backward movement when an operator returns an item."""

    def test_gloss_dispatch_returns_to_polish(self):
        assert backward_transition(Stage.DISPATCH, FinishType.GLOSS) == (Stage.POLISH, Area.POLISH)

    def test_matte_dispatch_returns_to_color_coat(self):
        assert backward_transition(Stage.DISPATCH, FinishType.MATTE) == (
            Stage.COLOR_COAT,
            Area.PAINT,
        )

    def test_unmapped_stage_falls_back_to_pending_in_current_area(self):
        assert backward_transition(Stage.PRE_PREP, FinishType.GLOSS, Area.PRE_PREP) == (
            Stage.PENDING,
            Area.PRE_PREP,
        )

    @pytest.mark.parametrize("stage,finish", ROUND_TRIP_CASES)
    def test_backward_inverts_forward(self, stage, finish):
        """Stepping forward then back lands on the original stage and its area."""
        next_stage, _ = forward_transition(stage, finish)
        assert backward_transition(next_stage, finish) == (stage, STAGE_AREA[stage])

    def test_matte_never_visits_polish_in_either_direction(self):
        forward_path = [Stage.PRE_PREP]
        while forward_path[-1] is not Stage.FINISHED:
            forward_path.append(forward_transition(forward_path[-1], FinishType.MATTE)[0])
        assert Stage.POLISH not in forward_path

        backward_path = [Stage.DELIVERY]
        while backward_path[-1] is not Stage.PRE_PREP:
            backward_path.append(backward_transition(backward_path[-1], FinishType.MATTE)[0])
        assert Stage.POLISH not in backward_path

    def test_gloss_visits_polish_in_both_directions(self):
        assert forward_transition(Stage.COLOR_COAT, FinishType.GLOSS)[0] is Stage.POLISH
        assert backward_transition(Stage.DISPATCH, FinishType.GLOSS)[0] is Stage.POLISH


class TestResolveAreaForStage:
    @pytest.mark.parametrize("stage", [s for s in Stage if s not in (Stage.IN_REVIEW, Stage.FINISHED)])
    def test_total_over_workable_stages(self, stage):
        assert isinstance(resolve_area_for_stage(stage), Area)

    def test_prep_stages_share_area(self):
        assert resolve_area_for_stage(Stage.PREP_1) is Area.PREP
        assert resolve_area_for_stage(Stage.PREP_2) is Area.PREP

    def test_coat_stages_share_paint_area(self):
        assert resolve_area_for_stage(Stage.BASE_COAT) is Area.PAINT
        assert resolve_area_for_stage(Stage.COLOR_COAT) is Area.PAINT

    @pytest.mark.parametrize("stage", [Stage.IN_REVIEW, Stage.FINISHED])
    def test_non_target_stages_rejected(self, stage):
        with pytest.raises(ValidationError):
            resolve_area_for_stage(stage)


class TestIsUrgent:
    now = datetime(2026, 11, 10, 12, 0, tzinfo=timezone.utc)

    def test_no_date_is_never_urgent(self):
        assert is_urgent(None, self.now) is False

    def test_inside_window(self):
        assert is_urgent(self.now + timedelta(hours=47, minutes=59), self.now) is True

    def test_exactly_at_window_is_not_urgent(self):
        assert is_urgent(self.now + timedelta(hours=48), self.now) is False

    def test_past_date_is_urgent(self):
        assert is_urgent(self.now - timedelta(days=2), self.now) is True

    def test_custom_window(self):
        assert is_urgent(self.now + timedelta(hours=30), self.now, window_hours=24) is False
