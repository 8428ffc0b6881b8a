"""Tests del acumulador de desgaste y verificación del ledger."""

import math
from datetime import datetime, timezone

import pytest

from toollife_api.errors import ValidationError
from toollife_api.tool_life.models import AlertTier, UsageEvent, UsageEventType
from toollife_api.tool_life.wear import (
    check_ledger,
    compute_wear,
    replay_cumulative,
    validate_wear_input,
)


def _event(seq, score, before, after, event_type=UsageEventType.USAGE):
    return UsageEvent(
        tool_id=1,
        tool_name="Drill",
        sequence_no=seq,
        event_type=event_type,
        component_id="C-1",
        no_of_holes=score,
        cutting_length=1.0,
        usage_score=score,
        cumulative_total_before=before,
        cumulative_total_after=after,
        tool_life_threshold=1000.0,
        usage_percentage=after / 10,
        remaining_life=max(0.0, 1000 - after),
        alert_type=AlertTier.NONE,
        alert_triggered=False,
        timestamp=datetime.now(timezone.utc),
    )


class TestComputeWear:
    def test_first_event(self):
        wear = compute_wear(0.0, 10, 50, 1000.0)
        assert wear.usage_score == 500
        assert wear.cumulative_after == 500
        assert wear.usage_percentage == pytest.approx(50.0)
        assert wear.remaining_life == 500

    def test_remaining_life_never_negative(self):
        wear = compute_wear(950.0, 50, 9, 1000.0)
        assert wear.cumulative_after == 1400
        assert wear.remaining_life == 0
        assert wear.usage_percentage == pytest.approx(140.0)

    def test_zero_score_is_valid(self):
        wear = compute_wear(300.0, 0, 25, 1000.0)
        assert wear.usage_score == 0
        assert wear.cumulative_after == 300


class TestValidateWearInput:
    @pytest.mark.parametrize("value", [None, "10", True, -1, -0.5, math.nan, math.inf])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValidationError) as exc:
            validate_wear_input("holes_count", value)
        assert exc.value.errors[0]["field"] == "holes_count"

    @pytest.mark.parametrize("value", [0, 3, 2.5])
    def test_accepts_non_negative_numbers(self, value):
        assert validate_wear_input("cutting_length", value) == float(value)


class TestReplay:
    def test_reset_checkpoint_restarts_the_fold(self):
        events = [
            _event(1, 500, 0, 500),
            _event(2, 450, 500, 950),
            _event(3, 0, 950, 0, UsageEventType.RESET),
            _event(4, 100, 0, 100),
        ]
        assert replay_cumulative(events) == 100

    def test_consistent_ledger(self):
        events = [_event(1, 500, 0, 500), _event(2, 450, 500, 950)]
        check = check_ledger(events)
        assert check.consistent
        assert check.stored_total == check.replayed_total == 950
        assert check.events == 2

    def test_detects_broken_chain(self):
        # Dos escritores leyeron el mismo acumulado: se perdió una contribución.
        events = [_event(1, 500, 0, 500), _event(2, 100, 500, 600), _event(3, 100, 500, 600)]
        check = check_ledger(events)
        assert not check.consistent
        assert 3 in check.broken_links

    def test_empty_ledger(self):
        check = check_ledger([])
        assert check.consistent
        assert check.stored_total == 0
