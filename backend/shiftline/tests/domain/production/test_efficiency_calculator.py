"""
Unit tests for the efficiency calculator.
"""

import pytest

from shiftline.domain.production.services.efficiency_calculator import (
    NOT_APPLICABLE,
    cumulative_efficiency,
    slot_efficiency,
    slot_report,
)
from shiftline.domain.production.value_objects.time_table import TimeSlot, TimeTable
from shiftline.domain.shared.exceptions import ValidationError


class TestSlotEfficiency:
    """Test hourly efficiency formatting."""

    def test_full_target(self):
        assert slot_efficiency(60, 60) == "100.00%"

    def test_half_target(self):
        assert slot_efficiency(5, 10) == "50.00%"

    def test_over_production(self):
        assert slot_efficiency(90, 60) == "150.00%"

    def test_zero_output(self):
        assert slot_efficiency(0, 45) == "0.00%"

    def test_rounds_half_up(self):
        """Test 1 / 800 = 0.125% rounds to 0.13%, not the banker's 0.12%."""
        assert slot_efficiency(1, 800) == "0.13%"

    def test_repeating_fraction(self):
        assert slot_efficiency(1, 3) == "33.33%"
        assert slot_efficiency(2, 3) == "66.67%"

    def test_zero_target_is_not_applicable(self):
        assert slot_efficiency(5, 0) == NOT_APPLICABLE
        assert slot_efficiency(0, 0) == "N/A"


class TestCumulativeEfficiency:
    """Test running efficiency over the slots so far."""

    def test_sums_up_to_index(self):
        assert cumulative_efficiency([10, 10, 0], [5, 5, 0], 2) == "200.00%"
        assert cumulative_efficiency([10, 0, 0], [10, 10, 10], 1) == "50.00%"

    def test_zero_target_slot_does_not_break_running_total(self):
        assert cumulative_efficiency([5, 5, 0], [10, 10, 0], 2) == "50.00%"

    def test_all_zero_targets_is_not_applicable(self):
        assert cumulative_efficiency([1, 2], [0, 0], 1) == NOT_APPLICABLE

    def test_length_mismatch_rejected(self):
        with pytest.raises(ValidationError):
            cumulative_efficiency([1, 2], [1], 0)

    @pytest.mark.parametrize("index", [-1, 3])
    def test_index_out_of_range_rejected(self, index):
        with pytest.raises(ValidationError):
            cumulative_efficiency([1, 2, 3], [1, 2, 3], index)


class TestSlotReport:
    """Test the hourly board rows."""

    def test_rows_per_slot(self):
        table = TimeTable(
            id="tt",
            slots=(
                TimeSlot(id="a", start_time="07:00", end_time="08:00"),
                TimeSlot(id="b", start_time="08:00", end_time="09:00"),
            ),
        )

        rows = slot_report(table, [30, 60], [60, 0])

        assert [row.slot.id for row in rows] == ["a", "b"]
        assert rows[0].efficiency == "50.00%"
        assert rows[0].cumulative_efficiency == "50.00%"
        assert rows[1].efficiency == "N/A"
        assert rows[1].cumulative_efficiency == "150.00%"

    def test_misaligned_outputs_rejected(self):
        table = TimeTable(
            id="tt", slots=(TimeSlot(id="a", start_time="07:00", end_time="08:00"),)
        )

        with pytest.raises(ValidationError):
            slot_report(table, [1, 2], [1, 2])
