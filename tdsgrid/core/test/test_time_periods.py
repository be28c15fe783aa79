import pytest
import numpy as np

from tdsgrid.core.utils import to_epoch_seconds
from tdsgrid.core.time_periods import (
    TIME_PERIODS,
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    get_time_period,
    get_time_period_by_label,
    override_time_period,
    centering_offset,
    end_to_centered,
    centered_to_end,
    expected_gap_seconds,
    time_long_name,
)


class TestTimePeriods(object):
    def test_tokens(self):
        for token in ["hday", "25hour", "33hour", "1day", "3day", "8day", "14day", "mday", "1year"]:
            assert token in TIME_PERIODS
            assert TIME_PERIODS[token].token == token

    def test_get_time_period(self):
        p = get_time_period("8day")
        assert p.label == "8 day"
        assert p.n_hours == 192

        assert get_time_period_by_label("1 month").token == "mday"

        with pytest.raises(KeyError):
            get_time_period("2day")

    def test_labels_unique(self):
        labels = [p.label for p in TIME_PERIODS.values()]
        assert len(labels) == len(set(labels))


class TestOverride(object):
    def test_25h(self):
        hday = get_time_period("hday")
        assert override_time_period(hday, "TQNux1025h").token == "25hour"
        assert override_time_period(hday, "TQNux1024h").token == "25hour"

    def test_33h(self):
        assert override_time_period(get_time_period("hday"), "TQNux1033h").token == "33hour"

    def test_no_suffix(self):
        hday = get_time_period("hday")
        assert override_time_period(hday, "TMOk490") is hday

    def test_composites_are_not_overridden(self):
        day = get_time_period("1day")
        assert override_time_period(day, "TQNux1025h") is day


class TestCentering(object):
    def test_offsets(self):
        assert centering_offset(0) == 0
        assert centering_offset(24) == 12 * SECONDS_PER_HOUR - 1
        assert centering_offset(24, midnight_correction=False) == 12 * SECONDS_PER_HOUR
        assert centering_offset(25) == 12.5 * SECONDS_PER_HOUR
        assert centering_offset(33, midnight_correction=False) == 16.5 * SECONDS_PER_HOUR

    def test_end_to_centered_3day(self):
        # 3 day composite ending 2006-08-10, stored as 23:59:59 of 2006-08-09
        end = to_epoch_seconds("2006-08-09T23:59:59")
        assert end_to_centered(end, 72) == to_epoch_seconds("2006-08-08T12:00:00")

    def test_end_to_centered_single_scans(self):
        end = to_epoch_seconds("2006-08-09T13:45:00")
        assert end_to_centered(end, 0) == end

    def test_end_to_centered_25hour(self):
        end = to_epoch_seconds("2006-08-10T00:30:00")
        assert end_to_centered(end, 25) == to_epoch_seconds("2006-08-09T12:00:00")

    def test_round_trip(self):
        raw = np.array([1.0e9, 1.15e9 + 1, 1.2e9 - 1, 1.3e9 + 86399], dtype=float)
        for period in TIME_PERIODS.values():
            for correction in [True, False]:
                centered = end_to_centered(raw, period.n_hours, correction)
                np.testing.assert_array_equal(centered_to_end(centered, period.n_hours, correction), raw)


class TestExpectedGap(object):
    def test_expected_gap_seconds(self):
        assert expected_gap_seconds(0) == SECONDS_PER_HOUR
        assert expected_gap_seconds(25) == SECONDS_PER_HOUR
        assert expected_gap_seconds(33) == SECONDS_PER_HOUR
        assert expected_gap_seconds(24) == SECONDS_PER_DAY
        assert expected_gap_seconds(72) == SECONDS_PER_DAY
        assert expected_gap_seconds(14 * 24) == SECONDS_PER_DAY
        assert expected_gap_seconds(30 * 24) == 32 * SECONDS_PER_DAY
        assert expected_gap_seconds(365 * 24) == 32 * SECONDS_PER_DAY

    def test_time_long_name(self):
        assert time_long_name(get_time_period("8day")) == "Centered Time of 8 day Composites"
        assert time_long_name(get_time_period("hday")) == "Centered Time"
