import pytest
import numpy as np
import traitlets as tl

from tdsgrid.core.utils import to_epoch_seconds
from tdsgrid.core.temporal_index import TemporalIndex


class TestTemporalIndexInit(object):
    def test_empty(self):
        index = TemporalIndex()
        assert len(index) == 0
        assert index.closest(5) == -1
        assert index.first_ge(5) == 0
        assert index.last_le(5) == -1
        assert index.window(0, 10) is None
        assert repr(index) == "TemporalIndex(empty)"

    def test_default_server_indices(self):
        index = TemporalIndex([1.0, 2.0, 3.0])
        np.testing.assert_array_equal(index.server_indices, [0, 1, 2])
        assert index.server_index(2) == 2

    def test_invalid(self):
        with pytest.raises(ValueError):
            TemporalIndex([1.0, 2.0], [0])

        with pytest.raises(ValueError):
            TemporalIndex([2.0, 1.0])

        with pytest.raises((ValueError, tl.TraitError)):
            TemporalIndex([1.0, 2.0], [1, 1])

    def test_iso_times(self):
        index = TemporalIndex([to_epoch_seconds("2006-08-08T12:00:00")])
        assert index.iso_times[0] == "2006-08-08T12:00:00"


class TestBuild(object):
    def test_centered_axis(self):
        index = TemporalIndex.build([10.0, 20.0, 30.0], 72, end_time=False)
        np.testing.assert_array_equal(index.times, [10.0, 20.0, 30.0])

    def test_end_time_axis(self):
        raw = [to_epoch_seconds("2006-08-09T23:59:59"), to_epoch_seconds("2006-08-14T23:59:59")]
        index = TemporalIndex.build(raw, 72, end_time=True)
        assert list(index.iso_times) == ["2006-08-08T12:00:00", "2006-08-13T12:00:00"]

    def test_without_midnight_correction(self):
        raw = [to_epoch_seconds("2006-08-10T00:00:00")]
        index = TemporalIndex.build(raw, 72, end_time=True, midnight_correction=False)
        assert index.iso_times[0] == "2006-08-08T12:00:00"

    def test_drops_duplicates_and_nan(self):
        index = TemporalIndex.build([10.0, np.nan, 20.0, 20.0, 15.0, 30.0], 0, end_time=True)
        np.testing.assert_array_equal(index.times, [10.0, 20.0, 30.0])
        np.testing.assert_array_equal(index.server_indices, [0, 2, 5])

    def test_all_invalid(self):
        index = TemporalIndex.build([np.nan, np.nan], 24, end_time=True)
        assert len(index) == 0


class TestSearch(object):
    times = [10.0, 20.0, 20.0, 30.0, 40.0]

    def test_binary_search(self):
        index = TemporalIndex([10.0, 20.0, 30.0])
        assert index.binary_search(20.0) == 1
        assert index.binary_search(5.0) == -1
        assert index.binary_search(25.0) == -3
        assert index.binary_search(35.0) == -4
        # the insertion point is recoverable
        assert -index.binary_search(25.0) - 1 == 2

    def test_first_ge(self):
        index = TemporalIndex(self.times, [0, 1, 2, 3, 4])
        assert index.first_ge(20.0) == 1
        assert index.first_ge(15.0) == 1
        assert index.first_ge(5.0) == 0
        assert index.first_ge(45.0) == 5

    def test_last_le(self):
        index = TemporalIndex(self.times, [0, 1, 2, 3, 4])
        assert index.last_le(20.0) == 2
        assert index.last_le(25.0) == 2
        assert index.last_le(45.0) == 4
        assert index.last_le(5.0) == -1

    def test_closest(self):
        index = TemporalIndex([10.0, 20.0, 30.0])
        assert index.closest(20.0) == 1
        assert index.closest(24.0) == 1
        assert index.closest(26.0) == 2
        assert index.closest(-100.0) == 0
        assert index.closest(100.0) == 2

    def test_closest_tie_goes_to_lower_index(self):
        index = TemporalIndex([10.0, 20.0, 30.0])
        assert index.closest(25.0) == 1
        assert index.closest(15.0) == 0

    def test_first_ge_last_le_relation(self):
        rng = np.random.RandomState(0)
        index = TemporalIndex(np.sort(rng.randint(0, 50, 20)).astype(float), np.arange(20))
        for v in np.arange(-5, 55, 0.5):
            first, last = index.first_ge(v), index.last_le(v)
            assert first <= last + 1
            if first == last + 1:
                in_range = 0 < first < len(index)
                outside = first == 0 or first == len(index)
                assert outside or (in_range and index.times[first - 1] < v < index.times[first])

    def test_closest_idempotent(self):
        rng = np.random.RandomState(1)
        index = TemporalIndex(np.unique(rng.uniform(0, 100, 30)))
        for v in np.linspace(-10, 110, 97):
            c = index.closest(v)
            assert index.closest(index.times[c]) == c


class TestWindow(object):
    def test_window(self):
        index = TemporalIndex([10.0, 20.0, 30.0, 40.0])
        assert index.window(15.0, 35.0) == (1, 2)
        assert index.window(10.0, 40.0) == (0, 3)
        assert index.window(0.0, 100.0) == (0, 3)

    def test_window_between_two_samples(self):
        index = TemporalIndex([10.0, 20.0, 30.0, 40.0])
        assert index.window(21.0, 24.0) == (1, 1)
        assert index.window(26.0, 29.0) == (2, 2)

    def test_window_outside(self):
        index = TemporalIndex([10.0, 20.0, 30.0, 40.0])
        assert index.window(41.0, 50.0) is None
        assert index.window(0.0, 5.0) is None

    def test_inverted_window(self):
        index = TemporalIndex([10.0, 20.0, 30.0, 40.0])
        assert index.window(35.0, 15.0) is None

    def test_inverted_window_between_two_samples(self):
        index = TemporalIndex([10.0, 20.0, 30.0, 40.0])
        assert index.window(25.0, 21.0) is None
        assert index.window(29.0, 26.0) is None
