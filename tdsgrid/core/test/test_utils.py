import os
import datetime
import logging

import pytest
import numpy as np
import traitlets as tl

from tdsgrid.core.utils import (
    common_doc,
    create_logfile,
    cached_property,
    ArrayTrait,
    make_time_value,
    to_epoch_seconds,
    epoch_seconds_to_iso,
    parse_time_units,
    suggest_low_high,
)


class TestCommonDocs(object):
    def test_common_docs_does_not_affect_anonymous_functions(self):
        f = lambda x: x
        f2 = common_doc({"key": "value"})(f)
        assert f(42) == f2(42)
        assert f.__doc__ is None

    def test_common_docs_formats(self):
        def f():
            """{key} docs"""

        f = common_doc({"key": "value"})(f)
        assert f.__doc__ == "value docs"


class TestArrayTrait(object):
    def test_basic(self):
        class MyClass(tl.HasTraits):
            a = ArrayTrait()

        obj = MyClass(a=[1, 2, 3])
        assert isinstance(obj.a, np.ndarray)
        np.testing.assert_array_equal(obj.a, [1, 2, 3])

    def test_ndim(self):
        class MyClass(tl.HasTraits):
            a = ArrayTrait(ndim=1)

        MyClass(a=[1, 2])
        with pytest.raises(tl.TraitError):
            MyClass(a=[[1, 2], [3, 4]])

    def test_dtype(self):
        class MyClass(tl.HasTraits):
            a = ArrayTrait(dtype=float)

        obj = MyClass(a=[1, 2])
        assert obj.a.dtype == float

        with pytest.raises(tl.TraitError):
            MyClass(a=["a", "b"])


class TestCachedProperty(object):
    def test_cached_property(self):
        class MyClass(object):
            n = 0

            @cached_property
            def value(self):
                self.n += 1
                return self.n

        obj = MyClass()
        assert obj.value == 1
        assert obj.value == 1
        assert obj.n == 1


class TestTimeValues(object):
    def test_make_time_value(self):
        assert make_time_value("2006-08-08") == np.datetime64("2006-08-08")
        assert make_time_value("2006-08-08T12:00:00Z") == np.datetime64("2006-08-08T12:00:00")
        assert make_time_value(" 2006-08-08 12:00:00 ") == np.datetime64("2006-08-08T12:00:00")
        assert make_time_value(datetime.date(2006, 8, 8)) == np.datetime64("2006-08-08")
        assert make_time_value(np.array(np.datetime64("2006-08-08"))) == np.datetime64("2006-08-08")

    def test_make_time_value_timezone(self):
        t = datetime.datetime(2006, 8, 8, 5, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=-7)))
        assert make_time_value(t) == np.datetime64("2006-08-08T12:00:00")

    def test_make_time_value_invalid(self):
        with pytest.raises(ValueError):
            make_time_value("not a time")

        with pytest.raises(ValueError):
            make_time_value(np.datetime64("NaT"))

        with pytest.raises(TypeError):
            make_time_value([1, 2])

    def test_to_epoch_seconds(self):
        assert to_epoch_seconds("1970-01-01") == 0
        assert to_epoch_seconds("1970-01-02T00:00:01") == 86401
        assert to_epoch_seconds(1.5e9) == 1.5e9
        assert to_epoch_seconds(np.datetime64("2006-08-08T12:00:00")) == 1155038400

    def test_epoch_seconds_to_iso(self):
        assert epoch_seconds_to_iso(1155038400) == "2006-08-08T12:00:00"
        assert epoch_seconds_to_iso(1155038400, sep=" ") == "2006-08-08 12:00:00"
        assert list(epoch_seconds_to_iso([0, 86400])) == ["1970-01-01T00:00:00", "1970-01-02T00:00:00"]


class TestParseTimeUnits(object):
    def test_seconds(self):
        assert parse_time_units("seconds since 1970-01-01T00:00:00Z") == (1.0, 0.0)

    def test_days(self):
        factor, base = parse_time_units("days since 2006-01-01")
        assert factor == 86400.0
        assert base == to_epoch_seconds("2006-01-01")

    def test_hours_with_space_and_timezone(self):
        factor, base = parse_time_units("Hours since 1970-01-01 01:00:00+01:00")
        assert factor == 3600.0
        assert base == 0.0

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_time_units("")

        with pytest.raises(ValueError):
            parse_time_units("degrees_north")

        with pytest.raises(ValueError):
            parse_time_units("fortnights since 1970-01-01")


class TestSuggestLowHigh(object):
    def test_positive(self):
        assert suggest_low_high(0.01, 6.4) == (0.0, 7.0)

    def test_centered_on_zero(self):
        assert suggest_low_high(-3.0, 5.0) == (-5.0, 5.0)

    def test_not_centered(self):
        assert suggest_low_high(-1.0, 10.0) == (-2.0, 10.0)

    def test_swapped(self):
        assert suggest_low_high(6.4, 0.01) == (0.0, 7.0)

    def test_nan(self):
        low, high = suggest_low_high(np.nan, 1.0)
        assert np.isnan(low)
        assert high == 1.0


class TestCreateLogfile(object):
    def test_create_logfile(self, tmp_path):
        filename = str(tmp_path / "logs" / "tdsgrid.log")
        log, handler, formatter = create_logfile(filename=filename, level=logging.DEBUG)
        try:
            assert log.name == "tdsgrid"
            assert os.path.isdir(str(tmp_path / "logs"))
            assert handler in log.handlers
        finally:
            log.removeHandler(handler)
            handler.close()
