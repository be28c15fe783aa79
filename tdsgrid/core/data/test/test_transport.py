import pytest
import numpy as np
import requests
import pydap.model

from tdsgrid import settings
from tdsgrid.core.exceptions import EndpointUnavailable
from tdsgrid.core.data.transport import Transport, PyDAPTransport, EndpointHandle, identify_role
from tdsgrid.core.common_test_utils import make_grid_dataset, MockPyDAPTransport

URL = "https://thredds.example.org/thredds/dodsC/satellite/MO/k490/1day"
TIMES = [0.0, 86400.0, 172800.0]
LATS = [30.0, 31.0, 32.0, 33.0]
LONS = [230.0, 231.0, 232.0, 233.0, 234.0]


class TestIdentifyRole(object):
    def test_names(self):
        assert identify_role("time") == "time"
        assert identify_role("altitude") == "depth"
        assert identify_role("Latitude") == "lat"
        assert identify_role("lon") == "lon"

    def test_attributes(self):
        assert identify_role("T_AXIS", {"axis": "T"}) == "time"
        assert identify_role("nav_lat", {"standard_name": "latitude"}) == "lat"
        assert identify_role("band", {}) is None


class TestTransport(object):
    def test_abstract(self):
        transport = Transport()
        with pytest.raises(NotImplementedError):
            transport.open_endpoint(URL)
        with pytest.raises(NotImplementedError):
            transport.read_axis(None, "lat")
        with pytest.raises(NotImplementedError):
            transport.read_metadata(None)
        with pytest.raises(NotImplementedError):
            transport.read_range(None, {})

    def test_make_index(self):
        handle = EndpointHandle(URL, None, "k490", ("time", "altitude", "lat", "lon"), {"time": 0, "depth": 1, "lat": 2, "lon": 3})
        key = Transport.make_index(handle, {"time": (2, 2, 1), "lat": (0, 3, 2), "lon": (1, 4, 1)})
        assert key == (slice(2, 3, 1), slice(0, 1, 1), slice(0, 4, 2), slice(1, 5, 1))

    def test_make_index_invalid(self):
        handle = EndpointHandle(URL, None, "k490", ("time", "altitude", "lat", "lon"), {"time": 0, "depth": 1, "lat": 2, "lon": 3})
        with pytest.raises(ValueError):
            Transport.make_index(handle, {"lat": (3, 0, 1)})
        with pytest.raises(ValueError):
            Transport.make_index(handle, {"lat": (0, 3, 0)})


class TestPyDAPTransport(object):
    def make_transport(self, **kwargs):
        return MockPyDAPTransport(datasets={URL: make_grid_dataset(TIMES, LATS, LONS, **kwargs)})

    def test_timeout_default(self):
        with settings:
            settings["HTTP_TIMEOUT"] = 7
            assert PyDAPTransport().timeout == 7.0

    def test_open_endpoint(self):
        handle = self.make_transport().open_endpoint(URL)
        assert handle.url == URL
        assert handle.grid_name == "k490"
        assert handle.dimension_names == ("time", "altitude", "lat", "lon")
        assert handle.dimension_order == {"time": 0, "depth": 1, "lat": 2, "lon": 3}

    def test_open_endpoint_dimension_aliases(self):
        transport = self.make_transport(dims=("t", "z", "latitude", "longitude"))
        handle = transport.open_endpoint(URL)
        assert handle.dimension_order == {"time": 0, "depth": 1, "lat": 2, "lon": 3}

    def test_open_endpoint_unavailable(self):
        transport = MockPyDAPTransport()
        with pytest.raises(EndpointUnavailable, match="timeout"):
            transport.open_endpoint(URL)

        transport = MockPyDAPTransport(datasets={URL: OSError("connection reset")})
        with pytest.raises(EndpointUnavailable, match="connection reset"):
            transport.open_endpoint(URL)

    def test_open_endpoint_no_grid(self):
        dataset = pydap.model.DatasetType(name="dataset")
        dataset["key"] = pydap.model.BaseType(name="key", data=np.zeros(3))
        transport = MockPyDAPTransport(datasets={URL: dataset})
        with pytest.raises(EndpointUnavailable, match="No grids"):
            transport.open_endpoint(URL)

    def test_open_endpoint_missing_role(self):
        dataset = pydap.model.DatasetType(name="dataset")
        grid = pydap.model.GridType(name="sst")
        grid["sst"] = pydap.model.BaseType(name="sst", data=np.zeros((2, 3)), dimensions=("lat", "lon"))
        grid["lat"] = pydap.model.BaseType(name="lat", data=np.arange(2.0), dimensions=("lat",))
        grid["lon"] = pydap.model.BaseType(name="lon", data=np.arange(3.0), dimensions=("lon",))
        dataset["sst"] = grid
        transport = MockPyDAPTransport(datasets={URL: dataset})
        with pytest.raises(EndpointUnavailable, match="time, depth"):
            transport.open_endpoint(URL)

    def test_read_axis(self):
        transport = self.make_transport()
        handle = transport.open_endpoint(URL)
        np.testing.assert_array_equal(transport.read_axis(handle, "lon"), LONS)
        np.testing.assert_array_equal(transport.read_axis(handle, "lat"), LATS)
        np.testing.assert_array_equal(transport.read_axis(handle, "time"), TIMES)

    def test_read_attributes(self):
        transport = self.make_transport()
        handle = transport.open_endpoint(URL)
        assert transport.read_attributes(handle, "data")["units"] == "m-1"
        assert transport.read_attributes(handle, "time")["long_name"] == "End Time"

    def test_read_metadata(self):
        transport = self.make_transport()
        handle = transport.open_endpoint(URL)
        metadata = transport.read_metadata(handle)
        assert set(metadata) == {"global", "data", "time", "depth", "lat", "lon"}
        assert metadata["global"]["creator_name"] == "NASA GSFC OBPG"
        assert metadata["lat"]["units"] == "degrees_north"
        np.testing.assert_array_equal(metadata["data"]["actual_range"], [0.01, 6.4])

    def test_read_range(self):
        transport = self.make_transport()
        handle = transport.open_endpoint(URL)
        result = transport.read_range(handle, {"time": (1, 2, 1), "lat": (1, 3, 2), "lon": (4, 4, 1)})
        assert result.data.shape == (2, 1, 2, 1)
        np.testing.assert_array_equal(result.data.ravel(), [10104, 10304, 20104, 20304])
        np.testing.assert_array_equal(result.axes["time"], TIMES[1:])
        np.testing.assert_array_equal(result.axes["lat"], [31.0, 33.0])
        np.testing.assert_array_equal(result.axes["lon"], [234.0])
        np.testing.assert_array_equal(result.axes["depth"], [0.0])

    def test_read_range_storage_order(self):
        transport = self.make_transport(dims=("time", "altitude", "lon", "lat"))
        handle = transport.open_endpoint(URL)
        result = transport.read_range(handle, {"time": (0, 0, 1), "lat": (2, 2, 1), "lon": (0, 1, 1)})
        assert result.data.shape == (1, 1, 2, 1)
        np.testing.assert_array_equal(result.data.ravel(), [200, 201])

    def test_read_range_unavailable(self):
        class FailingArray(object):
            def __getitem__(self, key):
                raise requests.exceptions.ReadTimeout("read timed out")

        transport = self.make_transport()
        handle = transport.open_endpoint(URL)
        with pytest.raises(EndpointUnavailable, match="read timed out"):
            transport._fetch(handle, FailingArray(), slice(None))
