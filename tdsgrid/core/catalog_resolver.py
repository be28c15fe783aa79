"""
Catalog discovery

Turns the dataset entries of a THREDDS catalog into the time period endpoints that can be queried. Each entry is
processed independently; an entry that cannot be used is skipped and reported in the diagnostics, it never stops the
discovery of the other entries.
"""

import time
import logging
from collections import namedtuple

import traitlets as tl

from tdsgrid.core.settings import settings
from tdsgrid.core.utils import suggest_low_high
from tdsgrid.core.exceptions import NotFoundError
from tdsgrid.core.time_periods import TIME_PERIODS, get_time_period, override_time_period
from tdsgrid.core.endpoint import TimePeriodEndpoint
from tdsgrid.core.data.attributes import Attributes
from tdsgrid.core.data.transport import Transport, ROLES
from tdsgrid.core.managers.multi_threading import thread_manager

_logger = logging.getLogger(__name__)

Diagnostic = namedtuple("Diagnostic", ["url_path", "url", "status", "message", "elapsed"])
Diagnostic.__doc__ = """Why a catalog entry did not become an endpoint.

status is one of 'unknown_time_period', 'unavailable', 'no_times', 'duplicate', 'metadata_unavailable'.
elapsed is the time in seconds spent on the entry.
"""

_EntryOutcome = namedtuple("_EntryOutcome", ["entry", "endpoint", "diagnostic", "open_time", "index_time"])

# summary sentences that describe the units; the units are reported separately
_UNITS_SENTENCES = (" The units of the data are ", " Units are ")


class DiscoveryContext(tl.HasTraits):
    """Descriptive metadata shared by all the time period endpoints of a dataset.

    It is captured once, from the first usable endpoint, and reused for the others.

    Attributes
    ----------
    metadata : dict
        'global', 'data', 'time', 'depth', 'lat', 'lon' -> :class:`tdsgrid.core.data.attributes.Attributes`
    source_url : str
        Url of the endpoint the metadata was read from.
    """

    metadata = tl.Dict(default_value=None, allow_none=True)
    source_url = tl.Unicode("")

    @property
    def captured(self):
        return self.metadata is not None

    def capture(self, transport, endpoint):
        """Read the descriptive metadata from endpoint, if it has not been captured yet.

        Returns
        -------
        bool
            True if the metadata was read from this endpoint.
        """
        if self.captured:
            return False
        metadata = transport.read_metadata(endpoint.handle)
        for key in ("global", "data") + ROLES:
            metadata.setdefault(key, Attributes())

        # the time axis values are converted to centered times
        metadata["time"].set("long_name", "Centered Time")
        self.metadata = metadata
        self.source_url = endpoint.url
        _logger.debug("Captured dataset metadata from %s", endpoint.url)
        return True

    def attributes(self, key):
        """Copy of one group of attributes ('global', 'data', or an axis role)"""
        if not self.captured:
            return Attributes()
        return self.metadata.get(key, Attributes()).clone()

    def _global_string(self, name):
        if not self.captured:
            return None
        return self.metadata["global"].get_string(name)

    @property
    def title(self):
        title = self._global_string("title")
        return title.strip() if title else ""

    @property
    def summary(self):
        """Global summary, without the sentence describing the units"""
        summary = self._global_string("summary")
        if summary is None:
            return ""
        for sentence in _UNITS_SENTENCES:
            po1 = summary.find(sentence)
            if po1 >= 0:
                po2 = summary.find(".", po1 + len(sentence))
                if po2 > 0:
                    summary = summary[:po1] + summary[po2 + 1 :]
                break
        return summary

    @property
    def units(self):
        if not self.captured:
            return "(unknown units)"
        return self.metadata["data"].get_string("units") or "(unknown units)"

    @property
    def courtesy(self):
        return self._global_string("contributor_name") or self._global_string("creator_name") or ""

    @property
    def keywords(self):
        return self._global_string("keywords") or ""

    @property
    def keywords_vocabulary(self):
        return self._global_string("keywords_vocabulary") or ""

    @property
    def references(self):
        return self._global_string("references") or ""

    @property
    def actual_range(self):
        """(min, max) of the data from the 'actual_range' attribute, or None"""
        if not self.captured:
            return None
        actual_range = self.metadata["data"].get_array("actual_range")
        if actual_range is None or actual_range.size != 2:
            return None
        return float(actual_range[0]), float(actual_range[1])

    @property
    def palette_range(self):
        """Suggested (min, max) for displaying the data, from 'actual_range'; None if unknown"""
        actual_range = self.actual_range
        if actual_range is None:
            return None
        return suggest_low_high(*actual_range)


class DiscoveryReport(tl.HasTraits):
    """Result of a discovery pass.

    Attributes
    ----------
    endpoints : list of TimePeriodEndpoint
        Usable endpoints in catalog order. Period labels are unique.
    diagnostics : list of Diagnostic
        Entries that were skipped, and why.
    context : DiscoveryContext
        Shared descriptive metadata.
    open_time, index_time, fail_time : float
        Total seconds spent opening endpoints, reading their axes, and on entries that failed.
    elapsed : float
        Total seconds of the discovery pass.
    n_times : int
        Total number of times over all endpoints.
    """

    endpoints = tl.List()
    diagnostics = tl.List()
    context = tl.Instance(DiscoveryContext, args=())
    open_time = tl.Float(0.0)
    index_time = tl.Float(0.0)
    fail_time = tl.Float(0.0)
    elapsed = tl.Float(0.0)
    n_times = tl.Int(0)

    @property
    def period_labels(self):
        return [e.period_label for e in self.endpoints]

    def get_endpoint(self, period_label):
        """Endpoint for a period label

        Raises
        ------
        NotFoundError
        """
        for endpoint in self.endpoints:
            if endpoint.period_label == period_label:
                return endpoint
        raise NotFoundError(
            "Time period '%s' not found. Available time periods are: %s" % (period_label, ", ".join(self.period_labels))
        )


class CatalogResolver(tl.HasTraits):
    """Discovers the time period endpoints listed in a catalog.

    Attributes
    ----------
    catalog : tdsgrid.core.data.catalog.ThreddsCatalog
        Catalog source (anything with ``list_dataset_entries``, ``array_service_base_path`` and ``endpoint_url``).
    transport : tdsgrid.core.data.transport.Transport
        Used to open and read each endpoint.
    internal_name : str
        Logical name of the dataset, e.g. 'TMOk490'. Its suffix selects the 25/33 hour override.
    known_tokens : list
        Accepted time period tokens. Defaults to ``settings['KNOWN_TIME_PERIODS']``, or every known token.
    multithreading : bool
        Process the entries in parallel. Defaults to ``settings['MULTITHREADING']``.
    midnight_correction : bool
        Default for each endpoint's midnight correction. Defaults to ``settings['END_TIME_MIDNIGHT_CORRECTION']``.
    """

    catalog = tl.Any()
    transport = tl.Instance(Transport)
    internal_name = tl.Unicode("")
    known_tokens = tl.List(tl.Unicode())
    multithreading = tl.Bool()
    midnight_correction = tl.Bool()

    @tl.default("known_tokens")
    def _known_tokens_default(self):
        return list(settings["KNOWN_TIME_PERIODS"] or TIME_PERIODS.keys())

    @tl.default("multithreading")
    def _multithreading_default(self):
        return bool(settings["MULTITHREADING"])

    @tl.default("midnight_correction")
    def _midnight_correction_default(self):
        return bool(settings["END_TIME_MIDNIGHT_CORRECTION"])

    def resolve(self):
        """Run discovery over every catalog entry.

        Returns
        -------
        DiscoveryReport

        Raises
        ------
        ConfigurationError
            If the catalog cannot be read or has no OPeNDAP service.
        """
        t0 = time.time()
        _logger.info("Discovering time periods of %s in %s", self.internal_name, self.catalog)

        # both raise ConfigurationError, before any entry is tried
        entries = self.catalog.list_dataset_entries()
        self.catalog.array_service_base_path()

        outcomes = thread_manager.map(self._resolve_entry, entries, multithreading=self.multithreading)

        report = DiscoveryReport()
        for outcome in outcomes:
            report.open_time += outcome.open_time
            report.index_time += outcome.index_time
            self._merge(report, outcome)

        report.elapsed = time.time() - t0
        _logger.info(
            "Discovery of %s done: time periods [%s], %d skipped, %d times, open=%.3fs index=%.3fs fail=%.3fs total=%.3fs",
            self.internal_name,
            ", ".join(report.period_labels),
            len(report.diagnostics),
            report.n_times,
            report.open_time,
            report.index_time,
            report.fail_time,
            report.elapsed,
        )
        return report

    def _merge(self, report, outcome):
        entry, endpoint = outcome.entry, outcome.endpoint

        def skip(status, message, elapsed=0.0):
            report.diagnostics.append(Diagnostic(entry.url_path, endpoint.url, status, message, elapsed))
            _logger.warning("Skipping %s: %s", entry.url_path, message)

        if outcome.diagnostic is not None:
            report.diagnostics.append(outcome.diagnostic)
            if outcome.diagnostic.status != "unknown_time_period":
                report.fail_time += outcome.diagnostic.elapsed
            return

        if len(endpoint.temporal_index) == 0:
            skip("no_times", "no valid times in %s" % endpoint.url)
            return

        if endpoint.period_label in report.period_labels:
            skip("duplicate", "duplicate time period '%s'" % endpoint.period_label)
            return

        if not report.context.captured:
            t0 = time.time()
            try:
                report.context.capture(self.transport, endpoint)
            except Exception as e:
                elapsed = time.time() - t0
                report.fail_time += elapsed
                skip("metadata_unavailable", "could not read metadata: %s" % e, elapsed)
                return

        report.endpoints.append(endpoint)
        report.n_times += len(endpoint.temporal_index)
        _logger.info("  %s: %d times in %s", endpoint.period_label, len(endpoint.temporal_index), endpoint.url)

    def _resolve_entry(self, entry):
        """Open one catalog entry. Never raises; failures are returned as a Diagnostic."""
        token = entry.time_period_token
        # a known token must also have a time period definition
        if token not in self.known_tokens or token not in TIME_PERIODS:
            message = "unrecognized time period '%s' for urlPath %s" % (token, entry.url_path)
            _logger.warning(message)
            return _EntryOutcome(entry, None, Diagnostic(entry.url_path, "", "unknown_time_period", message, 0.0), 0, 0)

        period = override_time_period(get_time_period(token), self.internal_name)
        url = ""
        t0 = time.time()
        open_time = index_time = 0.0
        try:
            url = self.catalog.endpoint_url(entry.url_path)
            handle = self.transport.open_endpoint(url)
            open_time = time.time() - t0

            t1 = time.time()
            endpoint = TimePeriodEndpoint.from_handle(
                self.transport, handle, period, url_path=entry.url_path, midnight_correction=self.midnight_correction
            )
            index_time = time.time() - t1
        except Exception as e:
            elapsed = time.time() - t0
            _logger.warning(
                "Could not open time period endpoint %s (%s) for %s, failTime=%.3fs: %s",
                url,
                period.label,
                self.internal_name,
                elapsed,
                e,
            )
            return _EntryOutcome(entry, None, Diagnostic(entry.url_path, url, "unavailable", str(e), elapsed), 0, 0)

        return _EntryOutcome(entry, endpoint, None, open_time, index_time)
