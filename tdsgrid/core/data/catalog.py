"""
THREDDS catalog source

Reads a THREDDS ``catalog.xml`` and lists the datasets it exposes through its OPeNDAP service, e.g.::

    <catalog xmlns="http://www.unidata.ucar.edu/namespaces/thredds/InvCatalog/v1.0" name="Satellite Data Server">
      <service name="all" serviceType="Compound" base="">
        <service name="ncdods" serviceType="OPENDAP" base="/thredds/dodsC/" />
      </service>
      <dataset name="Diffuse Attenuation coefficient at 490nm (Turbidity)">
        <dataset name="1-day" ID="satellite/MO/k490/1day" urlPath="satellite/MO/k490/1day" />
        <dataset name="8-day" ID="satellite/MO/k490/8day" urlPath="satellite/MO/k490/8day" />
      </dataset>
    </catalog>

Datasets may be nested at any depth; every ``dataset`` element with a ``urlPath`` attribute is an entry.
"""

import logging
from collections import namedtuple
from urllib.parse import urlparse

import requests
import traitlets as tl
from lazy_import import lazy_module

from tdsgrid.core import authentication
from tdsgrid.core.settings import settings
from tdsgrid.core.utils import cached_property
from tdsgrid.core.exceptions import ConfigurationError

# Optional dependencies
bs4 = lazy_module("bs4")

_logger = logging.getLogger(__name__)

DatasetCatalogEntry = namedtuple("DatasetCatalogEntry", ["url_path", "time_period_token", "name"])


def time_period_token(url_path):
    """Trailing path segment of a catalog urlPath, e.g. 'satellite/MO/k490/8day' -> '8day'"""
    po = url_path.rfind("/")
    if po < 0:
        po = url_path.rfind("\\")
    return url_path[po + 1 :]


class ThreddsCatalog(authentication.RequestsSessionMixin):
    """A THREDDS catalog document.

    Attributes
    ----------
    url : str
        URL of the catalog directory (e.g. ``https://thredds1.pfeg.noaa.gov/thredds/Satellite/aggregsatMO/k490/``)
        or of the ``catalog.xml`` itself.
    text : str, optional
        The catalog document. If not given, it is downloaded from :attr:`catalog_url`.
    timeout : float
        Request timeout in seconds. Defaults to ``settings['HTTP_TIMEOUT']``.
    """

    url = tl.Unicode()
    text = tl.Unicode(allow_none=True, default_value=None)
    timeout = tl.Float()

    @tl.default("timeout")
    def _timeout_default(self):
        return float(settings["HTTP_TIMEOUT"])

    @tl.default("hostname")
    def _hostname_default(self):
        return urlparse(self.url).netloc

    def __repr__(self):
        return "ThreddsCatalog(%s)" % self.catalog_url

    @property
    def catalog_url(self):
        """URL of the catalog.xml document"""
        if self.url.endswith(".xml"):
            return self.url
        return self.url.rstrip("/") + "/catalog.xml"

    @property
    def server_url(self):
        """scheme://host part of the catalog url"""
        p = urlparse(self.url)
        return "%s://%s" % (p.scheme, p.netloc)

    def _fetch(self):
        url = self.catalog_url
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ConfigurationError("Could not read THREDDS catalog '%s': %s" % (url, e))
        if r.status_code != 200:
            raise ConfigurationError("Could not read THREDDS catalog '%s', status code %d" % (url, r.status_code))
        return r.text

    @cached_property
    def document(self):
        """The parsed catalog (:class:`bs4.BeautifulSoup`)"""
        text = self.text if self.text is not None else self._fetch()
        return bs4.BeautifulSoup(text, "xml")

    def array_service_base_path(self):
        """Base path of the catalog's OPeNDAP service, e.g. '/thredds/dodsC/'

        Raises
        ------
        ConfigurationError
            If the catalog has no service with ``serviceType="OPENDAP"`` and a ``base`` attribute.
        """
        for service in self.document.find_all("service"):
            if service.get("serviceType", "").upper() == "OPENDAP" and service.has_attr("base"):
                return service["base"]
        raise ConfigurationError(
            "THREDDS catalog '%s' has no service with serviceType='OPENDAP' and a base attribute" % self.catalog_url
        )

    def list_dataset_entries(self):
        """All the dataset entries with a urlPath

        Returns
        -------
        list of DatasetCatalogEntry
        """
        entries = []
        for node in self.document.find_all("dataset", attrs={"urlPath": True}):
            url_path = node["urlPath"]
            entries.append(DatasetCatalogEntry(url_path, time_period_token(url_path), node.get("name", "")))
        _logger.debug("%d dataset entries in %s", len(entries), self.catalog_url)
        return entries

    def endpoint_url(self, url_path):
        """OPeNDAP url of a dataset entry, e.g.
        'https://thredds1.pfeg.noaa.gov' + '/thredds/dodsC/' + 'satellite/MO/k490/1day'
        """
        base = self.array_service_base_path()
        if base.startswith("http://") or base.startswith("https://"):
            return base + url_path
        return self.server_url + base + url_path
