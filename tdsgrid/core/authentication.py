"""
tdsgrid Authentication

Credentials for THREDDS servers that require a login are stored in :attr:`tdsgrid.settings`
under the keys ``username@<hostname>`` and ``password@<hostname>``.
"""


import getpass
import logging

import requests
import traitlets as tl

from tdsgrid.core.settings import settings
from tdsgrid.core.utils import cached_property

_log = logging.getLogger(__name__)


def set_credentials(hostname, uname=None, password=None):
    """Set authentication credentials for a remote host in the :class:`tdsgrid.settings`.

    Parameters
    ----------
    hostname : str
        Hostname for `uname` and `password`.
    uname : str, optional
        Username to store in settings for `hostname`.
        If no username is provided and the username does not already exist in the settings,
        the user will be prompted to enter one.
    password : str, optional
        Password to store in settings for `hostname`
        If no password is provided and the password does not already exist in the settings,
        the user will be prompted to enter one.
    """

    if hostname is None or hostname == "":
        raise ValueError("`hostname` must be defined")

    # see whats stored in settings already
    u_settings = settings.get("username@{}".format(hostname))
    p_settings = settings.get("password@{}".format(hostname))

    # get username from 1. function input 2. settings 3. python input()
    u = uname or u_settings or getpass.getpass("Username: ")
    p = password or p_settings or getpass.getpass()

    settings["username@{}".format(hostname)] = u
    settings["password@{}".format(hostname)] = p

    _log.debug("Set credentials for hostname {}".format(hostname))


class RequestsSessionMixin(tl.HasTraits):
    """Adds a :class:`requests.Session`, authenticated from the settings when credentials exist for `hostname`."""

    hostname = tl.Unicode(allow_none=False)
    auth_required = tl.Bool(default_value=False)

    @property
    def username(self):
        """Returns username stored in settings for accessing `self.hostname`.

        Raises
        ------
        ValueError
            Raises a ValueError if not username is stored in settings for `self.hostname`
        """
        key = "username@{}".format(self.hostname)
        username = settings.get(key)
        if not username:
            raise ValueError(
                "No username found for hostname '{0}'. Use `{1}.set_credentials(username='<username>', password='<password>') to store credentials for this host".format(
                    self.hostname, self.__class__.__name__
                )
            )

        return username

    @property
    def password(self):
        """Returns password stored in settings for accessing `self.hostname`.

        Raises
        ------
        ValueError
            Raises a ValueError if not password is stored in settings for `self.hostname`
        """
        key = "password@{}".format(self.hostname)
        password = settings.get(key)
        if not password:
            raise ValueError(
                "No password found for hostname {0}. Use `{1}.set_credentials(username='<username>', password='<password>') to store credentials for this host".format(
                    self.hostname, self.__class__.__name__
                )
            )

        return password

    @cached_property
    def session(self):
        """Requests Session object for making calls to remote `self.hostname`

        Returns
        -------
        :class:requests.Session
        """
        return self._create_session()

    def set_credentials(self, username=None, password=None):
        """Shortcut to :func:`tdsgrid.core.authentication.set_credentials` using :attr:`self.hostname`"""
        return set_credentials(self.hostname, uname=username, password=password)

    def _create_session(self):
        s = requests.Session()

        try:
            s.auth = (self.username, self.password)
        except ValueError as e:
            if self.auth_required:
                raise e
            _log.debug("No auth provided for session to '%s'", self.hostname)

        return s
