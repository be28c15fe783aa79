"""
tdsgrid Settings
"""

import os
import json
from json import JSONDecodeError
from copy import deepcopy
import logging

from tdsgrid import version

_logger = logging.getLogger(__name__)

# Settings Defaults
DEFAULT_SETTINGS = {
    # tdsgrid core settings
    "DEBUG": False,
    "ROOT_PATH": os.path.join(os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~")), ".config", "tdsgrid"),
    "AUTOSAVE_SETTINGS": False,
    "LOG_TO_FILE": False,
    "LOG_FILE_PATH": os.path.join(
        os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~")), "tdsgrid", "logs", "tdsgrid.log"
    ),
    "MULTITHREADING": False,
    "N_THREADS": 8,
    "TDSGRID_VERSION": version.semver(),
    # remote access
    "HTTP_TIMEOUT": 120,  # seconds, applied to every catalog and OPeNDAP request
    # discovery
    "KNOWN_TIME_PERIODS": None,  # None means every token in tdsgrid.core.time_periods.TIME_PERIODS
    "END_TIME_MIDNIGHT_CORRECTION": True,
    "DEFAULT_MISSING_VALUE": -1.0e34,
}


class TdsGridSettings(dict):
    """
    Persistently stored tdsgrid settings

    tdsgrid settings are persistently stored in a ``settings.json`` file created at runtime.
    By default, tdsgrid will look for a settings json file in the users
    home directory (``~/.config/tdsgrid/settings.json``), or $XDG_CONFIG_HOME/tdsgrid/settings.json.

    Default settings can be overridden or extended by:
      * editing the ``settings.json`` file in the settings directory
      * creating a ``settings.json`` in the current working directory (i.e. ``./settings.json``)

    If ``settings.json`` files exist in multiple places, tdsgrid will load settings in the following order,
    overwriting previously loaded settings in the process (i.e. highest numbered settings file prefered):
      1. tdsgrid settings defaults
      2. settings directory  (``~/.config/tdsgrid/settings.json``  or ``$XDG_CONFIG_HOME/tdsgrid/settings.json``)
      3. current working directory settings (``./settings.json``)

    :attr:`settings.settings_path` shows the path of the last loaded settings file (e.g. the active settings file).
    To persistently update the active settings file as changes are made at runtime,
    set the ``settings['AUTOSAVE_SETTINGS']`` field to ``True``. The active setting file can be persistently
    saved at any time using :meth:`settings.save`.

    The default settings are shown below:

    Attributes
    ----------
    ROOT_PATH : str
        Path to primary tdsgrid working directory. Defaults to ``~/.config/tdsgrid``.
    AUTOSAVE_SETTINGS: bool
        Save settings automatically as they are changed during runtime. Defaults to ``False``.
    LOG_TO_FILE : bool
        Attach a file handler to the ``tdsgrid`` logger when a :class:`tdsgrid.GridDataSet` is created.
    LOG_FILE_PATH : str
        Log file used when ``LOG_TO_FILE`` is True.
    MULTITHREADING: bool
        Open the time period endpoints of a catalog in parallel during discovery. Defaults to ``False``.
    N_THREADS: int
        Number of threads to use (only if MULTITHREADING is True). Defaults to ``8``.
    HTTP_TIMEOUT : float
        Timeout in seconds for every catalog and OPeNDAP request. Defaults to ``120``.
    KNOWN_TIME_PERIODS : list, None
        Time period tokens (e.g. ``['1day', '8day']``) accepted during discovery. ``None`` accepts every known token.
    END_TIME_MIDNIGHT_CORRECTION : bool
        Default for the per-endpoint correction that moves whole-day end times stored as ``23:59:59``
        to the following midnight before centering. Defaults to ``True``.
    DEFAULT_MISSING_VALUE : float
        Missing value used when a grid variable declares neither ``missing_value`` nor ``_FillValue``.
    """

    def __init__(self):
        self._loaded = False

        # call dict init
        super(TdsGridSettings, self).__init__()

        # load settings from default locations
        self.load()

        # set loaded flag
        self._loaded = True

    def __setitem__(self, key, value):

        # get old value if it exists
        try:
            old_val = deepcopy(self[key])
        except KeyError:
            old_val = None

        super(TdsGridSettings, self).__setitem__(key, value)

        # save settings file if value has changed
        if self._loaded and self["AUTOSAVE_SETTINGS"] and old_val != value:
            self.save()

    def __getitem__(self, key):

        # return none if the parameter does not exist
        try:
            return super(TdsGridSettings, self).__getitem__(key)
        except KeyError:
            return None

    def _load_defaults(self):
        """Load default settings"""

        for key in DEFAULT_SETTINGS:
            self[key] = DEFAULT_SETTINGS[key]

    def _load_user_settings(self, path=None, filename="settings.json"):
        """Load user settings from settings.json file

        Parameters
        ----------
        path : str
            Full path to containing directory of settings file
        filename : str
            Filename of custom settings file
        """

        # custom file path - only used if path is not None
        filepath = os.path.join(path, filename) if path is not None else None

        # home path location is in the ROOT_PATH
        root_filepath = os.path.join(self["ROOT_PATH"], filename)

        # cwd path
        cwd_filepath = os.path.join(os.getcwd(), filename)

        # set settings path to default to start
        self._settings_filepath = root_filepath

        if path is not None and not os.path.exists(path):
            raise ValueError("Input tdsgrid settings path does not exist: {}".format(path))

        # order of paths to import settings - the later settings will overwrite earlier ones
        filepath_choices = [root_filepath, cwd_filepath, filepath]

        for p in filepath_choices:
            json_settings = None

            if p is not None and os.path.exists(p):

                try:
                    with open(p, "r") as f:
                        json_settings = json.load(f)
                except JSONDecodeError:

                    # if the root_filepath settings file is broken, raise
                    if p == root_filepath:
                        raise
                    _logger.warning("Ignoring malformed settings file '%s'", p)

                if json_settings is not None:
                    for key in json_settings:
                        self[key] = json_settings[key]

                    # save this path as the active
                    self._settings_filepath = p

    @property
    def settings_path(self):
        """Path to the last loaded ``settings.json`` file

        Returns
        -------
        str
            Path to the last loaded ``settings.json`` file
        """
        return self._settings_filepath

    @property
    def defaults(self):
        """
        Show the tdsgrid default settings
        """
        return DEFAULT_SETTINGS

    def save(self, filepath=None):
        """
        Save current settings to active settings file

        :attr:`settings.settings_path` shows the path to the currently active settings file

        Parameters
        ----------
        filepath : str, optional
            Path to settings file to save. Defaults to :attr:`self.settings_filepath`
        """

        # custom filepath
        if filepath is not None:
            self._settings_filepath = filepath

        # if no settings path is found, create
        if not os.path.exists(self._settings_filepath):
            os.makedirs(os.path.dirname(self._settings_filepath), exist_ok=True)

        with open(self._settings_filepath, "w") as f:
            json.dump(self, f, indent=4)

    def reset(self):
        """
        Reset settings to defaults.

        This method will ignore the value in :attr:`AUTOSAVE_SETTINGS`.
        To persistenly reset settings to defaults, call :meth:`settings.save()` after this method.
        """

        # ignore autosave
        self["AUTOSAVE_SETTINGS"] = False

        # clear all values
        self.clear()

        # load default settings
        self._load_defaults()

    def load(self, path=None, filename="settings.json"):
        """
        Load a new settings file to be active

        :attr:`settings.settings_path` shows the path to the currently active settings file

        Parameters
        ----------
        path : str, optional
            Path to directory which contains the settings file. Defaults to :attr:`DEFAULT_SETTINGS['ROOT_PATH']`
        filename : str, optional
            Filename of the settings file. Defaults to 'settings.json'
        """
        # load default settings
        self._load_defaults()

        # load user settings
        self._load_user_settings(path, filename)

        # it breaks things to set these to None, set back to default if set to None
        if self["ROOT_PATH"] is None:
            self["ROOT_PATH"] = DEFAULT_SETTINGS["ROOT_PATH"]

        if self["HTTP_TIMEOUT"] is None:
            self["HTTP_TIMEOUT"] = DEFAULT_SETTINGS["HTTP_TIMEOUT"]

    def __enter__(self):
        # save original settings
        self._original = {k: v for k, v in self.items()}

    def __exit__(self, type, value, traceback):
        # restore original settings
        for k in list(self.keys()):
            if k not in self._original:
                del self[k]
        for k, v in self._original.items():
            self[k] = v


# load settings dict when module is loaded
settings = TdsGridSettings()
