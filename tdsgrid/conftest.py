"""
Test Setup
"""

import copy
import pytest
from tdsgrid.core.settings import settings


def pytest_addoption(parser):
    """Add command line option to pytest
    Note you MUST invoke test as `pytest tdsgrid --integration` to use this option.

    Parameters
    ----------
    parser : _pytest.config.argparsing.Parser
    """
    # integration tests read from a live THREDDS server
    parser.addoption("--integration", action="store_true", default=False)


def pytest_runtest_setup(item):
    markers = [marker.name for marker in item.iter_markers()]
    if "integration" in markers and not item.config.getoption("--integration", default=False):
        pytest.skip("Integration test, use --integration to run")


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


original_settings = {}


def pytest_sessionstart(session):
    # save settings
    global original_settings
    original_settings = copy.copy(settings)

    settings["AUTOSAVE_SETTINGS"] = False


def pytest_sessionfinish(session, exitstatus):
    # restore settings
    keys = list(settings.keys())
    for key in keys:
        if key in original_settings:
            settings[key] = original_settings[key]
        else:
            del settings[key]
