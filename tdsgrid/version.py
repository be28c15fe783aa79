"""tdsgrid Version

Attributes
----------
VERSION_INFO : OrderedDict
    dict of tdsgrid version {('MAJOR': int), ('MINOR': int), ('HOTFIX': int)}
VERSION : tuple of int
    (MAJOR, MINOR, HOTFIX)
"""

import subprocess
import os
from collections import OrderedDict

##############
## UPDATE VERSION HERE
##############
MAJOR = 0
MINOR = 3
HOTFIX = 0
##############


VERSION_INFO = OrderedDict([("MAJOR", MAJOR), ("MINOR", MINOR), ("HOTFIX", HOTFIX)])

VERSION = (VERSION_INFO["MAJOR"], VERSION_INFO["MINOR"], VERSION_INFO["HOTFIX"])


def semver():
    """Return semantic version of current tdsgrid installation

    Returns
    -------
    str
        Semantic version of the current tdsgrid installation
    """
    return ".".join([str(v) for v in VERSION])


def version():
    """Retrieve tdsgrid semantic version as string

    Returns
    -------
    str
        Semantic version if outside git repository
        Returns `git describe --always` if inside the git repository
    """

    version_full = semver()
    CWD = os.path.dirname(__file__)
    got_git = os.path.exists(os.path.join(os.path.dirname(__file__), "..", ".git"))
    if not got_git:
        return version_full
    try:
        version_full = subprocess.check_output(["git", "describe", "--always"], cwd=CWD).strip().decode("ascii")
        version_full = version_full.replace("-", "+", 1).replace("-", ".")  # PEP440
    except Exception as e:
        print("Could not determine tdsgrid version from git repo.\n" + str(e))
        version_full = semver()

    return version_full
