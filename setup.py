"""
tdsgrid module
"""

import sys

# Always prefer setuptools over distutils
from setuptools import find_packages, setup

# get version
sys.path.insert(0, "tdsgrid")
import version

__version__ = version.version()

install_requires = [
    "numpy>=1.14",
    "pandas>=0.22",
    "traitlets>=4.3",
    "xarray>=0.10",
    "requests>=2.18",
    "lazy-import>=0.2.2",
    "beautifulsoup4>=4.6",
    "lxml>=4.2",
    "pydap>=3.3",
    "webob",
]

extras_require = {
    "dev": [
        "pytest>=5.0",
        "pytest-cov>=2.5.1",
        "pytest-html>=1.7.0",
        "black",
    ],
}

# set long description to readme
with open("README.MD") as f:
    long_description = f.read()

setup(
    name="tdsgrid",
    version=__version__,
    description="Time period grids and point time series from THREDDS/OPeNDAP satellite data catalogs",
    author="Creare",
    license="APACHE 2.0",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: GIS",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
    ],
    packages=find_packages(),
    python_requires=">=3.6",
    install_requires=install_requires,
    extras_require=extras_require,
    long_description=long_description,
    long_description_content_type="text/markdown",
)
