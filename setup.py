# This file is part of netrender. See LICENSE file for license information.

# Distutils magic for netrender

import os
import sys

import setuptools

# Python-path here is a little unpredictable as setup.py could be run
# from a directory other than the root of the repo, so ensure we can find
# our utils
sys.path.insert(0, os.path.dirname(os.path.realpath(__file__)))
# isort: off
from setup_utils import get_version, read_requires  # noqa: E402

# isort: on
del sys.path[0]

requirements = read_requires()
test_requirements = [
    r for r in read_requires("test-requirements.txt") if r not in requirements
]

setuptools.setup(
    name="netrender",
    version=get_version(),
    description="Render and apply Linux network interface configuration",
    package_data={
        "netrender": ["config/schemas/*.json", "net/templates/*.tmpl"],
    },
    packages=setuptools.find_packages(exclude=["tests.*", "tests"]),
    license="Dual-licensed under GPLv3 or Apache 2.0",
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={"test": test_requirements},
    entry_points={
        "console_scripts": [
            "netrender = netrender.cmd.main:main",
        ],
    },
)
