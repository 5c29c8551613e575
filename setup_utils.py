import os
import re
from typing import List

ROOT = os.path.dirname(os.path.realpath(__file__))


def is_f(p: str) -> bool:
    return os.path.isfile(p)


def version_to_pep440(version: str) -> str:
    # a git describe style 0.3.0-15-g7f97aee24 is invalid under PEP 440.
    # If we replace the first - with a + that should give us a valid version.
    return version.replace("-", "+", 1)


def get_version() -> str:
    with open(os.path.join(ROOT, "netrender", "version.py")) as fp:
        match = re.search(r'^__VERSION__ = "([^"]+)"', fp.read(), re.M)
    if not match:
        raise RuntimeError("No __VERSION__ in netrender/version.py")
    return version_to_pep440(match.group(1))


def read_requires(fname: str = "requirements.txt") -> List[str]:
    deps = []
    with open(os.path.join(ROOT, fname)) as fp:
        for line in fp:
            line = line.split("#", 1)[0].strip()
            if line and not line.startswith("-r"):
                deps.append(line)
    return deps
