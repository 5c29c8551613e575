# This file is part of netrender. See LICENSE file for license information.

__VERSION__ = "0.3.0"
_PACKAGED_VERSION = "@@PACKAGED_VERSION@@"

FEATURES = [
    # renders netplan, ifupdown, dhcpcd and pppd peer files
    "RENDER_NETPLAN",
    "RENDER_IFUPDOWN",
    "RENDER_DHCPCD",
    "RENDER_PPPOE",
]


def version_string():
    """Extract a version string from netrender."""
    if not _PACKAGED_VERSION.startswith("@@"):
        return _PACKAGED_VERSION
    return __VERSION__
