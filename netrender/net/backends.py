# This file is part of netrender. See LICENSE file for license information.

import functools
import logging
from enum import Enum
from typing import Union

from netrender.exceptions import BackendNotFoundError
from netrender.net.dhcpcd import available as dhcpcd_available
from netrender.net.eni import available as eni_available
from netrender.net.netplan import available as netplan_available

LOG = logging.getLogger(__name__)


class Backend(Enum):
    NETPLAN = "netplan"
    IFUPDOWN = "ifupdown"
    DHCPCD = "dhcpcd"
    # rendered alongside another backend, never detected on its own
    PPPOE = "pppoe"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: Union[str, "Backend"]) -> "Backend":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            raise BackendNotFoundError(
                "Unknown network backend %r, expected one of: %s"
                % (name, ", ".join(b.value for b in cls))
            ) from None


# first available wins
DEFAULT_PRIORITY = [
    (Backend.NETPLAN, netplan_available),
    (Backend.DHCPCD, dhcpcd_available),
    (Backend.IFUPDOWN, eni_available),
]


@functools.lru_cache()
def detect_backend(target=None) -> Backend:
    """Return the network backend managing the host under target.

    The result is cached per target for the life of the process.
    """
    for backend, available in DEFAULT_PRIORITY:
        if available(target=target):
            LOG.debug("Detected network backend %s", backend.value)
            return backend
    LOG.debug(
        "No network backend found, searched: %s",
        ", ".join(b.value for b, _ in DEFAULT_PRIORITY),
    )
    return Backend.UNKNOWN
