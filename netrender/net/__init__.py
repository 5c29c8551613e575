# This file is part of netrender. See LICENSE file for license information.

import ipaddress
import logging
from typing import Callable, Union

LOG = logging.getLogger(__name__)


def maybe_get_address(convert: Callable, address: str, **kwargs):
    """Return convert(address, **kwargs), or False if it raises ValueError."""
    try:
        return convert(address, **kwargs)
    except ValueError:
        return False


def is_ip_address(address: str) -> bool:
    """Whether address is a single IPv4 or IPv6 address."""
    return bool(maybe_get_address(ipaddress.ip_address, address))


def is_ipv4_address(address: str) -> bool:
    return bool(maybe_get_address(ipaddress.IPv4Address, address))


def is_ip_network(address: str) -> bool:
    """Whether address is a network in CIDR notation, host bits allowed.

    'default' is not a network; callers special case it.
    """
    return bool(maybe_get_address(ipaddress.ip_network, address, strict=False))


def net_prefix_to_ipv4_mask(prefix: Union[int, str]) -> str:
    """Return the dotted IPv4 netmask of prefix, 24 -> 255.255.255.0"""
    return str(ipaddress.IPv4Network("0.0.0.0/%s" % prefix).netmask)
