# This file is part of netrender. See LICENSE file for license information.
"""Normalize raw interface descriptions into immutable InterfaceConfig.

A raw description is a mapping using the caller facing keys (``interface``,
``vlanid``, ``ip_address``, ``dhcp`` ...). Normalizing decides the
addressing mode once, derives the configured interface name and rejects
contradicting fields, so renderers never have to re-check them.
"""

import logging
import re
from enum import Enum
from typing import (
    Any,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Tuple,
    Union,
)

from netrender import util
from netrender.config.schema import validate_interface_schema
from netrender.exceptions import AggregateError, ValidationError
from netrender.net import is_ip_address, is_ip_network, is_ipv4_address

LOG = logging.getLogger(__name__)

VLAN_ID_MIN = 1
VLAN_ID_MAX = 4094

IPV4_PREFIX_MAX = 32

# IFNAMSIZ less the trailing NUL
IFNAME_MAX_LEN = 15

# Any run of commas and/or whitespace separates two nameservers.
NAMESERVER_SEPARATORS = re.compile(r"[\s,]+")


class AddressingMode(Enum):
    STATIC = "static"
    DHCP = "dhcp"
    MANUAL = "manual"
    PPP = "ppp"


class Static(NamedTuple):
    address: str
    prefix: int
    gateway: Optional[str] = None
    mode: AddressingMode = AddressingMode.STATIC


class Dhcp(NamedTuple):
    mode: AddressingMode = AddressingMode.DHCP


class Manual(NamedTuple):
    mode: AddressingMode = AddressingMode.MANUAL


class Ppp(NamedTuple):
    provider: str
    physical_interface: str
    mode: AddressingMode = AddressingMode.PPP


Addressing = Union[Static, Dhcp, Manual, Ppp]


class Route(NamedTuple):
    to: str
    via: str


class InterfaceConfig(NamedTuple):
    """The normalized desired state of one interface."""

    interface: str
    ifname: str
    addressing: Addressing
    vlan_id: Optional[int] = None
    nameservers: Tuple[str, ...] = ()
    optional: bool = False
    noarp: bool = False
    routes: Tuple[Route, ...] = ()
    bridge_ports: Tuple[str, ...] = ()
    bridge_stp: Optional[bool] = None

    @property
    def mode(self) -> AddressingMode:
        return self.addressing.mode

    @property
    def is_vlan(self) -> bool:
        return self.vlan_id is not None

    @property
    def is_bridge(self) -> bool:
        return bool(self.bridge_ports)

    @property
    def is_ppp(self) -> bool:
        return self.mode is AddressingMode.PPP

    @property
    def ip_address(self) -> Optional[str]:
        return getattr(self.addressing, "address", None)

    @property
    def prefix(self) -> Optional[int]:
        return getattr(self.addressing, "prefix", None)

    @property
    def gateway(self) -> Optional[str]:
        return getattr(self.addressing, "gateway", None)

    @property
    def provider(self) -> Optional[str]:
        return getattr(self.addressing, "provider", None)

    @property
    def physical_interface(self) -> Optional[str]:
        return getattr(self.addressing, "physical_interface", None)

    @property
    def cidr(self) -> Optional[str]:
        if self.mode is not AddressingMode.STATIC:
            return None
        return "%s/%d" % (self.ip_address, self.prefix)


def parse_nameservers(
    value: Union[None, str, Iterable[str]],
) -> Tuple[str, ...]:
    """Return nameservers as an ordered tuple without duplicates.

    value may be a single string or a list of strings. Every string is
    split on any run of commas and whitespace, so
    "8.8.8.8, 1.1.1.1 1.2.2.1" gives three nameservers.
    """
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    tokens: List[str] = []
    for item in value:
        tokens.extend(t for t in NAMESERVER_SEPARATORS.split(item) if t)
    return tuple(util.uniq_list(tokens))


def _present(spec: Mapping, key: str) -> bool:
    return spec.get(key) is not None


def _addressing(spec: Mapping, name: str, errors: List[ValidationError]):
    static_fields = [
        f for f in ("ip_address", "prefix") if _present(spec, f)
    ]
    flag_fields = [f for f in ("dhcp", "manual", "ppp") if spec.get(f)]
    requested = flag_fields + (["static"] if static_fields else [])
    if len(requested) > 1:
        errors.append(
            ValidationError(
                name,
                flag_fields + static_fields,
                "conflicting addressing modes requested: %s"
                % ", ".join(requested),
            )
        )
        return None

    if static_fields:
        return _static_addressing(spec, name, errors)
    if spec.get("dhcp"):
        return Dhcp()
    if spec.get("ppp"):
        missing = [
            f for f in ("provider", "physical_interface") if not spec.get(f)
        ]
        for field in missing:
            errors.append(
                ValidationError(name, field, "required when ppp is set")
            )
        if missing:
            return None
        return Ppp(spec["provider"], spec["physical_interface"])
    if not spec.get("manual"):
        LOG.debug("No addressing requested for %s, using manual", name)
    return Manual()


def _static_addressing(
    spec: Mapping, name: str, errors: List[ValidationError]
):
    address = spec.get("ip_address")
    prefix = spec.get("prefix")
    found_errors = len(errors)
    if address is None:
        errors.append(
            ValidationError(name, "ip_address", "required when prefix is set")
        )
    elif not is_ipv4_address(address):
        errors.append(
            ValidationError(
                name, "ip_address", "%r is not an IPv4 address" % address
            )
        )
    if prefix is None:
        errors.append(
            ValidationError(name, "prefix", "required when ip_address is set")
        )
    elif not 0 <= prefix <= IPV4_PREFIX_MAX:
        errors.append(
            ValidationError(
                name,
                "prefix",
                "%s is outside 0..%d" % (prefix, IPV4_PREFIX_MAX),
            )
        )
    gateway = spec.get("gateway")
    if gateway is not None and not is_ipv4_address(gateway):
        errors.append(
            ValidationError(
                name, "gateway", "%r is not an IPv4 address" % gateway
            )
        )
    if len(errors) != found_errors:
        return None
    return Static(address, prefix, gateway)


def _routes(spec: Mapping, name: str, errors: List[ValidationError]):
    routes = []
    for idx, route in enumerate(spec.get("routes") or []):
        if route["to"] != "default" and not is_ip_network(route["to"]):
            errors.append(
                ValidationError(
                    name,
                    "routes.%d.to" % idx,
                    "%r is neither 'default' nor a network" % route["to"],
                )
            )
        if not is_ip_address(route["via"]):
            errors.append(
                ValidationError(
                    name,
                    "routes.%d.via" % idx,
                    "%r is not an IP address" % route["via"],
                )
            )
        routes.append(Route(route["to"], route["via"]))
    return tuple(routes)


def _bridge(spec: Mapping, name: str, ifname: str, errors):
    ports = tuple(spec.get("bridge_ports") or ())
    opts = spec.get("bridge_opts")
    if not ports:
        if opts is not None:
            errors.append(
                ValidationError(
                    name, "bridge_opts", "only valid with bridge_ports"
                )
            )
        return (), None
    for port in sorted(set(p for p in ports if ports.count(p) > 1)):
        errors.append(
            ValidationError(
                name, "bridge_ports", "%s is listed more than once" % port
            )
        )
    if ifname in ports or name in ports:
        errors.append(
            ValidationError(
                name, "bridge_ports", "a bridge cannot be its own port"
            )
        )
    stp = bool((opts or {}).get("stp", False))
    return ports, stp


def _normalize(
    spec: Any,
) -> Tuple[Optional[InterfaceConfig], List[ValidationError]]:
    if not isinstance(spec, Mapping):
        return None, [
            ValidationError(
                None,
                "<spec>",
                "expected a mapping, got %s" % type(spec).__name__,
            )
        ]
    name = spec.get("interface")
    if not isinstance(name, str):
        name = None
    errors = [
        ValidationError(name, problem.path, problem.message)
        for problem in validate_interface_schema(dict(spec))
    ]
    if errors:
        # field types are unreliable past this point
        return None, errors

    vlan_id = spec.get("vlanid")
    if vlan_id is not None and not VLAN_ID_MIN <= vlan_id <= VLAN_ID_MAX:
        errors.append(
            ValidationError(
                name,
                "vlanid",
                "%s is outside %d..%d" % (vlan_id, VLAN_ID_MIN, VLAN_ID_MAX),
            )
        )
    ifname = spec.get("ifname")
    if not ifname:
        ifname = name if vlan_id is None else "%s.%d" % (name, vlan_id)
    if len(ifname) > IFNAME_MAX_LEN:
        errors.append(
            ValidationError(
                name,
                "ifname",
                "%s is longer than %d characters" % (ifname, IFNAME_MAX_LEN),
            )
        )

    addressing = _addressing(spec, name, errors)
    mode = addressing.mode if addressing is not None else None

    if _present(spec, "gateway") and mode not in (None, AddressingMode.STATIC):
        errors.append(
            ValidationError(
                name, "gateway", "only valid with ip_address and prefix"
            )
        )
    if not spec.get("ppp"):
        for field in ("provider", "physical_interface"):
            if _present(spec, field):
                errors.append(
                    ValidationError(name, field, "only valid with ppp")
                )
    elif vlan_id is not None:
        errors.append(
            ValidationError(
                name,
                ("ppp", "vlanid"),
                "a ppp link cannot be a VLAN, use the VLAN as"
                " physical_interface",
            )
        )

    nameservers = parse_nameservers(spec.get("nameservers"))
    for nameserver in nameservers:
        if not is_ip_address(nameserver):
            errors.append(
                ValidationError(
                    name,
                    "nameservers",
                    "%r is not an IP address" % nameserver,
                )
            )
    routes = _routes(spec, name, errors)
    bridge_ports, bridge_stp = _bridge(spec, name, ifname, errors)
    if bridge_ports and mode is AddressingMode.PPP:
        errors.append(
            ValidationError(
                name,
                ("ppp", "bridge_ports"),
                "a ppp link cannot be a bridge",
            )
        )

    if errors:
        return None, errors
    return (
        InterfaceConfig(
            interface=name,
            ifname=ifname,
            addressing=addressing,
            vlan_id=vlan_id,
            nameservers=nameservers,
            optional=bool(spec.get("optional", False)),
            noarp=bool(spec.get("noarp", False)),
            routes=routes,
            bridge_ports=bridge_ports,
            bridge_stp=bridge_stp,
        ),
        [],
    )


def normalize(spec: Mapping) -> InterfaceConfig:
    """Convert one raw interface description into an InterfaceConfig.

    @raises: ValidationError for a single problem, AggregateError (itself
        a ValidationError) when the description has several.
    """
    config, errors = _normalize(spec)
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise AggregateError(errors)
    return config


def parse_interface_configs(
    specs: Union[Mapping, Iterable[Mapping]],
) -> List[InterfaceConfig]:
    """Normalize a batch of raw interface descriptions.

    Every spec is checked even after a failure so the caller sees all
    problems at once. Two specs resolving to the same ifname are an
    error on the later one.

    @raises: AggregateError carrying every ValidationError found.
    """
    if isinstance(specs, Mapping):
        specs = [specs]
    errors: List[ValidationError] = []
    configs: List[InterfaceConfig] = []
    seen = {}
    for spec in specs:
        config, spec_errors = _normalize(spec)
        errors.extend(spec_errors)
        if config is None:
            continue
        if config.ifname in seen:
            errors.append(
                ValidationError(
                    config.interface,
                    "ifname" if spec.get("ifname") else "interface",
                    "%s is already configured by an earlier entry"
                    % config.ifname,
                )
            )
            continue
        seen[config.ifname] = config
        configs.append(config)
    if errors:
        raise AggregateError(errors)
    LOG.debug(
        "Normalized %d interface(s): %s",
        len(configs),
        ", ".join(c.ifname for c in configs),
    )
    return configs
