# This file is part of netrender. See LICENSE file for license information.

import logging
from typing import List, Optional, Sequence

from netrender import safeyaml, settings, subp, util
from netrender.exceptions import UnsupportedConfigError
from netrender.net import renderer
from netrender.net.network_state import AddressingMode, InterfaceConfig

NAME = "netplan"

# netplan warns about world readable configuration
NETPLAN_FILE_MODE = 0o600

LOG = logging.getLogger(__name__)


def _extract_addresses(cfg: InterfaceConfig, entry: dict):
    """Map the addressing and related fields of cfg into a netplan entry.

    entry already holds the device specific keys (id, link, interfaces)
    and is updated in place, for example a static config gives:

    {'addresses': ['192.168.1.10/24'],
     'gateway4': '192.168.1.1',
     'nameservers': {'addresses': ['8.8.8.8']}}
    """
    if cfg.mode is AddressingMode.STATIC:
        entry["addresses"] = [cfg.cidr]
        if cfg.gateway:
            entry["gateway4"] = cfg.gateway
    else:
        entry["dhcp4"] = cfg.mode is AddressingMode.DHCP
    if cfg.nameservers:
        entry["nameservers"] = {"addresses": list(cfg.nameservers)}
    if cfg.routes:
        entry["routes"] = [
            {"to": route.to, "via": route.via} for route in cfg.routes
        ]
    if cfg.optional:
        entry["optional"] = True
    if cfg.noarp:
        LOG.warning(
            "netplan cannot disable ARP, ignoring noarp for %s", cfg.ifname
        )


def _render_content(
    batch: Sequence[InterfaceConfig], netplan_renderer: Optional[str] = None
) -> dict:
    ethernets = {}
    vlans = {}
    bridges = {}
    # devices referenced as a vlan link or bridge port, in first use order
    referenced: List[str] = []
    for cfg in renderer.iter_configs(batch, renderer.filter_not_ppp):
        if cfg.is_vlan and cfg.is_bridge:
            raise UnsupportedConfigError(
                NAME,
                cfg.ifname,
                "a netplan device is either a vlan or a bridge, not both",
            )
        if cfg.is_bridge:
            bridge = {"interfaces": list(cfg.bridge_ports)}
            referenced.extend(cfg.bridge_ports)
            bridge["parameters"] = {"stp": bool(cfg.bridge_stp)}
            _extract_addresses(cfg, bridge)
            bridges[cfg.ifname] = bridge
        elif cfg.is_vlan:
            vlan = {"id": cfg.vlan_id, "link": cfg.interface}
            referenced.append(cfg.interface)
            _extract_addresses(cfg, vlan)
            vlans[cfg.ifname] = vlan
        else:
            eth: dict = {}
            _extract_addresses(cfg, eth)
            ethernets[cfg.ifname] = eth

    # netplan refuses links to undefined devices, so pre-existing ones
    # get an empty ethernets entry
    defined = set(ethernets) | set(vlans) | set(bridges)
    for name in util.uniq_list(referenced):
        if name not in defined:
            ethernets[name] = {}

    network: dict = {"version": 2}
    if netplan_renderer:
        network["renderer"] = netplan_renderer
    for name, section in (
        ("ethernets", ethernets),
        ("vlans", vlans),
        ("bridges", bridges),
    ):
        if section:
            network[name] = section
    return {"network": network}


def render(
    batch: Sequence[InterfaceConfig], config: Optional[dict] = None
) -> List[renderer.Artifact]:
    """Render batch as a single netplan v2 document."""
    if config is None:
        config = settings.renderer_config(None, NAME)
    header = renderer.normalize_header(config.get("netplan_header"))
    content = safeyaml.dumps(
        _render_content(batch, config.get("netplan_renderer")),
        explicit_start=False,
        explicit_end=False,
        noalias=True,
    )
    return [
        renderer.Artifact(
            config.get("netplan_path", "etc/netplan/90-netrender.yaml"),
            header + content,
            mode=NETPLAN_FILE_MODE,
        )
    ]


def available(target=None):
    expected = ["netplan"]
    search = ["/usr/sbin", "/sbin"]
    for p in expected:
        if not subp.which(p, search=search, target=target):
            return False
    return True
