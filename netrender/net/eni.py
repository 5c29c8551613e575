# This file is part of netrender. See LICENSE file for license information.

import logging
import os
from typing import List, Optional, Sequence

from netrender import settings, subp
from netrender.net import net_prefix_to_ipv4_mask, renderer
from netrender.net.network_state import AddressingMode, InterfaceConfig

NAME = "ifupdown"

LOG = logging.getLogger(__name__)


def _iface_start_entry(cfg: InterfaceConfig) -> List[str]:
    cverb = "allow-hotplug" if cfg.optional else "auto"
    return [
        "%s %s" % (cverb, cfg.ifname),
        "iface %s inet %s" % (cfg.ifname, cfg.mode.value),
    ]


def _iface_add_addressing(cfg: InterfaceConfig) -> List[str]:
    content = []
    if cfg.mode is AddressingMode.STATIC:
        content.append("    address %s" % cfg.ip_address)
        content.append("    netmask %s" % net_prefix_to_ipv4_mask(cfg.prefix))
        if cfg.gateway:
            content.append("    gateway %s" % cfg.gateway)
    elif cfg.mode is AddressingMode.PPP:
        content.append(
            "    pre-up ip link set dev %s up" % cfg.physical_interface
        )
        content.append("    provider %s" % cfg.provider)
    if cfg.nameservers:
        content.append("    dns-nameservers %s" % " ".join(cfg.nameservers))
    return content


def _iface_add_attrs(cfg: InterfaceConfig) -> List[str]:
    content = []
    if cfg.is_vlan:
        content.append("    vlan-raw-device %s" % cfg.interface)
    if cfg.is_bridge:
        content.append("    bridge_ports %s" % " ".join(cfg.bridge_ports))
        stp = "on" if cfg.bridge_stp else "off"
        content.append("    bridge_stp %s" % stp)
    if cfg.noarp:
        LOG.warning(
            "ifupdown cannot disable ARP, ignoring noarp for %s", cfg.ifname
        )
    return content


def _render_route(route, indent="    ") -> List[str]:
    """Return the post-up/pre-down lines for one route.

    The up command gets an '|| true' postfix so an already present route
    does not make ifup fail.
    """
    route_line = " %s via %s" % (route.to, route.via)
    return [
        indent + "post-up ip route add" + route_line + " || true",
        indent + "pre-down ip route del" + route_line + " || true",
    ]


def render_iface(cfg: InterfaceConfig) -> str:
    lines = _iface_start_entry(cfg)
    lines.extend(_iface_add_addressing(cfg))
    lines.extend(_iface_add_attrs(cfg))
    for route in cfg.routes:
        lines.extend(_render_route(route))
    return "\n".join(lines) + "\n"


def render(
    batch: Sequence[InterfaceConfig], config: Optional[dict] = None
) -> List[renderer.Artifact]:
    """Render one interfaces.d stanza file per interface, in batch order."""
    if config is None:
        config = settings.renderer_config(None, NAME)
    header = renderer.normalize_header(config.get("eni_header"))
    eni_dir = config.get("eni_dir", "etc/network/interfaces.d")
    return [
        renderer.Artifact(
            os.path.join(eni_dir, cfg.ifname), header + render_iface(cfg)
        )
        for cfg in batch
    ]


def available(target=None):
    expected = ["ifquery", "ifup", "ifdown"]
    search = ["/sbin", "/usr/sbin"]
    for p in expected:
        if not subp.which(p, search=search, target=target):
            return False
    eni = subp.target_path(target, "etc/network/interfaces")
    if not os.path.isfile(eni):
        return False

    return True
