# This file is part of netrender. See LICENSE file for license information.
"""Render interface configuration as a dhcpcd.conf managed block.

dhcpcd keeps all its settings in one file that usually carries
distribution defaults, so only the block between the netrender markers
is generated and the writer merges it into the existing file.
"""

import logging
import os
from typing import List, Optional, Sequence

from netrender import settings, subp
from netrender.exceptions import UnsupportedConfigError
from netrender.net import renderer
from netrender.net.network_state import AddressingMode, InterfaceConfig

NAME = "dhcpcd"

LOG = logging.getLogger(__name__)


def _check_supported(cfg: InterfaceConfig):
    if cfg.routes:
        raise UnsupportedConfigError(
            NAME, cfg.ifname, "static routes are not supported"
        )
    if cfg.is_bridge:
        raise UnsupportedConfigError(
            NAME, cfg.ifname, "bridges are not supported"
        )
    if cfg.is_vlan:
        raise UnsupportedConfigError(
            NAME, cfg.ifname, "dhcpcd can not create vlan devices"
        )


def _render_interface(cfg: InterfaceConfig) -> List[str]:
    lines = ["interface %s" % cfg.ifname]
    if cfg.mode is AddressingMode.STATIC:
        lines.append("static ip_address=%s" % cfg.cidr)
        if cfg.gateway:
            lines.append("static routers=%s" % cfg.gateway)
        else:
            lines.append("nogateway")
    if cfg.nameservers:
        lines.append(
            "static domain_name_servers=%s" % " ".join(cfg.nameservers)
        )
    if cfg.noarp:
        lines.append("noarp")
    return lines


def render_block(batch: Sequence[InterfaceConfig]) -> str:
    denied = []
    blocks = []
    for cfg in renderer.iter_configs(batch, renderer.filter_not_ppp):
        _check_supported(cfg)
        if cfg.mode is AddressingMode.MANUAL:
            denied.append(cfg.ifname)
            if not cfg.noarp:
                if cfg.nameservers:
                    LOG.warning(
                        "dhcpcd does not manage %s, ignoring its nameservers",
                        cfg.ifname,
                    )
                continue
        blocks.append(_render_interface(cfg))

    lines = [renderer.MANAGED_BLOCK_BEGIN]
    if denied:
        lines.append("denyinterfaces %s" % " ".join(denied))
    for block in blocks:
        lines.append("")
        lines.extend(block)
    lines.append(renderer.MANAGED_BLOCK_END)
    return "\n".join(lines) + "\n"


def render(
    batch: Sequence[InterfaceConfig], config: Optional[dict] = None
) -> List[renderer.Artifact]:
    if config is None:
        config = settings.renderer_config(None, NAME)
    return [
        renderer.Artifact(
            config.get("dhcpcd_path", "etc/dhcpcd.conf"),
            render_block(batch),
            merge=True,
        )
    ]


def available(target=None):
    if not subp.which("dhcpcd", search=["/sbin", "/usr/sbin"], target=target):
        return False
    return os.path.isfile(subp.target_path(target, "etc/dhcpcd.conf"))
