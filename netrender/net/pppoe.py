# This file is part of netrender. See LICENSE file for license information.

import functools
import logging
import os
from typing import List, Optional, Sequence

from netrender import settings, subp, templater, util
from netrender.exceptions import UnsupportedConfigError
from netrender.net import renderer
from netrender.net.network_state import InterfaceConfig

NAME = "pppoe"

# peer files may end up holding credentials added by the administrator
PEER_FILE_MODE = 0o640

PEER_TEMPLATE = "pppoe_peer.tmpl"

LOG = logging.getLogger(__name__)


def get_template_dir() -> str:
    return os.path.join(
        os.path.dirname(os.path.abspath(__file__)), "templates"
    )


@functools.lru_cache()
def get_peer_template() -> str:
    return util.load_text_file(os.path.join(get_template_dir(), PEER_TEMPLATE))


def _check_supported(cfg: InterfaceConfig):
    for field in ("provider", "physical_interface"):
        if not getattr(cfg, field):
            raise UnsupportedConfigError(
                NAME, cfg.ifname, "%s is required for a ppp link" % field
            )


def render_peer(cfg: InterfaceConfig, header: str = "") -> str:
    _check_supported(cfg)
    content = templater.render_string(
        get_peer_template(),
        {
            "header": header,
            "ifname": cfg.ifname,
            "physical_interface": cfg.physical_interface,
            "nameservers": list(cfg.nameservers),
            "optional": cfg.optional,
        },
    )
    return content.rstrip("\n") + "\n"


def render(
    batch: Sequence[InterfaceConfig], config: Optional[dict] = None
) -> List[renderer.Artifact]:
    """Render one pppd peer file per ppp link, named after its provider."""
    if config is None:
        config = settings.renderer_config(None, NAME)
    header = renderer.normalize_header(config.get("peers_header"))
    peers_dir = config.get("peers_dir", "etc/ppp/peers")
    artifacts = []
    providers = {}
    for cfg in renderer.iter_configs(batch, renderer.filter_by_ppp):
        content = render_peer(cfg, header)
        if cfg.provider in providers:
            raise UnsupportedConfigError(
                NAME,
                cfg.ifname,
                "provider %s is already used by %s"
                % (cfg.provider, providers[cfg.provider]),
            )
        providers[cfg.provider] = cfg.ifname
        artifacts.append(
            renderer.Artifact(
                os.path.join(peers_dir, cfg.provider),
                content,
                mode=PEER_FILE_MODE,
            )
        )
    return artifacts


def available(target=None):
    return bool(
        subp.which("pppd", search=["/usr/sbin", "/sbin"], target=target)
    )
