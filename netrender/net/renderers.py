# This file is part of netrender. See LICENSE file for license information.

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from netrender import settings
from netrender.exceptions import BackendNotFoundError
from netrender.net import dhcpcd, eni, netplan, pppoe, renderer
from netrender.net.backends import Backend
from netrender.net.network_state import InterfaceConfig

LOG = logging.getLogger(__name__)

NAME_TO_RENDERER = {
    Backend.NETPLAN: netplan,
    Backend.IFUPDOWN: eni,
    Backend.DHCPCD: dhcpcd,
    Backend.PPPOE: pppoe,
}


def get_renderer(backend):
    backend = Backend.from_name(backend)
    if backend not in NAME_TO_RENDERER:
        raise BackendNotFoundError(
            "No network renderer for backend %s" % backend.value
        )
    return NAME_TO_RENDERER[backend]


def render_for_backend(
    backend,
    batch: Sequence[InterfaceConfig],
    cfg: Optional[dict] = None,
) -> List[renderer.Artifact]:
    """Render an ordered batch for one backend.

    ppp links are handed to pppd through peer files whatever the backend,
    so those are rendered too when the batch has any.
    """
    backend = Backend.from_name(backend)
    render_mod = get_renderer(backend)
    artifacts = render_mod.render(
        batch, settings.renderer_config(cfg, backend.value)
    )
    if backend is not Backend.PPPOE and any(c.is_ppp for c in batch):
        artifacts.extend(
            pppoe.render(batch, settings.renderer_config(cfg, pppoe.NAME))
        )
    LOG.debug(
        "Rendered %d artifact(s) for %s: %s",
        len(artifacts),
        backend.value,
        ", ".join(a.path for a in artifacts),
    )
    return artifacts


def render_for_backends(
    backends: Iterable,
    batch: Sequence[InterfaceConfig],
    cfg: Optional[dict] = None,
) -> Dict[Backend, List[renderer.Artifact]]:
    """Render the same batch for each backend independently."""
    return dict(
        (Backend.from_name(b), render_for_backend(b, batch, cfg))
        for b in backends
    )
