# This file is part of netrender. See LICENSE file for license information.

import logging
import os
from typing import Optional

from netrender import util

LOG = logging.getLogger(__name__)

# Set and read for determining the config file location
CFG_ENV_NAME = "NETRENDER_CFG"

# This is expected to be a yaml formatted file
NETRENDER_CONFIG = "/etc/netrender/netrender.cfg"

DEFAULT_LOCK_FILE = "/run/netrender.lock"

# What u get if no config is provided
CFG_BUILTIN = {
    # null means ask the backend detector
    "backend": None,
    # devices bridges may use as ports without configuring them
    "external_interfaces": [],
    "restart_timeout": 90,
    "lock_file": DEFAULT_LOCK_FILE,
    "renderers": {
        "netplan": {
            "netplan_path": "etc/netplan/90-netrender.yaml",
            # networkd or NetworkManager, null leaves it to netplan
            "netplan_renderer": None,
            "netplan_header": "# This file is generated by netrender.\n",
        },
        "ifupdown": {
            "eni_dir": "etc/network/interfaces.d",
            "eni_header": "# This file is generated by netrender.\n",
        },
        "dhcpcd": {
            "dhcpcd_path": "etc/dhcpcd.conf",
        },
        "pppoe": {
            "peers_dir": "etc/ppp/peers",
            "peers_header": "# This file is generated by netrender.\n",
        },
    },
    "log_cfgs": [],
    "log_basic": True,
}


def load_config(path: Optional[str] = None) -> dict:
    """Return the builtin config overlaid with the on-disk config file.

    The file is taken from path, else $NETRENDER_CFG, else
    /etc/netrender/netrender.cfg. A missing file is not an error.
    """
    if not path:
        path = os.environ.get(CFG_ENV_NAME, NETRENDER_CONFIG)
    file_cfg = util.read_conf(path)
    if file_cfg:
        LOG.debug("Loaded netrender config from %s", path)
    return util.mergemanydict([file_cfg, CFG_BUILTIN])


def renderer_config(cfg: Optional[dict], name: str) -> dict:
    """Return the settings of renderer name, filled in with the defaults."""
    builtin = CFG_BUILTIN["renderers"].get(name) or {}
    if not cfg:
        return dict(builtin)
    found = (cfg.get("renderers") or {}).get(name) or {}
    return util.mergemanydict([found, builtin])
