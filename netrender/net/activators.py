# This file is part of netrender. See LICENSE file for license information.
import logging
from typing import Dict, List, Optional

from netrender import subp
from netrender.exceptions import BackendNotFoundError
from netrender.net.backends import Backend

LOG = logging.getLogger(__name__)

RESTART_COMMANDS: Dict[Backend, List[str]] = {
    Backend.NETPLAN: ["netplan", "apply"],
    Backend.IFUPDOWN: ["systemctl", "restart", "networking"],
    Backend.DHCPCD: ["systemctl", "restart", "dhcpcd"],
}


def restart_command(backend) -> List[str]:
    backend = Backend.from_name(backend)
    if backend not in RESTART_COMMANDS:
        raise BackendNotFoundError(
            "No way to restart networking for backend %s" % backend.value
        )
    return list(RESTART_COMMANDS[backend])


def restart_networking(
    backend, timeout: Optional[float] = None
) -> subp.SubpResult:
    """Restart the networking service of backend so it reloads its config.

    @raises: subp.ProcessExecutionError on a non-zero exit status,
        subp.ProcessTimeoutError when timeout seconds pass first.
    """
    cmd = restart_command(backend)
    LOG.debug("Restarting networking with: %s", " ".join(cmd))
    result = subp.subp(cmd, timeout=timeout)
    if result.stderr:
        LOG.warning("Received stderr output: %s", result.stderr)
    return result
