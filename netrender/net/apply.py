# This file is part of netrender. See LICENSE file for license information.
"""Normalize, render, write and activate a batch of interface configs.

Everything up to rendering is pure, so invalid input never touches the
host. Writing and restarting happen under a host wide lock; a failed
write stops the batch before the restart and a failed restart leaves
the written files in place so restart_service can be retried on its own.
"""

import contextlib
import fcntl
import logging
import os
from typing import Callable, Iterable, List, NamedTuple, Optional

from netrender import atomic_helper, settings, subp, util
from netrender.exceptions import (
    ArtifactWriteError,
    BackendNotFoundError,
    ServiceRestartError,
    ServiceRestartTimeoutError,
)
from netrender.net import activators, renderer, renderers
from netrender.net.backends import Backend, detect_backend
from netrender.net.network_state import parse_interface_configs
from netrender.net.topology import resolve

LOG = logging.getLogger(__name__)


class ApplyResult(NamedTuple):
    backend: Backend
    interfaces: List[str]
    artifacts: List[str]


@contextlib.contextmanager
def network_lock(path: str):
    """Hold an exclusive flock on path for the duration of the block."""
    util.ensure_dir(os.path.dirname(path))
    with open(path, "a") as lock_fh:
        LOG.debug("Waiting for network lock %s", path)
        fcntl.flock(lock_fh, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_fh, fcntl.LOCK_UN)
            LOG.debug("Released network lock %s", path)


def write_artifact(artifact: renderer.Artifact, target=None) -> str:
    """Atomically write artifact below target and return the real path.

    Merge artifacts replace the netrender block of the existing file,
    keeping its other content and permissions.
    """
    path = subp.target_path(target, artifact.path)
    content = artifact.content
    if artifact.merge:
        existing = util.load_text_file(path, quiet=True)
        content = renderer.merge_managed_block(existing, content)
    atomic_helper.write_file(
        path,
        content.encode("utf-8"),
        mode=artifact.mode,
        preserve_mode=artifact.merge,
    )
    return path


def _select_backend(backend, cfg: dict, target, detector) -> Backend:
    if backend is None:
        backend = cfg.get("backend")
    if backend is None:
        backend = detector(target)
        LOG.debug("Using detected network backend %s", backend.value)
    backend = Backend.from_name(backend)
    if backend in (Backend.UNKNOWN, Backend.PPPOE):
        raise BackendNotFoundError(
            "No usable network backend (got %s). Set 'backend' in the"
            " netrender config or pass one explicitly." % backend.value
        )
    return backend


def _lock_path(cfg: dict, target) -> str:
    return subp.target_path(
        target, cfg.get("lock_file") or settings.DEFAULT_LOCK_FILE
    )


def _restart(backend: Backend, timeout, restarter: Callable):
    try:
        restarter(backend, timeout=timeout)
    except subp.ProcessTimeoutError as e:
        raise ServiceRestartTimeoutError(
            backend.value, cmd=e.cmd, timeout=e.timeout
        ) from e
    except subp.ProcessExecutionError as e:
        reason = None
        if e.reason != e.empty_attr:
            reason = str(e.reason)
        raise ServiceRestartError(
            backend.value,
            cmd=e.cmd,
            exit_code=e.exit_code if isinstance(e.exit_code, int) else None,
            stdout=e.stdout,
            stderr=e.stderr,
            reason=reason,
        ) from e
    LOG.debug("Restarted %s networking", backend.value)


def _write_all(artifacts: List[renderer.Artifact], target, writer) -> None:
    written: List[str] = []
    for idx, artifact in enumerate(artifacts):
        try:
            writer(artifact, target=target)
        except OSError as e:
            util.logexc(LOG, "Failed writing %s", artifact.path)
            raise ArtifactWriteError(
                artifact.path,
                written,
                [a.path for a in artifacts[idx + 1 :]],
                cause=e,
            ) from e
        written.append(artifact.path)


def configure(
    configs: Iterable,
    *,
    backend=None,
    external: Optional[Iterable[str]] = None,
    target=None,
    cfg: Optional[dict] = None,
    timeout: Optional[float] = None,
    detector: Optional[Callable] = None,
    writer: Optional[Callable] = None,
    restarter: Optional[Callable] = None,
) -> ApplyResult:
    """Bring the host's network configuration in line with configs.

    @param configs: raw interface descriptions, a single mapping or a list.
    @param backend: Backend or backend name, else the config's 'backend',
        else whatever detector reports.
    @param external: pre-existing devices bridges may use as ports,
        defaults to the config's 'external_interfaces'.
    @param target: root directory files are written below, default '/'.
    @param timeout: seconds the restart may take, defaults to the config's
        'restart_timeout'.
    @raises: AggregateError, TopologyError, UnsupportedConfigError and
        BackendNotFoundError before anything is written;
        ArtifactWriteError when writing fails, nothing is restarted then;
        ServiceRestartError/ServiceRestartTimeoutError when the restart
        fails, written files stay in place.
    """
    if cfg is None:
        cfg = settings.load_config()
    detector = detector or detect_backend
    writer = writer or write_artifact
    restarter = restarter or activators.restart_networking
    if external is None:
        external = util.get_cfg_option_list(cfg, "external_interfaces", [])
    if timeout is None:
        timeout = cfg.get("restart_timeout")

    models = resolve(parse_interface_configs(configs), external)
    backend = _select_backend(backend, cfg, target, detector)
    artifacts = renderers.render_for_backend(backend, models, cfg)

    with network_lock(_lock_path(cfg, target)):
        _write_all(artifacts, target, writer)
        _restart(backend, timeout, restarter)

    result = ApplyResult(
        backend,
        [model.ifname for model in models],
        [artifact.path for artifact in artifacts],
    )
    LOG.info(
        "Configured %s with %s", ", ".join(result.interfaces), backend.value
    )
    return result


def restart_service(
    *,
    backend=None,
    timeout: Optional[float] = None,
    cfg: Optional[dict] = None,
    detector: Optional[Callable] = None,
    restarter: Optional[Callable] = None,
    target=None,
) -> None:
    """Restart the networking service without writing anything.

    Safe to call repeatedly, for example after configure raised
    ServiceRestartError.
    """
    if cfg is None:
        cfg = settings.load_config()
    detector = detector or detect_backend
    restarter = restarter or activators.restart_networking
    if timeout is None:
        timeout = cfg.get("restart_timeout")
    backend = _select_backend(backend, cfg, target, detector)
    with network_lock(_lock_path(cfg, target)):
        _restart(backend, timeout, restarter)
