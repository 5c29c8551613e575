#!/usr/bin/env python3
# This file is part of netrender. See LICENSE file for license information.

"""Render and apply Linux network interface configuration."""

import argparse
import logging
import os
import sys

import yaml

from netrender import log, safeyaml, settings, util
from netrender.exceptions import InterfaceFileError, NetRenderError
from netrender.net import apply, renderers
from netrender.net.backends import Backend, detect_backend
from netrender.net.network_state import parse_interface_configs
from netrender.net.topology import resolve
from netrender.version import version_string

NAME = "netrender"

LOG = logging.getLogger(__name__)

BACKEND_CHOICES = [
    b.value for b in Backend if b not in (Backend.UNKNOWN, Backend.PPPOE)
]


def load_interfaces(path):
    """Return the interface descriptions held in a YAML or JSON file.

    The file holds a list of descriptions, a single description, or a
    mapping with the list under 'interfaces'.

    @raises: InterfaceFileError when path can not be read or parsed.
    """
    try:
        data = safeyaml.load(util.load_text_file(path))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise InterfaceFileError(path, e) from e
    if isinstance(data, dict) and "interfaces" in data:
        data = data["interfaces"]
    if data is None:
        data = []
    return data


def _add_input_args(parser):
    parser.add_argument(
        "-f",
        "--file",
        metavar="PATH",
        required=True,
        help="YAML or JSON file with the interfaces to configure",
    )
    parser.add_argument(
        "-e",
        "--external",
        metavar="IFNAME",
        action="append",
        help="pre-existing device bridges may use as a port",
    )


def get_parser(parser=None):
    """Build or extend an arg parser for the netrender utility.

    @param parser: Optional existing ArgumentParser instance which will be
        extended to support the args of this utility.

    @returns: ArgumentParser with proper argument configuration.
    """
    if not parser:
        parser = argparse.ArgumentParser(prog=NAME, description=__doc__)
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version="%(prog)s " + version_string(),
    )
    parser.add_argument(
        "--debug",
        "-d",
        action="store_true",
        default=False,
        help="enable debug logging to stderr.",
    )
    parser.add_argument(
        "--config",
        "-c",
        metavar="PATH",
        help="netrender config file, default $%s or %s"
        % (settings.CFG_ENV_NAME, settings.NETRENDER_CONFIG),
    )
    subparsers = parser.add_subparsers(title="Subcommands", dest="subcommand")
    subparsers.required = True

    render_parser = subparsers.add_parser(
        "render", help="print or write rendered files without applying them"
    )
    _add_input_args(render_parser)
    render_parser.add_argument(
        "-b",
        "--backend",
        choices=BACKEND_CHOICES,
        action="append",
        help="backend to render for, may be repeated; default: detected",
    )
    render_parser.add_argument(
        "-D",
        "--directory",
        metavar="PATH",
        help="root directory to write the files below instead of stdout",
    )
    render_parser.set_defaults(action=("render", handle_render))

    apply_parser = subparsers.add_parser(
        "apply", help="write the configuration and restart networking"
    )
    _add_input_args(apply_parser)
    apply_parser.add_argument("-b", "--backend", choices=BACKEND_CHOICES)
    apply_parser.add_argument(
        "-t",
        "--target",
        metavar="PATH",
        help="root directory of the system to configure, default /",
    )
    apply_parser.add_argument(
        "--timeout",
        type=float,
        help="seconds to wait for networking to restart",
    )
    apply_parser.set_defaults(action=("apply", handle_apply))

    restart_parser = subparsers.add_parser(
        "restart", help="restart networking without writing anything"
    )
    restart_parser.add_argument("-b", "--backend", choices=BACKEND_CHOICES)
    restart_parser.add_argument(
        "--timeout",
        type=float,
        help="seconds to wait for networking to restart",
    )
    restart_parser.set_defaults(action=("restart", handle_restart))

    detect_parser = subparsers.add_parser(
        "detect", help="print the network backend in use"
    )
    detect_parser.add_argument("-t", "--target", metavar="PATH")
    detect_parser.set_defaults(action=("detect", handle_detect))
    return parser


def handle_render(name, args, cfg):
    backends = args.backend
    if not backends:
        backends = [cfg.get("backend") or detect_backend()]
    external = args.external or util.get_cfg_option_list(
        cfg, "external_interfaces", []
    )
    models = resolve(
        parse_interface_configs(load_interfaces(args.file)), external
    )
    rendered = renderers.render_for_backends(backends, models, cfg)
    for backend, artifacts in rendered.items():
        for artifact in artifacts:
            if args.directory:
                target = os.path.join(args.directory, backend.value)
                path = apply.write_artifact(artifact, target=target)
                sys.stderr.write("Wrote %s\n" % path)
            else:
                sys.stdout.write(
                    "### %s: %s\n%s\n"
                    % (backend.value, artifact.path, artifact.content)
                )
    return 0


def handle_apply(name, args, cfg):
    result = apply.configure(
        load_interfaces(args.file),
        backend=args.backend,
        external=args.external,
        target=args.target,
        cfg=cfg,
        timeout=args.timeout,
    )
    for path in result.artifacts:
        sys.stdout.write("%s\n" % path)
    return 0


def handle_restart(name, args, cfg):
    apply.restart_service(backend=args.backend, timeout=args.timeout, cfg=cfg)
    return 0


def handle_detect(name, args, cfg):
    sys.stdout.write("%s\n" % detect_backend(args.target).value)
    return 0


def main(sysv_args=None):
    if not sysv_args:
        sysv_args = sys.argv[1:]
    args = get_parser().parse_args(args=sysv_args)
    cfg = settings.load_config(args.config)
    if args.debug:
        log.setup_basic_logging(level=logging.DEBUG)
    else:
        log.setup_logging(cfg)

    (name, functor) = args.action
    try:
        return functor(name, args, cfg)
    except NetRenderError as e:
        LOG.debug("%s failed", name, exc_info=True)
        sys.stderr.write("%s\n" % e)
        return 1
    finally:
        log.flush_loggers(LOG)


if __name__ == "__main__":
    sys.exit(main())
