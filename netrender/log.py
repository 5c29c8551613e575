# This file is part of netrender. See LICENSE file for license information.

import io
import logging
import logging.config
import os
import sys
from contextlib import suppress

DEFAULT_LOG_FORMAT = "%(asctime)s - %(filename)s[%(levelname)s]: %(message)s"


def setup_basic_logging(level=logging.DEBUG, formatter=None):
    """Send records of level and above to stderr."""
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter or logging.Formatter(DEFAULT_LOG_FORMAT))
    console.setLevel(level)
    root = logging.getLogger()
    root.addHandler(console)
    root.setLevel(level)


def flush_loggers(logger):
    """Flush the stream handlers of logger and all of its ancestors."""
    while logger:
        for handler in logger.handlers:
            if isinstance(handler, logging.StreamHandler):
                with suppress(IOError):
                    handler.flush()
        logger = logger.parent


def _as_file_config(log_cfg):
    # a list of lines is joined into one config
    if not isinstance(log_cfg, str):
        log_cfg = "\n".join(str(line) for line in log_cfg)
    if log_cfg.startswith("/") and os.path.isfile(log_cfg):
        return log_cfg
    return io.StringIO(log_cfg)


def setup_logging(cfg=None):
    """Configure logging from the 'log_cfgs' entries of cfg.

    Each entry is either a path to a logging.config.fileConfig file or the
    content of one (a string or a list of lines). The first one that loads
    wins. Without a usable entry, basic stderr logging is set up unless
    'log_basic' is false.
    """
    cfg = cfg or {}
    log_cfgs = cfg.get("log_cfgs") or []
    for log_cfg in log_cfgs:
        with suppress(FileNotFoundError):
            logging.config.fileConfig(_as_file_config(log_cfg))
            return

    if log_cfgs:
        sys.stderr.write(
            "WARN: no logging configured! (tried %s configs)\n"
            % len(log_cfgs)
        )
    if cfg.get("log_basic", True):
        setup_basic_logging(level=cfg.get("log_level", logging.WARNING))
