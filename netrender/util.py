# This file is part of netrender. See LICENSE file for license information.

import copy
import logging
import os
from typing import Any, Iterable, List, Mapping, Sequence, Union

import yaml

from netrender import safeyaml

LOG = logging.getLogger(__name__)


def decode_binary(blob: Union[str, bytes], encoding="utf-8") -> str:
    return blob if isinstance(blob, str) else blob.decode(encoding=encoding)


def _yaml_error_message(error: Exception) -> str:
    mark = getattr(error, "context_mark", None) or getattr(
        error, "problem_mark", None
    )
    if mark:
        return 'Invalid format at line %d column %d: "%s"' % (
            mark.line + 1,
            mark.column + 1,
            error,
        )
    return str(error)


def load_yaml(blob, default=None, allowed=(dict,)):
    """Load blob as yaml, returning default if it is empty or unusable.

    A root that is not one of the allowed types counts as unusable. Parse
    failures are logged, not raised.
    """
    blob = decode_binary(blob)
    LOG.debug(
        "Attempting to load yaml from string of length %s with allowed root"
        " types %s",
        len(blob),
        allowed,
    )
    try:
        loaded = safeyaml.load(blob)
    except yaml.YAMLError as e:
        LOG.warning("Failed loading yaml blob. %s", _yaml_error_message(e))
        return default
    if loaded is None:
        return default
    if not isinstance(loaded, allowed):
        LOG.warning(
            "Failed loading yaml blob. Yaml load allows %s root types, but"
            " got %s instead",
            allowed,
            type(loaded).__name__,
        )
        return default
    return loaded


def load_text_file(fname: Union[str, os.PathLike], *, quiet=False) -> str:
    """Return the content of fname, or '' if it is missing and quiet."""
    try:
        with open(fname, "rb") as ifh:
            contents = ifh.read()
    except FileNotFoundError:
        if not quiet:
            raise
        LOG.debug("%s does not exist", fname)
        return ""
    LOG.debug("Read %s bytes from %s", len(contents), fname)
    return decode_binary(contents)


def read_conf(fname) -> dict:
    """Read a yaml config and convert to dict"""
    try:
        return load_yaml(load_text_file(fname), default={})
    except FileNotFoundError:
        return {}


def mergemanydict(sources: Sequence[Mapping], reverse=False) -> dict:
    """Merge multiple dicts, the first source having the highest priority.

    Nested dicts are merged recursively. Any other value present in an
    earlier source is kept as is, lists included.

    mergemanydict([{"a": 1, "d": {"a": 1}}, {"a": 10, "d": {"f": 10}}])
    results in {"a": 1, "d": {"a": 1, "f": 10}}
    """
    if reverse:
        sources = list(reversed(sources))
    merged: dict = {}
    for source in sources:
        if source:
            _merge_missing(merged, source)
    return merged


def _merge_missing(into: dict, source: Mapping) -> None:
    for key, value in source.items():
        if key not in into:
            into[key] = copy.deepcopy(value)
        elif isinstance(into[key], dict) and isinstance(value, Mapping):
            _merge_missing(into[key], value)


def get_cfg_option_list(cfg: Mapping, key: str, default=None):
    """Return cfg[key] as a list of strings.

    A single value becomes a one element list and null an empty list.
    default is returned when key is absent.
    """
    if key not in cfg:
        return default
    value = cfg[key]
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [str(value)]


def uniq_list(items: Iterable[Any]) -> List[Any]:
    """Drop repeated items, keeping the first occurrence of each."""
    seen: List[Any] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def ensure_dir(path, mode=None):
    os.makedirs(path, exist_ok=True)
    if mode:
        os.chmod(path, mode)


def logexc(
    log, msg, *args, log_level: int = logging.WARNING, exc_info=True
) -> None:
    """Log msg at log_level, with the current traceback at debug."""
    log.log(log_level, msg, *args)
    log.debug(msg, *args, exc_info=exc_info)
