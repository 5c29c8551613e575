# This file is part of netrender. See LICENSE file for license information.

from typing import Callable, Iterable, Iterator, NamedTuple

from netrender.net.network_state import AddressingMode, InterfaceConfig

DEFAULT_FILE_MODE = 0o644

MANAGED_BLOCK_BEGIN = "# BEGIN netrender"
MANAGED_BLOCK_END = "# END netrender"


class Artifact(NamedTuple):
    """A rendered file, not yet written.

    path is relative to the root of the target system. With merge set,
    content is a managed block merged into whatever else the file holds.
    """

    path: str
    content: str
    mode: int = DEFAULT_FILE_MODE
    merge: bool = False


def filter_by_mode(match_mode: AddressingMode):
    return lambda cfg: cfg.mode is match_mode


def filter_not_mode(match_mode: AddressingMode):
    return lambda cfg: cfg.mode is not match_mode


filter_by_ppp = filter_by_mode(AddressingMode.PPP)
filter_not_ppp = filter_not_mode(AddressingMode.PPP)


def iter_configs(
    batch: Iterable[InterfaceConfig],
    filter_func: Callable[[InterfaceConfig], bool] = None,
) -> Iterator[InterfaceConfig]:
    for cfg in batch:
        if filter_func is None or filter_func(cfg):
            yield cfg


def normalize_header(header) -> str:
    header = header or ""
    if header and not header.endswith("\n"):
        header += "\n"
    return header


def merge_managed_block(existing: str, block: str) -> str:
    """Return existing with its netrender block replaced by block.

    The replaced block runs from the first END marker back to the closest
    BEGIN marker above it, so a dangling BEGIN and the lines after it stay.
    Text outside the markers is kept as is. Without a complete marker pair
    in existing, block is appended.
    """
    lines = existing.splitlines(keepends=True)
    start = None
    for idx, line in enumerate(lines):
        marker = line.rstrip("\r\n")
        if marker == MANAGED_BLOCK_BEGIN:
            start = idx
        elif marker == MANAGED_BLOCK_END and start is not None:
            return "".join(lines[:start]) + block + "".join(lines[idx + 1 :])
    if existing and not existing.endswith("\n"):
        existing += "\n"
    return existing + block
