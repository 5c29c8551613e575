# This file is part of netrender. See LICENSE file for license information.
"""Order a batch of InterfaceConfig so dependencies come first.

A bridge depends on each of its ports and a VLAN on its raw device when
those are part of the same batch. Configs are kept in an arena keyed by
ifname and the graph is a plain adjacency list of arena keys.
"""

import heapq
import logging
from typing import Dict, Iterable, List, Sequence

from netrender.exceptions import TopologyError
from netrender.net.network_state import InterfaceConfig

LOG = logging.getLogger(__name__)


def build_graph(
    models: Sequence[InterfaceConfig], external: Iterable[str] = ()
) -> Dict[str, List[str]]:
    """Return {ifname: [ifnames it depends on]} for the batch.

    @raises: TopologyError when a bridge port is neither part of the batch
        nor listed in external.
    """
    arena = {model.ifname: model for model in models}
    external = set(external)
    depends_on: Dict[str, List[str]] = {}
    unknown = []
    for model in models:
        deps = []
        if model.is_vlan and model.interface in arena:
            deps.append(model.interface)
        for port in model.bridge_ports:
            if port in arena:
                if port not in deps:
                    deps.append(port)
            elif port not in external:
                unknown.append("%s (port of %s)" % (port, model.ifname))
        depends_on[model.ifname] = deps
    if unknown:
        raise TopologyError(
            "bridge ports neither configured in this batch nor declared"
            " external",
            unknown,
        )
    return depends_on


def _cycle_members(models, in_degree, dependents) -> List[str]:
    stuck = set(name for name, degree in in_degree.items() if degree)
    # peel off interfaces that merely hang below a cycle
    trimmed = True
    while trimmed:
        trimmed = False
        for name in list(stuck):
            if not any(d in stuck for d in dependents[name]):
                stuck.discard(name)
                trimmed = True
    return [model.ifname for model in models if model.ifname in stuck]


def resolve(
    models: Sequence[InterfaceConfig], external: Iterable[str] = ()
) -> List[InterfaceConfig]:
    """Return models ordered so every interface follows its dependencies.

    Kahn's algorithm; among interfaces that are ready at the same time the
    one given first in models wins, so the order only depends on the input
    order.

    @param external: names of pre-existing devices bridges may use as
        ports without them being part of models.
    @raises: TopologyError on a dependency cycle or an unknown bridge port.
    """
    depends_on = build_graph(models, external)
    index = {model.ifname: idx for idx, model in enumerate(models)}
    dependents: Dict[str, List[str]] = {name: [] for name in depends_on}
    in_degree = {}
    for name, deps in depends_on.items():
        in_degree[name] = len(deps)
        for dep in deps:
            dependents[dep].append(name)

    ready = [index[name] for name, degree in in_degree.items() if not degree]
    heapq.heapify(ready)
    ordered: List[InterfaceConfig] = []
    while ready:
        model = models[heapq.heappop(ready)]
        ordered.append(model)
        for dependent in dependents[model.ifname]:
            in_degree[dependent] -= 1
            if not in_degree[dependent]:
                heapq.heappush(ready, index[dependent])

    if len(ordered) != len(models):
        raise TopologyError(
            "dependency cycle between interfaces",
            _cycle_members(models, in_degree, dependents),
        )
    LOG.debug(
        "Resolved interface order: %s", ", ".join(m.ifname for m in ordered)
    )
    return ordered
