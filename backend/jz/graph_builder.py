"""
Interface-based dependency graphs.

Both graphs use the same linkage: producers are indexed by the interfaces they
provide, and every referenced interface yields one edge per matching producer.
Unmatched interfaces produce nothing (no placeholder nodes) and a producer never
depends on itself.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import (
    ComponentNode, DependencyEdge, DependencyGraph, DSComponent,
    Service, ServiceDependency, SystemGraph,
)

logger = logging.getLogger(__name__)

Edge = Tuple[str, str, str]


class InterfaceLinker:
    """Links consumers to producers through shared interface names."""

    def __init__(self):
        self.providers: Dict[str, List[str]] = defaultdict(list)
        self.edges: List[Edge] = []
        self._seen: set = set()

    def add_provider(self, name: str, interfaces: Iterable[str]) -> None:
        for iface in interfaces:
            if name not in self.providers[iface]:
                self.providers[iface].append(name)

    def link(self, consumer: str, referenced: Iterable[str]) -> None:
        for iface in referenced:
            for provider in self.providers.get(iface, ()):
                if provider == consumer:
                    continue
                key = (consumer, provider, iface)
                if key not in self._seen:
                    self._seen.add(key)
                    self.edges.append(key)


def build_internal_graph(components: Sequence[DSComponent]) -> DependencyGraph:
    """Component-level graph within one service."""
    linker = InterfaceLinker()
    nodes = []
    for comp in components:
        nodes.append(ComponentNode(
            name=comp.name,
            implementation_class=comp.implementation_class,
            immediate=comp.immediate,
        ))
        linker.add_provider(comp.name, comp.provided_interfaces)

    for comp in components:
        linker.link(comp.name, comp.referenced_interfaces)

    return DependencyGraph(
        nodes=nodes,
        edges=[DependencyEdge(from_component=f, to_component=t, interface=i) for f, t, i in linker.edges],
    )


def build_system_graph(services: Sequence[Service]) -> SystemGraph:
    """Service-level graph; a service provides whatever any of its components provide."""
    linker = InterfaceLinker()
    for svc in services:
        for comp in svc.components:
            linker.add_provider(svc.name, comp.provided_interfaces)

    for svc in services:
        for comp in svc.components:
            linker.link(svc.name, comp.referenced_interfaces)

    logger.info(f"System graph: {len(services)} services, {len(linker.edges)} dependencies")
    return SystemGraph(
        services=[svc.name for svc in services],
        dependencies=[ServiceDependency(from_service=f, to_service=t, interface=i) for f, t, i in linker.edges],
    )
