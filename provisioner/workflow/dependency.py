"""Dependency graph construction and creation ordering.

Orders descriptors so every resource is created after everything it depends
on, using Kahn's algorithm with a lexicographic tie-break for reproducible
output. Teardown uses the reverse of the creation order.
"""

from __future__ import annotations

import heapq
import logging
from typing import Dict, Iterable, List, Optional, Set

from ..exceptions import CyclicDependencyError, UnknownDependencyError, ValidationError
from ..models.descriptor import ResourceDescriptor

logger = logging.getLogger(__name__)


class DependencyOrderer:
    """Dependency graph and topological ordering for resource descriptors.

    The graph maps each resource name to the set of names it depends on.

    Attributes:
        graph: Mapping of resource name -> names it depends on
    """

    def __init__(self) -> None:
        """Initialize an empty dependency graph."""
        self.graph: Dict[str, Set[str]] = {}

    def add_dependency(self, parent: str, child: str) -> None:
        """Record that child depends on parent (parent is created first).

        Args:
            parent: Resource that must exist first
            child: Resource that depends on parent
        """
        self.graph.setdefault(child, set()).add(parent)
        self.graph.setdefault(parent, set())

    def build_graph(self, descriptors: Iterable[ResourceDescriptor]) -> Dict[str, ResourceDescriptor]:
        """Build the graph from descriptors, validating names and references.

        Args:
            descriptors: Descriptor set

        Returns:
            Mapping of name -> descriptor

        Raises:
            ValidationError: If two descriptors share a name
            UnknownDependencyError: If a dependency names a resource outside the set
        """
        self.graph = {}
        by_name: Dict[str, ResourceDescriptor] = {}

        for descriptor in descriptors:
            if descriptor.name in by_name:
                raise ValidationError(f"Duplicate resource name: {descriptor.name}")
            by_name[descriptor.name] = descriptor
            self.graph[descriptor.name] = set()

        for name in sorted(by_name):
            for parent in sorted(by_name[name].depends_on):
                if parent not in by_name:
                    raise UnknownDependencyError(resource=name, missing=parent)
                self.add_dependency(parent=parent, child=name)

        return by_name

    def order(self, descriptors: Iterable[ResourceDescriptor]) -> List[ResourceDescriptor]:
        """Compute creation order for a descriptor set.

        Among descriptors whose dependencies are all satisfied, the one with the
        lexicographically smallest name is emitted first.

        Args:
            descriptors: Descriptor set

        Returns:
            Descriptors in creation order

        Raises:
            ValidationError: On duplicate names
            UnknownDependencyError: On references to names outside the set
            CyclicDependencyError: If the dependencies contain a cycle
        """
        by_name = self.build_graph(descriptors)
        names = self.compute_order(by_name.keys())
        logger.debug(f"Creation order: {', '.join(names)}")
        return [by_name[name] for name in names]

    def teardown_order(self, descriptors: Iterable[ResourceDescriptor]) -> List[ResourceDescriptor]:
        """Compute teardown order (reverse of creation order)."""
        return list(reversed(self.order(descriptors)))

    def compute_order(self, resources: Iterable[str]) -> List[str]:
        """Topologically sort resource names using the current graph.

        Dependencies on names outside ``resources`` are ignored.

        Args:
            resources: Names to order

        Returns:
            Names in creation order

        Raises:
            CyclicDependencyError: If the dependencies contain a cycle
        """
        selected = set(resources)
        in_degree: Dict[str, int] = {}
        dependents: Dict[str, List[str]] = {name: [] for name in selected}

        for name in selected:
            parents = self.graph.get(name, set()) & selected
            in_degree[name] = len(parents)
            for parent in parents:
                dependents[parent].append(name)

        ready = [name for name, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        result: List[str] = []

        while ready:
            name = heapq.heappop(ready)
            result.append(name)
            for child in dependents[name]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    heapq.heappush(ready, child)

        if len(result) != len(selected):
            remaining = selected - set(result)
            raise CyclicDependencyError(self._cycle_members(remaining) or remaining)

        return result

    def tiers(self, descriptors: Optional[Iterable[ResourceDescriptor]] = None) -> Dict[int, List[str]]:
        """Assign each resource to a creation tier.

        Tier 1 holds resources with no dependencies; every other resource sits
        one tier above its deepest dependency.

        Args:
            descriptors: Descriptor set to build the graph from (optional, uses
                the current graph when omitted)

        Returns:
            Mapping of tier number -> sorted resource names
        """
        if descriptors is not None:
            self.build_graph(descriptors)

        names = self.compute_order(self.graph.keys())
        tier_of: Dict[str, int] = {}
        for name in names:
            parents = self.graph.get(name, set())
            tier_of[name] = 1 + max((tier_of[p] for p in parents), default=0)

        tiers: Dict[int, List[str]] = {}
        for name in names:
            tiers.setdefault(tier_of[name], []).append(name)
        return {tier: sorted(members) for tier, members in sorted(tiers.items())}

    def _cycle_members(self, candidates: Set[str]) -> Set[str]:
        """Find resources that sit on a cycle (Tarjan's strongly connected components)."""
        index_of: Dict[str, int] = {}
        low: Dict[str, int] = {}
        stack: List[str] = []
        on_stack: Set[str] = set()
        members: Set[str] = set()
        counter = [0]

        def visit(name: str) -> None:
            index_of[name] = low[name] = counter[0]
            counter[0] += 1
            stack.append(name)
            on_stack.add(name)

            for parent in sorted(self.graph.get(name, set()) & candidates):
                if parent not in index_of:
                    visit(parent)
                    low[name] = min(low[name], low[parent])
                elif parent in on_stack:
                    low[name] = min(low[name], index_of[parent])

            if low[name] == index_of[name]:
                component = []
                while True:
                    node = stack.pop()
                    on_stack.discard(node)
                    component.append(node)
                    if node == name:
                        break
                if len(component) > 1 or name in self.graph.get(name, set()):
                    members.update(component)

        for name in sorted(candidates):
            if name not in index_of:
                visit(name)

        return members
