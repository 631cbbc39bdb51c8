"""Pattern matching of rule left-hand sides against a graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Union

from ggl.graph import Edge, Graph, Node
from ggl.values import Value, values_equal

EdgeKey = Union[str, tuple[str, str, bool, int]]


@dataclass
class NodePattern:
    """A node variable with an optional type and attribute constraints."""
    var: str
    type: str | None = None
    attributes: dict[str, Value] = field(default_factory=dict)


@dataclass
class EdgePattern:
    """An edge between two node variables.

    ``var`` is the optional edge variable. ``occurrence`` numbers repeated
    unnamed patterns over the same connection so each still has a distinct
    key. Undirected connections ignore the order the endpoints are written in.
    """
    source: str
    target: str
    directed: bool = False
    attributes: dict[str, Value] = field(default_factory=dict)
    var: str | None = None
    occurrence: int = 0

    @property
    def key(self) -> EdgeKey:
        if self.var is not None:
            return self.var
        return (*self.connection, self.occurrence)

    @property
    def connection(self) -> tuple[str, str, bool]:
        if self.directed:
            return (self.source, self.target, True)
        low, high = sorted((self.source, self.target))
        return (low, high, False)


@dataclass
class Pattern:
    nodes: list[NodePattern] = field(default_factory=list)
    edges: list[EdgePattern] = field(default_factory=list)

    def node(self, var: str) -> NodePattern | None:
        for node in self.nodes:
            if node.var == var:
                return node
        return None

    def is_empty(self) -> bool:
        return not self.nodes and not self.edges


def attributes_subset(required: dict[str, Value], actual: dict[str, Value]) -> bool:
    """True if every required key is present in ``actual`` with an equal value."""
    for key, value in required.items():
        if key not in actual or not values_equal(actual[key], value):
            return False
    return True


class NodeConstraint:
    """Filters candidate nodes for one node variable."""

    def __init__(self, pattern: NodePattern) -> None:
        self.pattern = pattern

    def accepts(self, node: Node) -> bool:
        if self.pattern.type is not None and node.type != self.pattern.type:
            return False
        return attributes_subset(self.pattern.attributes, node.attributes)


class EdgeConstraint:
    """Checks that an edge joins the nodes bound to its endpoint variables."""

    def __init__(self, pattern: EdgePattern) -> None:
        self.pattern = pattern

    def ready(self, binding: dict[str, str]) -> bool:
        return self.pattern.source in binding and self.pattern.target in binding

    def accepts(self, edge: Edge, source: str, target: str) -> bool:
        if edge.directed != self.pattern.directed:
            return False
        if not edge.connects(source, target):
            return False
        return attributes_subset(self.pattern.attributes, edge.attributes)

    def candidates(self, graph: Graph, binding: dict[str, str]) -> list[str]:
        source = binding[self.pattern.source]
        target = binding[self.pattern.target]
        return sorted(e.id for e in graph.edges_between(source, target) if self.accepts(e, source, target))


@dataclass
class Match:
    """Node variable -> node id and edge key -> edge id."""
    nodes: dict[str, str] = field(default_factory=dict)
    edges: dict[EdgeKey, str] = field(default_factory=dict)


class PatternMatcher:
    """Backtracking search for injective embeddings of a pattern.

    Node variables are bound in declaration order to candidates in ascending
    id order; distinct variables take distinct nodes. Once every variable is
    bound, edge patterns are assigned distinct concrete edges, again in
    ascending id order.
    """

    def __init__(self, pattern: Pattern, graph: Graph) -> None:
        self.pattern = pattern
        self.graph = graph
        self.node_constraints = [NodeConstraint(p) for p in pattern.nodes]
        self.edge_constraints = [EdgeConstraint(p) for p in pattern.edges]

    def __iter__(self) -> Iterator[Match]:
        if self.pattern.is_empty():
            return iter(())
        return self._bind_nodes(0, {})

    def _bind_nodes(self, index: int, binding: dict[str, str]) -> Iterator[Match]:
        if index == len(self.node_constraints):
            yield from self._bind_edges(0, binding, {}, set())
            return
        constraint = self.node_constraints[index]
        used = set(binding.values())
        for node_id in sorted(self.graph.nodes):
            if node_id in used:
                continue
            if not constraint.accepts(self.graph.nodes[node_id]):
                continue
            binding[constraint.pattern.var] = node_id
            if self._edges_feasible(binding):
                yield from self._bind_nodes(index + 1, binding)
            del binding[constraint.pattern.var]

    def _edges_feasible(self, binding: dict[str, str]) -> bool:
        for constraint in self.edge_constraints:
            if constraint.ready(binding) and not constraint.candidates(self.graph, binding):
                return False
        return True

    def _bind_edges(
        self,
        index: int,
        binding: dict[str, str],
        assigned: dict[EdgeKey, str],
        used: set[str],
    ) -> Iterator[Match]:
        if index == len(self.edge_constraints):
            yield Match(nodes=dict(binding), edges=dict(assigned))
            return
        constraint = self.edge_constraints[index]
        for edge_id in constraint.candidates(self.graph, binding):
            if edge_id in used:
                continue
            assigned[constraint.pattern.key] = edge_id
            used.add(edge_id)
            yield from self._bind_edges(index + 1, binding, assigned, used)
            used.discard(edge_id)
            del assigned[constraint.pattern.key]


def iter_matches(pattern: Pattern, graph: Graph) -> Iterator[Match]:
    """Lazily yield matches in search order."""
    return iter(PatternMatcher(pattern, graph))


def find_matches(pattern: Pattern, graph: Graph) -> list[Match]:
    return list(iter_matches(pattern, graph))
