"""Rule rewriting: match a left-hand side, apply the structural diff to the right-hand side."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ggl.errors import DanglingReference, InvalidPattern
from ggl.graph import Edge, Graph
from ggl.matcher import EdgeKey, EdgePattern, Match, Pattern, iter_matches
from ggl.values import Value, values_equal

logger = logging.getLogger(__name__)


class ActionKind(Enum):
    PERSIST = "persist"
    DELETE = "delete"
    CREATE = "create"


@dataclass
class Rule:
    """A named rewrite rule. ``counter`` counts performed applications."""
    name: str
    lhs: Pattern
    rhs: Pattern
    counter: int = 0

    def validate(self) -> None:
        for side, pattern in (("lhs", self.lhs), ("rhs", self.rhs)):
            seen: set[str] = set()
            for node in pattern.nodes:
                if node.var in seen:
                    raise InvalidPattern(
                        f"Rule '{self.name}' {side} declares node variable '{node.var}' twice"
                    )
                seen.add(node.var)
            edge_vars: set[str] = set()
            for edge in pattern.edges:
                for endpoint in (edge.source, edge.target):
                    if endpoint not in seen:
                        raise DanglingReference(
                            f"Rule '{self.name}' {side} edge references undeclared node variable '{endpoint}'"
                        )
                if edge.var is not None:
                    if edge.var in edge_vars:
                        raise InvalidPattern(
                            f"Rule '{self.name}' {side} declares edge variable '{edge.var}' twice"
                        )
                    edge_vars.add(edge.var)


@dataclass
class NodeAction:
    kind: ActionKind
    var: str
    node_id: str
    type: str | None = None
    attributes: dict[str, Value] = field(default_factory=dict)


@dataclass
class EdgeAction:
    kind: ActionKind
    key: EdgeKey
    edge_id: str
    source: str = ""
    target: str = ""
    directed: bool = False
    attributes: dict[str, Value] = field(default_factory=dict)


@dataclass
class RewritePlan:
    """The batch of mutations one rule application performs."""
    rule: str
    nodes: list[NodeAction] = field(default_factory=list)
    edges: list[EdgeAction] = field(default_factory=list)

    def _of(self, actions: list[Any], kind: ActionKind) -> list[Any]:
        return [a for a in actions if a.kind is kind]

    def is_effective(self, graph: Graph) -> bool:
        """True if applying the plan would change the graph."""
        if any(a.kind is not ActionKind.PERSIST for a in self.nodes + self.edges):
            return True
        for action in self.nodes:
            node = graph.nodes[action.node_id]
            if action.type is not None and node.type != action.type:
                return True
            if _patch_changes(node.attributes, action.attributes):
                return True
        for action in self.edges:
            edge = graph.edges[action.edge_id]
            if not _same_connection(edge, action):
                return True
            if _patch_changes(edge.attributes, action.attributes):
                return True
        return False

    def validate(self, graph: Graph) -> None:
        """Check every referenced element before anything is mutated."""
        for action in self.nodes:
            if action.kind is not ActionKind.CREATE and action.node_id not in graph.nodes:
                raise DanglingReference(f"Rule '{self.rule}' matched missing node '{action.node_id}'")
        created = {a.node_id for a in self._of(self.nodes, ActionKind.CREATE)}
        deleted = {a.node_id for a in self._of(self.nodes, ActionKind.DELETE)}
        for action in self.edges:
            if action.kind is not ActionKind.CREATE and action.edge_id not in graph.edges:
                raise DanglingReference(f"Rule '{self.rule}' matched missing edge '{action.edge_id}'")
            if action.kind is ActionKind.DELETE:
                continue
            for endpoint in (action.source, action.target):
                if endpoint in deleted or (endpoint not in graph.nodes and endpoint not in created):
                    raise DanglingReference(
                        f"Rule '{self.rule}' edge '{action.edge_id}' references missing node '{endpoint}'"
                    )

    def apply(self, graph: Graph) -> None:
        self.validate(graph)
        # Node deletion cascades, so a kept edge may vanish before it is rewired
        kept = {a.edge_id: graph.edges[a.edge_id] for a in self._of(self.edges, ActionKind.PERSIST)}
        for action in self._of(self.edges, ActionKind.DELETE):
            graph.remove_edge(action.edge_id)
        for action in self._of(self.nodes, ActionKind.DELETE):
            graph.remove_node(action.node_id)
        for action in self._of(self.nodes, ActionKind.PERSIST):
            graph.update_node(action.node_id, action.type, action.attributes)
        for action in self._of(self.nodes, ActionKind.CREATE):
            graph.add_node(action.node_id, action.type, action.attributes)
        for action in self._of(self.edges, ActionKind.PERSIST):
            edge = graph.edges.get(action.edge_id)
            if edge is not None and _same_connection(edge, action):
                graph.update_edge(action.edge_id, action.attributes)
            else:
                attributes = {**kept[action.edge_id].attributes, **action.attributes}
                graph.add_edge(action.source, action.target, action.directed, attributes, edge_id=action.edge_id)
        for action in self._of(self.edges, ActionKind.CREATE):
            graph.add_edge(action.source, action.target, action.directed, action.attributes, edge_id=action.edge_id)


def _same_connection(edge: Edge, action: EdgeAction) -> bool:
    """True if the edge already joins the action's endpoints; undirected ignores orientation."""
    if edge.directed != action.directed:
        return False
    if (edge.source, edge.target) == (action.source, action.target):
        return True
    return not edge.directed and (edge.source, edge.target) == (action.target, action.source)


def _patch_changes(current: dict[str, Value], patch: dict[str, Value]) -> bool:
    return any(key not in current or not values_equal(current[key], value) for key, value in patch.items())


def build_plan(rule: Rule, match: Match, graph: Graph) -> RewritePlan:
    """Diff the rule's two sides under one match."""
    plan = RewritePlan(rule=rule.name)
    lhs_vars = {n.var for n in rule.lhs.nodes}
    rhs_vars = {n.var for n in rule.rhs.nodes}
    resolved: dict[str, str] = {var: match.nodes[var] for var in lhs_vars}

    for node in rule.lhs.nodes:
        if node.var not in rhs_vars:
            plan.nodes.append(NodeAction(ActionKind.DELETE, node.var, match.nodes[node.var]))

    taken_nodes: set[str] = set()
    for node in rule.rhs.nodes:
        if node.var in lhs_vars:
            plan.nodes.append(NodeAction(
                ActionKind.PERSIST, node.var, match.nodes[node.var], node.type, dict(node.attributes)
            ))
        else:
            node_id = _fresh(f"{rule.name}_{rule.counter}_{node.var}", graph.nodes, taken_nodes)
            resolved[node.var] = node_id
            plan.nodes.append(NodeAction(ActionKind.CREATE, node.var, node_id, node.type, dict(node.attributes)))

    rhs_edges = {edge.key: edge for edge in rule.rhs.edges}
    lhs_keys = {edge.key for edge in rule.lhs.edges}
    for edge in rule.lhs.edges:
        if edge.key not in rhs_edges:
            plan.edges.append(EdgeAction(ActionKind.DELETE, edge.key, match.edges[edge.key]))

    taken_edges: set[str] = set()
    for index, edge in enumerate(rule.rhs.edges):
        source, target = resolved[edge.source], resolved[edge.target]
        if edge.key in lhs_keys:
            plan.edges.append(EdgeAction(
                ActionKind.PERSIST, edge.key, match.edges[edge.key],
                source, target, edge.directed, dict(edge.attributes),
            ))
        else:
            label = edge.var if edge.var is not None else f"e{index}"
            edge_id = _fresh(f"{rule.name}_{rule.counter}_{label}", graph.edges, taken_edges)
            plan.edges.append(EdgeAction(
                ActionKind.CREATE, edge.key, edge_id, source, target, edge.directed, dict(edge.attributes)
            ))
    return plan


def _fresh(base: str, existing: dict[str, Any], taken: set[str]) -> str:
    candidate = base
    counter = 0
    while candidate in existing or candidate in taken:
        counter += 1
        candidate = f"{base}_{counter}"
    taken.add(candidate)
    return candidate


@dataclass
class ApplyResult:
    """Outcome of `apply rule N times`.

    ``converged`` is True when iteration stopped early because no match would
    change the graph any more.
    """
    rule: str
    requested: int
    performed: int = 0
    converged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule,
            "requested": self.requested,
            "performed": self.performed,
            "converged": self.converged,
        }


class RuleRewriter:
    """Applies rules to one graph."""

    def __init__(self, graph: Graph) -> None:
        self.graph = graph

    def next_plan(self, rule: Rule) -> RewritePlan | None:
        """Plan for the first match whose application would change the graph."""
        for match in iter_matches(rule.lhs, self.graph):
            plan = build_plan(rule, match, self.graph)
            if plan.is_effective(self.graph):
                return plan
        return None

    def apply(self, rule: Rule, count: int) -> ApplyResult:
        result = ApplyResult(rule=rule.name, requested=count)
        for iteration in range(count):
            plan = self.next_plan(rule)
            if plan is None:
                result.converged = True
                break
            logger.debug(
                "rule %s iteration %d: %d node action(s), %d edge action(s)",
                rule.name, iteration, len(plan.nodes), len(plan.edges),
            )
            plan.apply(self.graph)
            rule.counter += 1
            result.performed += 1
        logger.info(
            "apply %s: %d/%d performed%s",
            rule.name, result.performed, count, " (converged)" if result.converged else "",
        )
        return result


def edge_patterns(edges: list[EdgePattern]) -> list[EdgePattern]:
    """Number repeated unnamed edge patterns so their keys stay distinct."""
    seen: dict[tuple[str, str, bool], int] = {}
    for edge in edges:
        if edge.var is None:
            triple = edge.connection
            edge.occurrence = seen.get(triple, 0)
            seen[triple] = edge.occurrence + 1
    return edges
