"""Graph store — the mutable attributed multigraph every other module works on."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterator

from ggl.errors import DanglingReference
from ggl.values import Value, kind_of


@dataclass
class Node:
    """A graph node. ``type`` is None for untyped nodes."""
    id: str
    type: str | None = None
    attributes: dict[str, Value] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        if self.type is not None:
            data["type"] = self.type
        data["attributes"] = dict(self.attributes)
        return data


@dataclass
class Edge:
    """A graph edge between two existing nodes."""
    id: str
    source: str
    target: str
    directed: bool = False
    attributes: dict[str, Value] = field(default_factory=dict)

    def endpoints(self) -> tuple[str, str]:
        return (self.source, self.target)

    def connects(self, a: str, b: str) -> bool:
        """True if the edge runs a→b, or b→a when undirected."""
        if self.source == a and self.target == b:
            return True
        return not self.directed and self.source == b and self.target == a

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "directed": self.directed,
            "attributes": dict(self.attributes),
        }


class Graph:
    """Nodes and edges keyed by id, kept in insertion order.

    Every edge endpoint exists in the node set at all times: edges to absent
    nodes are rejected and node removal cascades to incident edges.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, Node] = {}
        self.edges: dict[str, Edge] = {}
        # node id → {edge id: None}, an ordered set of incident edges
        self._incident: dict[str, dict[str, None]] = {}

    # ---- Queries ----

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Edge | None:
        return self.edges.get(edge_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self.edges

    def node_count(self) -> int:
        return len(self.nodes)

    def edge_count(self) -> int:
        return len(self.edges)

    def incident_edges(self, node_id: str) -> list[Edge]:
        return [self.edges[eid] for eid in self._incident.get(node_id, {})]

    def edges_between(self, a: str, b: str) -> list[Edge]:
        """Edges running a→b, plus undirected edges joining a and b either way."""
        return [e for e in self.incident_edges(a) if e.connects(a, b)]

    def degree(self, node_id: str) -> int:
        """Number of edge endpoints at the node (a self-loop counts twice)."""
        total = 0
        for edge in self.incident_edges(node_id):
            total += 2 if edge.source == edge.target else 1
        return total

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self.nodes.values()))

    def __len__(self) -> int:
        return len(self.nodes)

    # ---- Mutations ----

    def add_node(
        self,
        node_id: str,
        node_type: str | None = None,
        attributes: dict[str, Value] | None = None,
    ) -> Node:
        """Create a node, or merge into an existing one with the same id."""
        for value in (attributes or {}).values():
            kind_of(value)
        existing = self.nodes.get(node_id)
        if existing is not None:
            if node_type is not None:
                existing.type = node_type
            existing.attributes.update(attributes or {})
            return existing
        node = Node(id=node_id, type=node_type, attributes=dict(attributes or {}))
        self.nodes[node_id] = node
        self._incident[node_id] = {}
        return node

    def add_edge(
        self,
        source: str,
        target: str,
        directed: bool = False,
        attributes: dict[str, Value] | None = None,
        edge_id: str | None = None,
    ) -> Edge:
        """Create an edge. An explicit id that already exists is replaced."""
        for endpoint in (source, target):
            if endpoint not in self.nodes:
                raise DanglingReference(
                    f"Edge {edge_id or f'{source}->{target}'!r} references missing node '{endpoint}'"
                )
        for value in (attributes or {}).values():
            kind_of(value)
        if edge_id is None:
            edge_id = self.unique_edge_id(f"e_{source}_{target}")
        elif edge_id in self.edges:
            self.remove_edge(edge_id)
        edge = Edge(
            id=edge_id,
            source=source,
            target=target,
            directed=directed,
            attributes=dict(attributes or {}),
        )
        self.edges[edge_id] = edge
        self._incident[source][edge_id] = None
        self._incident[target][edge_id] = None
        return edge

    def unique_edge_id(self, base: str) -> str:
        candidate = base
        counter = 0
        while candidate in self.edges:
            counter += 1
            candidate = f"{base}_{counter}"
        return candidate

    def unique_node_id(self, base: str) -> str:
        candidate = base
        counter = 0
        while candidate in self.nodes:
            counter += 1
            candidate = f"{base}_{counter}"
        return candidate

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every incident edge. Absent ids are ignored."""
        if node_id not in self.nodes:
            return
        for edge_id in list(self._incident[node_id]):
            self.remove_edge(edge_id)
        del self._incident[node_id]
        del self.nodes[node_id]

    def remove_edge(self, edge_id: str) -> None:
        edge = self.edges.pop(edge_id, None)
        if edge is None:
            return
        self._incident[edge.source].pop(edge_id, None)
        self._incident[edge.target].pop(edge_id, None)

    def update_node(
        self,
        node_id: str,
        node_type: str | None = None,
        attributes: dict[str, Value] | None = None,
    ) -> Node:
        node = self.nodes.get(node_id)
        if node is None:
            raise DanglingReference(f"Cannot update missing node '{node_id}'")
        for value in (attributes or {}).values():
            kind_of(value)
        if node_type is not None:
            node.type = node_type
        node.attributes.update(attributes or {})
        return node

    def update_edge(self, edge_id: str, attributes: dict[str, Value] | None = None) -> Edge:
        edge = self.edges.get(edge_id)
        if edge is None:
            raise DanglingReference(f"Cannot update missing edge '{edge_id}'")
        for value in (attributes or {}).values():
            kind_of(value)
        edge.attributes.update(attributes or {})
        return edge

    def merge(self, other: Graph) -> None:
        """Add all nodes, then all edges, of another graph."""
        for node in other.nodes.values():
            self.add_node(node.id, node.type, node.attributes)
        for edge in other.edges.values():
            self.add_edge(edge.source, edge.target, edge.directed, edge.attributes, edge_id=edge.id)

    def copy(self) -> Graph:
        clone = Graph()
        clone.merge(self)
        return clone

    # ---- Serialization ----

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges.values()],
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Graph:
        graph = cls()
        for node in data.get("nodes", []):
            graph.add_node(node["id"], node.get("type"), node.get("attributes") or {})
        for edge in data.get("edges", []):
            graph.add_edge(
                edge["source"],
                edge["target"],
                bool(edge.get("directed", False)),
                edge.get("attributes") or {},
                edge_id=edge.get("id"),
            )
        return graph

    @classmethod
    def from_json(cls, text: str) -> Graph:
        return cls.from_dict(json.loads(text))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self.nodes)}, edges={len(self.edges)})"
