"""Topology generators invoked by `generate name { ... }`.

Each generator takes validated parameters and an id prefix and returns a fresh
Graph that the evaluator merges into its store. Node ids are
``{prefix}{index}``; edge ids are ``e_{source}_{target}``.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable

from ggl.errors import InvalidGeneratorParams, TypeMismatch, UnknownGenerator
from ggl.graph import Graph
from ggl.values import BOOLEAN, INTEGER, STRING, Value, as_integer, kind_of, stringify

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "n"
DEFAULT_SEED = 42

# Parameter name -> expected kind
PARAM_KINDS: dict[str, str] = {
    "nodes": INTEGER,
    "rows": INTEGER,
    "cols": INTEGER,
    "depth": INTEGER,
    "branching": INTEGER,
    "edges_per_node": INTEGER,
    "seed": INTEGER,
    "directed": BOOLEAN,
    "periodic": BOOLEAN,
    "prefix": STRING,
}

# Short spellings accepted for some parameters
PARAM_ALIASES: dict[str, str] = {
    "n": "nodes",
    "m": "edges_per_node",
}


@dataclass
class GeneratorSpec:
    """A registered generator and its parameter contract."""
    func: Callable[[dict[str, Any], str], Graph]
    required: tuple[str, ...]
    optional: dict[str, Value] = field(default_factory=dict)
    description: str = ""

    @property
    def parameters(self) -> list[str]:
        return list(self.required) + [name for name in self.optional if name not in self.required]


def _node_id(prefix: str, index: int) -> str:
    return f"{prefix}{index}"


def _add_nodes(graph: Graph, prefix: str, count: int) -> list[str]:
    ids = [_node_id(prefix, i) for i in range(count)]
    for node_id in ids:
        graph.add_node(node_id)
    return ids


def _connect(graph: Graph, source: str, target: str, directed: bool) -> None:
    graph.add_edge(source, target, directed=directed)


# ---- Generators ----


def generate_complete(params: dict[str, Any], prefix: str) -> Graph:
    graph = Graph()
    ids = _add_nodes(graph, prefix, params["nodes"])
    directed = params["directed"]
    for i, source in enumerate(ids):
        for j, target in enumerate(ids):
            if i == j or (not directed and j < i):
                continue
            _connect(graph, source, target, directed)
    return graph


def generate_path(params: dict[str, Any], prefix: str) -> Graph:
    graph = Graph()
    ids = _add_nodes(graph, prefix, params["nodes"])
    for source, target in zip(ids, ids[1:]):
        _connect(graph, source, target, params["directed"])
    return graph


def generate_cycle(params: dict[str, Any], prefix: str) -> Graph:
    """Path plus a closing edge from the last node back to the first.

    One node gives a self-loop. Two nodes give two antiparallel edges when
    directed and a single edge when undirected.
    """
    graph = generate_path(params, prefix)
    n = params["nodes"]
    directed = params["directed"]
    if n == 1 or (n == 2 and directed) or n > 2:
        _connect(graph, _node_id(prefix, n - 1), _node_id(prefix, 0), directed)
    return graph


def generate_grid(params: dict[str, Any], prefix: str) -> Graph:
    """rows x cols lattice, node index r*cols + c.

    With ``periodic`` every row and column is closed into a ring, so a
    length-2 ring gets a second parallel edge and a length-1 ring a self-loop.
    """
    graph = Graph()
    rows, cols = params["rows"], params["cols"]
    directed = params["directed"]
    _add_nodes(graph, prefix, rows * cols)

    def at(r: int, c: int) -> str:
        return _node_id(prefix, r * cols + c)

    for r in range(rows):
        for c in range(cols):
            if c + 1 < cols:
                _connect(graph, at(r, c), at(r, c + 1), directed)
            if r + 1 < rows:
                _connect(graph, at(r, c), at(r + 1, c), directed)
    if params["periodic"] and rows and cols:
        for r in range(rows):
            _connect(graph, at(r, cols - 1), at(r, 0), directed)
        for c in range(cols):
            _connect(graph, at(rows - 1, c), at(0, c), directed)
    return graph


def generate_star(params: dict[str, Any], prefix: str) -> Graph:
    """Hub ``{prefix}0`` joined to leaves ``{prefix}1`` .. ``{prefix}n``."""
    graph = Graph()
    leaves = params["nodes"]
    ids = _add_nodes(graph, prefix, leaves + 1)
    hub = ids[0]
    for leaf in ids[1:]:
        _connect(graph, hub, leaf, params["directed"])
    return graph


def generate_tree(params: dict[str, Any], prefix: str) -> Graph:
    """Balanced tree, numbered breadth-first from the root ``{prefix}0``."""
    graph = Graph()
    depth, branching = params["depth"], params["branching"]
    directed = params["directed"]
    graph.add_node(_node_id(prefix, 0))
    level = [0]
    next_index = 1
    for _ in range(depth):
        children = []
        for parent in level:
            for _ in range(branching):
                graph.add_node(_node_id(prefix, next_index))
                _connect(graph, _node_id(prefix, parent), _node_id(prefix, next_index), directed)
                children.append(next_index)
                next_index += 1
        if not children:
            break
        level = children
    return graph


def generate_barabasi_albert(params: dict[str, Any], prefix: str) -> Graph:
    """Preferential attachment grown from a seed clique of m nodes.

    Each new node attaches to m distinct existing nodes drawn without
    replacement with probability proportional to degree (uniformly while every
    candidate still has degree zero).
    """
    n, m = params["nodes"], params["edges_per_node"]
    if m < 1:
        raise InvalidGeneratorParams(f"Parameter 'edges_per_node' must be at least 1, got {m}")
    if m >= n:
        raise InvalidGeneratorParams(
            f"Parameter 'edges_per_node' ({m}) must be less than 'nodes' ({n})"
        )
    rng = random.Random(params["seed"])
    graph = Graph()
    ids = _add_nodes(graph, prefix, n)
    degree = [0] * n
    for i in range(m):
        for j in range(i + 1, m):
            _connect(graph, ids[i], ids[j], False)
            degree[i] += 1
            degree[j] += 1

    for new in range(m, n):
        candidates = list(range(new))
        targets: list[int] = []
        for _ in range(m):
            targets.append(_weighted_pick(rng, candidates, degree))
            candidates.remove(targets[-1])
        for target in targets:
            _connect(graph, ids[new], ids[target], False)
            degree[new] += 1
            degree[target] += 1
    return graph


def _weighted_pick(rng: random.Random, candidates: list[int], degree: list[int]) -> int:
    total = sum(degree[c] for c in candidates)
    if total == 0:
        return candidates[rng.randrange(len(candidates))]
    threshold = rng.random() * total
    running = 0
    for candidate in candidates:
        running += degree[candidate]
        if threshold < running:
            return candidate
    # Float rounding can leave threshold == total; fall back to the last weighted one
    return [c for c in candidates if degree[c] > 0][-1]


_SCALE_FREE = GeneratorSpec(
    generate_barabasi_albert,
    required=("nodes", "edges_per_node"),
    optional={"seed": DEFAULT_SEED},
    description="Scale-free graph by preferential attachment (Barabasi-Albert)",
)

GENERATORS: dict[str, GeneratorSpec] = {
    "complete": GeneratorSpec(
        generate_complete, ("nodes",), {"directed": False},
        "Every pair of nodes joined by an edge",
    ),
    "path": GeneratorSpec(
        generate_path, ("nodes",), {"directed": False},
        "Nodes joined in a line",
    ),
    "cycle": GeneratorSpec(
        generate_cycle, ("nodes",), {"directed": False},
        "A path closed into a ring",
    ),
    "grid": GeneratorSpec(
        generate_grid, ("rows", "cols"), {"periodic": False, "directed": False},
        "2-D lattice, optionally wrapped into a torus",
    ),
    "star": GeneratorSpec(
        generate_star, ("nodes",), {"directed": False},
        "A hub joined to n leaves",
    ),
    "tree": GeneratorSpec(
        generate_tree, ("depth", "branching"), {"directed": True},
        "Balanced tree with edges from parent to child",
    ),
    "barabasi_albert": _SCALE_FREE,
    "scale_free": _SCALE_FREE,
}


# ---- Parameter validation ----


def _check_param(generator: str, name: str, value: Value) -> Value:
    expected = PARAM_KINDS[name]
    actual = kind_of(value)
    if expected == INTEGER:
        try:
            number = as_integer(value, f"Parameter '{name}'")
        except TypeMismatch as exc:
            raise InvalidGeneratorParams(f"{generator}: {exc.message}") from exc
        if number < 0 and name != "seed":
            raise InvalidGeneratorParams(
                f"{generator}: parameter '{name}' must be non-negative, got {number}"
            )
        return number
    if actual != expected:
        raise InvalidGeneratorParams(
            f"{generator}: parameter '{name}' must be {expected}, got {actual} {stringify(value)!r}"
        )
    return value


def resolve_params(name: str, params: dict[str, Value], default_prefix: str = DEFAULT_PREFIX,
                   default_seed: int = DEFAULT_SEED) -> tuple[dict[str, Any], str]:
    """Validate raw parameters against a generator's contract.

    Returns the complete parameter map (defaults filled in) and the id prefix.
    """
    spec = GENERATORS.get(name)
    if spec is None:
        raise UnknownGenerator(f"Unknown generator: '{name}'")

    resolved: dict[str, Any] = {}
    for raw_name, value in params.items():
        key = PARAM_ALIASES.get(raw_name, raw_name)
        if key != "prefix" and key not in spec.required and key not in spec.optional:
            raise InvalidGeneratorParams(f"{name}: unknown parameter '{raw_name}'")
        if key in resolved:
            raise InvalidGeneratorParams(f"{name}: parameter '{key}' given more than once")
        resolved[key] = _check_param(name, key, value)

    missing = [key for key in spec.required if key not in resolved]
    if missing:
        raise InvalidGeneratorParams(
            f"{name}: missing required parameter(s): {', '.join(repr(m) for m in missing)}"
        )
    for key, default in spec.optional.items():
        if key == "seed":
            default = default_seed
        resolved.setdefault(key, default)
    prefix = resolved.pop("prefix", default_prefix)
    return resolved, prefix


def run_generator(name: str, params: dict[str, Value], default_prefix: str = DEFAULT_PREFIX,
                  default_seed: int = DEFAULT_SEED) -> Graph:
    """Validate parameters and run the named generator."""
    resolved, prefix = resolve_params(name, params, default_prefix, default_seed)
    logger.debug("generate %s prefix=%r params=%r", name, prefix, resolved)
    graph = GENERATORS[name].func(resolved, prefix)
    logger.debug("generate %s produced %d nodes, %d edges", name, graph.node_count(), graph.edge_count())
    return graph
