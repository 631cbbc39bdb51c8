"""Dump a graph back to GGL source as literal node and edge declarations."""

from __future__ import annotations

import math

from ggl.graph import Edge, Graph, Node
from ggl.parsing.lexer import is_plain_name
from ggl.values import Value

_STRING_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "{": "{{",
    "}": "}}",
}


def quote(text: str) -> str:
    """Quote a string so it parses back to exactly ``text`` (no interpolation)."""
    return '"' + "".join(_STRING_ESCAPES.get(ch, ch) for ch in text) + '"'


def format_value(value: Value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"Cannot dump non-finite float {value!r}")
        text = repr(value)
        mantissa, _, exponent = text.partition("e")
        if "." not in mantissa:
            mantissa += ".0"
        return f"{mantissa}e{exponent}" if exponent else mantissa
    return quote(value)


def _format_attributes(attributes: dict[str, Value]) -> str:
    if not attributes:
        return ""
    parts = []
    for key, value in attributes.items():
        if not is_plain_name(key):
            raise ValueError(f"Attribute name {key!r} cannot be written as GGL source")
        parts.append(f"{key}={format_value(value)}")
    return " [" + ", ".join(parts) + "]"


def dump_node(node: Node) -> str:
    type_part = f": {quote(node.type)}" if node.type is not None else ""
    return f"node {quote(node.id)}{type_part}{_format_attributes(node.attributes)};"


def dump_edge(edge: Edge) -> str:
    op = "->" if edge.directed else "--"
    return (
        f"edge {quote(edge.id)}: {quote(edge.source)} {op} {quote(edge.target)}"
        f"{_format_attributes(edge.attributes)};"
    )


def to_source(graph: Graph, name: str | None = None, indent: str = "    ") -> str:
    """Render ``graph`` as a GGL program that rebuilds it exactly."""
    lines = [dump_node(node) for node in graph.nodes.values()]
    lines.extend(dump_edge(edge) for edge in graph.edges.values())
    if name is None:
        return "\n".join(lines) + ("\n" if lines else "")
    body = "".join(f"{indent}{line}\n" for line in lines)
    return f"graph {name} {{\n{body}}}\n"
