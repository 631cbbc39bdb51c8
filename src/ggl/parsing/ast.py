"""GGL abstract syntax tree — expression and statement nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from ggl.values import Value


# ---- Expression AST nodes ----


@dataclass
class Literal:
    """A string, integer, float or boolean literal."""
    value: Value


@dataclass
class Identifier:
    """A bare name, looked up in the environment."""
    name: str


@dataclass
class FormattedString:
    """A string literal with {expr} placeholders.

    ``parts`` alternates literal text (str) and placeholder expressions.
    """
    parts: list[Union[str, Expr]]


@dataclass
class UnaryOp:
    op: str  # "-"
    operand: Expr


@dataclass
class BinaryOp:
    op: str  # + - * / % == != < <= > >=
    left: Expr
    right: Expr


Expr = Union[Literal, Identifier, FormattedString, UnaryOp, BinaryOp]


# ---- Statement AST nodes ----


@dataclass
class LetStmt:
    """let name [: type] = value;"""
    name: str
    value: Expr
    annotation: str | None = None
    line: int = 0


@dataclass
class ForStmt:
    """for var in start..end { body }"""
    variable: str
    start: Expr
    end: Expr
    body: list[Stmt] = field(default_factory=list)
    line: int = 0


@dataclass
class IfStmt:
    """if condition { body } [else { orelse }]"""
    condition: Expr
    body: list[Stmt] = field(default_factory=list)
    orelse: list[Stmt] = field(default_factory=list)
    line: int = 0


@dataclass
class NodeDecl:
    """node id [:type] [attrs];"""
    id: Expr
    node_type: Expr | None = None
    attributes: list[tuple[str, Expr]] = field(default_factory=list)
    line: int = 0


@dataclass
class EdgeDecl:
    """edge [id]: source (->|--) target [attrs];"""
    source: Expr
    target: Expr
    directed: bool
    id: Expr | None = None
    attributes: list[tuple[str, Expr]] = field(default_factory=list)
    line: int = 0


@dataclass
class GenerateStmt:
    """generate name { key: value; ... }"""
    name: str
    params: list[tuple[str, Expr]] = field(default_factory=list)
    line: int = 0


@dataclass
class PatternBlock:
    """Node and edge declarations inside an lhs/rhs block."""
    nodes: list[NodeDecl] = field(default_factory=list)
    edges: list[EdgeDecl] = field(default_factory=list)


@dataclass
class RuleDef:
    """rule name { lhs { ... } rhs { ... } }"""
    name: str
    lhs: PatternBlock
    rhs: PatternBlock
    line: int = 0


@dataclass
class ApplyStmt:
    """apply rule count times;"""
    rule_name: str
    count: Expr
    line: int = 0


Stmt = Union[LetStmt, ForStmt, IfStmt, NodeDecl, EdgeDecl, GenerateStmt, RuleDef, ApplyStmt]


@dataclass
class Program:
    """A parsed program; ``name`` comes from an optional `graph name { }` wrapper."""
    statements: list[Stmt] = field(default_factory=list)
    name: str | None = None


STATEMENT_NAMES: dict[type, str] = {
    LetStmt: "let",
    ForStmt: "for",
    IfStmt: "if",
    NodeDecl: "node",
    EdgeDecl: "edge",
    GenerateStmt: "generate",
    RuleDef: "rule",
    ApplyStmt: "apply",
}
