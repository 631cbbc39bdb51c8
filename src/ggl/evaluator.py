"""Statement evaluator: walks a parsed program and builds the graph."""

from __future__ import annotations

import logging
from typing import Any

from ggl.environment import Environment
from ggl.errors import GGLError, InvalidGeneratorParams, TypeMismatch, UnknownRule
from ggl.generators import DEFAULT_PREFIX, DEFAULT_SEED, run_generator
from ggl.graph import Graph
from ggl.matcher import EdgePattern, NodePattern, Pattern
from ggl.parsing.ast import (
    STATEMENT_NAMES,
    ApplyStmt,
    BinaryOp,
    EdgeDecl,
    Expr,
    ForStmt,
    FormattedString,
    GenerateStmt,
    Identifier,
    IfStmt,
    LetStmt,
    Literal,
    NodeDecl,
    PatternBlock,
    Program,
    RuleDef,
    Stmt,
    UnaryOp,
)
from ggl.rewriter import ApplyResult, Rule, RuleRewriter, edge_patterns
from ggl.values import Value, as_integer, binary_op, check_annotation, kind_of, negate, stringify

logger = logging.getLogger(__name__)


class Evaluator:
    """Executes statements against one Graph and one Environment."""

    def __init__(self, default_prefix: str = DEFAULT_PREFIX, default_seed: int = DEFAULT_SEED) -> None:
        self.default_prefix = default_prefix
        self.default_seed = default_seed
        self.graph = Graph()
        self.env = Environment()
        self.rules: dict[str, Rule] = {}
        self.applications: list[ApplyResult] = []
        self.rewriter = RuleRewriter(self.graph)

    # ---- Public API ----

    def run(self, program: Program) -> Graph:
        """Execute every statement of a program and return the graph."""
        self.execute_all(program.statements)
        return self.graph

    def execute_all(self, statements: list[Stmt]) -> None:
        for stmt in statements:
            self.execute(stmt)

    def execute_atomic(self, statements: list[Stmt]) -> None:
        """Execute statements all or nothing.

        On a GGLError the graph, bindings, rules and apply outcomes are put
        back as they were before the first statement, then the error is
        re-raised.
        """
        graph = self.graph.copy()
        scopes = self.env.snapshot()
        rules = dict(self.rules)
        counters = {name: rule.counter for name, rule in rules.items()}
        applied = len(self.applications)
        try:
            self.execute_all(statements)
        except GGLError:
            self.graph = self.rewriter.graph = graph
            self.env.restore(scopes)
            self.rules = rules
            for name, rule in rules.items():
                rule.counter = counters[name]
            del self.applications[applied:]
            raise

    def execute(self, stmt: Stmt) -> None:
        """Execute one statement; errors are tagged with its line and kind."""
        try:
            self._execute_stmt(stmt)
        except GGLError as exc:
            exc.locate(stmt.line, STATEMENT_NAMES.get(type(stmt)))
            raise

    # ---- Statement dispatch ----

    def _execute_stmt(self, stmt: Stmt) -> None:
        logger.debug("line %s: %s", stmt.line, STATEMENT_NAMES.get(type(stmt)))
        if isinstance(stmt, LetStmt):
            self._execute_let(stmt)
        elif isinstance(stmt, ForStmt):
            self._execute_for(stmt)
        elif isinstance(stmt, IfStmt):
            self._execute_if(stmt)
        elif isinstance(stmt, NodeDecl):
            self._execute_node(stmt)
        elif isinstance(stmt, EdgeDecl):
            self._execute_edge(stmt)
        elif isinstance(stmt, GenerateStmt):
            self._execute_generate(stmt)
        elif isinstance(stmt, RuleDef):
            self._execute_rule(stmt)
        elif isinstance(stmt, ApplyStmt):
            self._execute_apply(stmt)
        else:
            raise ValueError(f"GGL: unknown statement type: {type(stmt).__name__}")

    def _execute_let(self, stmt: LetStmt) -> None:
        value = self.evaluate(stmt.value)
        if stmt.annotation is not None:
            value = check_annotation(value, stmt.annotation)
        self.env.bind(stmt.name, value)

    def _execute_for(self, stmt: ForStmt) -> None:
        start = as_integer(self.evaluate(stmt.start), "Range start")
        end = as_integer(self.evaluate(stmt.end), "Range end")
        for i in range(start, end):
            with self.env.child_scope():
                self.env.bind(stmt.variable, i)
                self.execute_all(stmt.body)

    def _execute_if(self, stmt: IfStmt) -> None:
        condition = self.evaluate(stmt.condition)
        if not isinstance(condition, bool):
            raise TypeMismatch(f"Condition must be boolean, got {kind_of(condition)} {stringify(condition)!r}")
        with self.env.child_scope():
            self.execute_all(stmt.body if condition else stmt.orelse)

    def _execute_node(self, stmt: NodeDecl) -> None:
        node_id = self.resolve_name(stmt.id)
        node_type = self.resolve_name(stmt.node_type) if stmt.node_type is not None else None
        self.graph.add_node(node_id, node_type, self._attributes(stmt.attributes))

    def _execute_edge(self, stmt: EdgeDecl) -> None:
        edge_id = self.resolve_name(stmt.id) if stmt.id is not None else None
        self.graph.add_edge(
            self.resolve_name(stmt.source),
            self.resolve_name(stmt.target),
            stmt.directed,
            self._attributes(stmt.attributes),
            edge_id=edge_id,
        )

    def _execute_generate(self, stmt: GenerateStmt) -> None:
        params: dict[str, Value] = {}
        for name, expr in stmt.params:
            if name in params:
                raise InvalidGeneratorParams(f"{stmt.name}: parameter '{name}' given more than once")
            params[name] = self.evaluate(expr)
        generated = run_generator(stmt.name, params, self.default_prefix, self.default_seed)
        self.graph.merge(generated)

    def _execute_rule(self, stmt: RuleDef) -> None:
        rule = Rule(name=stmt.name, lhs=self._pattern(stmt.lhs), rhs=self._pattern(stmt.rhs))
        rule.validate()
        if stmt.name in self.rules:
            logger.debug("rule %s redefined", stmt.name)
        self.rules[stmt.name] = rule

    def _execute_apply(self, stmt: ApplyStmt) -> None:
        rule = self.rules.get(stmt.rule_name)
        if rule is None:
            raise UnknownRule(f"Unknown rule: '{stmt.rule_name}'")
        count = as_integer(self.evaluate(stmt.count), "Apply count")
        if count < 0:
            raise TypeMismatch(f"Apply count must be non-negative, got {count}")
        self.applications.append(self.rewriter.apply(rule, count))

    # ---- Rule patterns ----

    def _pattern(self, block: PatternBlock) -> Pattern:
        nodes = [
            NodePattern(
                var=self._variable(decl.id),
                type=self.resolve_name(decl.node_type) if decl.node_type is not None else None,
                attributes=self._attributes(decl.attributes),
            )
            for decl in block.nodes
        ]
        edges = [
            EdgePattern(
                source=self._variable(decl.source),
                target=self._variable(decl.target),
                directed=decl.directed,
                attributes=self._attributes(decl.attributes),
                var=self._variable(decl.id) if decl.id is not None else None,
            )
            for decl in block.edges
        ]
        return Pattern(nodes=nodes, edges=edge_patterns(edges))

    def _variable(self, expr: Expr) -> str:
        """Pattern variables are taken literally, never looked up."""
        if isinstance(expr, Identifier):
            return expr.name
        return stringify(self.evaluate(expr))

    # ---- Expressions ----

    def _attributes(self, attributes: list[tuple[str, Expr]]) -> dict[str, Value]:
        return {key: self.evaluate(expr) for key, expr in attributes}

    def resolve_name(self, expr: Expr) -> str:
        """Evaluate an id, endpoint or type position.

        A bare identifier stands for its bound value when bound and for
        itself otherwise, so `node alice;` needs no quotes.
        """
        if isinstance(expr, Identifier):
            value = self.env.get(expr.name)
            return expr.name if value is None else stringify(value)
        return stringify(self.evaluate(expr))

    def evaluate(self, expr: Expr) -> Value:
        if isinstance(expr, Literal):
            return expr.value
        elif isinstance(expr, Identifier):
            return self.env.lookup(expr.name)
        elif isinstance(expr, FormattedString):
            return "".join(
                part if isinstance(part, str) else stringify(self.evaluate(part))
                for part in expr.parts
            )
        elif isinstance(expr, UnaryOp):
            return negate(self.evaluate(expr.operand))
        elif isinstance(expr, BinaryOp):
            return binary_op(expr.op, self.evaluate(expr.left), self.evaluate(expr.right))
        else:
            raise ValueError(f"GGL: unknown expression type: {type(expr).__name__}")

    def snapshot(self) -> dict[str, Any]:
        """Graph plus apply outcomes, the shape returned to hosts."""
        return {
            "graph": self.graph.to_dict(),
            "applications": [a.to_dict() for a in self.applications],
        }
