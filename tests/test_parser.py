"""Tests for the GGL parser."""

import pytest

from ggl.parsing.ast import (
    ApplyStmt,
    BinaryOp,
    EdgeDecl,
    ForStmt,
    FormattedString,
    GenerateStmt,
    Identifier,
    IfStmt,
    LetStmt,
    Literal,
    NodeDecl,
    Program,
    RuleDef,
    UnaryOp,
)
from ggl.parsing.parser import GGLParser


@pytest.fixture
def parser():
    p = GGLParser()
    p.build(debug=False, write_tables=False)
    return p


def only(program: Program):
    assert len(program.statements) == 1
    return program.statements[0]


class TestProgram:
    def test_empty(self, parser):
        assert parser.parse("") == Program()

    def test_graph_wrapper(self, parser):
        program = parser.parse("graph social { node alice; node bob; }")
        assert program.name == "social"
        assert len(program.statements) == 2

    def test_unnamed_wrapper(self, parser):
        program = parser.parse("graph { node a; }")
        assert program.name is None
        assert len(program.statements) == 1

    def test_bare_statements(self, parser):
        program = parser.parse("node a;\nnode b;\n")
        assert [s.line for s in program.statements] == [1, 2]

    def test_stray_semicolons(self, parser):
        program = parser.parse("node a;; generate path { nodes: 2; };")
        assert len(program.statements) == 2


class TestLet:
    def test_plain(self, parser):
        stmt = only(parser.parse("let n = 5;"))
        assert stmt == LetStmt(name="n", value=Literal(5), line=1)

    def test_annotated(self, parser):
        stmt = only(parser.parse("let ratio: float = 1;"))
        assert stmt.annotation == "float"

    def test_precedence(self, parser):
        stmt = only(parser.parse("let x = 1 + 2 * 3;"))
        assert stmt.value == BinaryOp("+", Literal(1), BinaryOp("*", Literal(2), Literal(3)))

    def test_parentheses(self, parser):
        stmt = only(parser.parse("let x = (1 + 2) * 3;"))
        assert stmt.value == BinaryOp("*", BinaryOp("+", Literal(1), Literal(2)), Literal(3))

    def test_negative_literal_folded(self, parser):
        stmt = only(parser.parse("let x = -3;"))
        assert stmt.value == Literal(-3)

    def test_negated_identifier(self, parser):
        stmt = only(parser.parse("let x = -y;"))
        assert stmt.value == UnaryOp("-", Identifier("y"))

    def test_booleans(self, parser):
        stmt = only(parser.parse("let flag = true;"))
        assert stmt.value == Literal(True)

    def test_comparison(self, parser):
        stmt = only(parser.parse("let b = i % 2 == 0;"))
        assert stmt.value == BinaryOp("==", BinaryOp("%", Identifier("i"), Literal(2)), Literal(0))


class TestStrings:
    def test_plain_string(self, parser):
        stmt = only(parser.parse('let s = "hello";'))
        assert stmt.value == Literal("hello")

    def test_escapes(self, parser):
        stmt = only(parser.parse(r'let s = "a\"b\n";'))
        assert stmt.value == Literal('a"b\n')

    def test_interpolation(self, parser):
        stmt = only(parser.parse('let s = "n{i}";'))
        assert stmt.value == FormattedString(["n", Identifier("i")])

    def test_interpolated_expression(self, parser):
        stmt = only(parser.parse('let s = "{i + 1}_x";'))
        assert stmt.value == FormattedString([BinaryOp("+", Identifier("i"), Literal(1)), "_x"])

    def test_escaped_braces(self, parser):
        stmt = only(parser.parse('let s = "{{literal}}";'))
        assert stmt.value == Literal("{literal}")

    def test_bad_placeholder(self, parser):
        with pytest.raises(SyntaxError):
            parser.parse('let s = "{1 +}";')

    def test_unterminated_placeholder(self, parser):
        with pytest.raises(SyntaxError, match="Unterminated"):
            parser.parse('let s = "{i";')


class TestControlFlow:
    def test_for(self, parser):
        stmt = only(parser.parse('for i in 0..3 { node "n{i}"; }'))
        assert isinstance(stmt, ForStmt)
        assert stmt.variable == "i"
        assert (stmt.start, stmt.end) == (Literal(0), Literal(3))
        assert isinstance(stmt.body[0], NodeDecl)

    def test_if_else(self, parser):
        stmt = only(parser.parse("if x > 1 { node a; } else { node b; node c; }"))
        assert isinstance(stmt, IfStmt)
        assert len(stmt.body) == 1
        assert len(stmt.orelse) == 2

    def test_nested_line_numbers(self, parser):
        stmt = only(parser.parse("for i in 0..2 {\n  node a;\n}"))
        assert stmt.line == 1
        assert stmt.body[0].line == 2


class TestDeclarations:
    def test_node_full(self, parser):
        stmt = only(parser.parse('node alice: person [age=30, name="Alice"];'))
        assert stmt.id == Identifier("alice")
        assert stmt.node_type == Identifier("person")
        assert stmt.attributes == [("age", Literal(30)), ("name", Literal("Alice"))]

    def test_node_empty_attrs(self, parser):
        stmt = only(parser.parse("node a [];"))
        assert stmt.attributes == []

    def test_node_string_id(self, parser):
        stmt = only(parser.parse('node "n{i}";'))
        assert stmt.id == FormattedString(["n", Identifier("i")])

    def test_edge_named(self, parser):
        stmt = only(parser.parse("edge friends: alice -- bob [since=2020];"))
        assert stmt == EdgeDecl(
            source=Identifier("alice"),
            target=Identifier("bob"),
            directed=False,
            id=Identifier("friends"),
            attributes=[("since", Literal(2020))],
            line=1,
        )

    def test_edge_anonymous_colon(self, parser):
        stmt = only(parser.parse("edge : a -> b;"))
        assert stmt.id is None
        assert stmt.directed is True

    def test_edge_bare(self, parser):
        stmt = only(parser.parse("edge a -> b;"))
        assert stmt.id is None
        assert (stmt.source, stmt.target) == (Identifier("a"), Identifier("b"))


class TestGenerateRuleApply:
    def test_generate(self, parser):
        stmt = only(parser.parse('generate complete { nodes: 3; prefix: "u"; }'))
        assert stmt == GenerateStmt(
            name="complete",
            params=[("nodes", Literal(3)), ("prefix", Literal("u"))],
            line=1,
        )

    def test_generate_no_params(self, parser):
        stmt = only(parser.parse("generate path { }"))
        assert stmt.params == []

    def test_rule(self, parser):
        stmt = only(parser.parse("""
            rule activate {
                lhs { node p: person; }
                rhs { node p: person [active=true]; }
            }
        """))
        assert isinstance(stmt, RuleDef)
        assert stmt.name == "activate"
        assert stmt.line == 2
        assert len(stmt.lhs.nodes) == 1
        assert stmt.rhs.nodes[0].attributes == [("active", Literal(True))]

    def test_rule_with_edges(self, parser):
        stmt = only(parser.parse("""
            rule link { lhs { node a; node b; edge a -- b; } rhs { node a; node b; } }
        """))
        assert len(stmt.lhs.edges) == 1
        assert stmt.rhs.edges == []

    def test_apply(self, parser):
        stmt = only(parser.parse("apply grow 10 times;"))
        assert stmt == ApplyStmt(rule_name="grow", count=Literal(10), line=1)

    def test_apply_expression_count(self, parser):
        stmt = only(parser.parse("apply grow n * 2 times;"))
        assert stmt.count == BinaryOp("*", Identifier("n"), Literal(2))


class TestErrors:
    def test_missing_semicolon(self, parser):
        with pytest.raises(SyntaxError, match="position"):
            parser.parse("node a node b;")

    def test_unexpected_end(self, parser):
        with pytest.raises(SyntaxError, match="end of input"):
            parser.parse("node a")

    def test_error_reports_line(self, parser):
        with pytest.raises(SyntaxError, match="line 3"):
            parser.parse("node a;\nnode b;\nedge -> ;")

    def test_parser_reusable_after_error(self, parser):
        with pytest.raises(SyntaxError):
            parser.parse("node ;")
        assert len(parser.parse("node a;").statements) == 1
