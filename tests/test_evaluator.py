"""Tests for the statement evaluator."""

import pytest

from ggl.errors import (
    DanglingReference,
    InvalidGeneratorParams,
    InvalidPattern,
    TypeMismatch,
    UnboundVariable,
    UnknownGenerator,
    UnknownRule,
)
from ggl.evaluator import Evaluator
from ggl.parsing.parser import GGLParser


@pytest.fixture
def parser():
    p = GGLParser()
    p.build(debug=False, write_tables=False)
    return p


@pytest.fixture
def run(parser):
    def _run(source, **kwargs):
        evaluator = Evaluator(**kwargs)
        evaluator.run(parser.parse(source))
        return evaluator
    return _run


class TestBindings:
    def test_let_and_attribute(self, run):
        ev = run('let age = 30; node alice: person [age=age, tag="a{age}"];')
        node = ev.graph.get_node("alice")
        assert node.type == "person"
        assert node.attributes == {"age": 30, "tag": "a30"}

    def test_unbound_in_value_position(self, run):
        with pytest.raises(UnboundVariable) as exc_info:
            run("node a [x=missing];")
        assert exc_info.value.line == 1
        assert exc_info.value.statement == "node"

    def test_unbound_in_interpolation(self, run):
        with pytest.raises(UnboundVariable):
            run('node "n{j}";')

    def test_bare_name_resolves_when_bound(self, run):
        ev = run('let who = "carol"; node who;')
        assert list(ev.graph.nodes) == ["carol"]

    def test_annotation_mismatch(self, run):
        with pytest.raises(TypeMismatch):
            run('let n: int = "five";')

    def test_annotation_widening(self, run):
        ev = run("let r: float = 2; node a [r=r];")
        assert ev.graph.get_node("a").attributes["r"] == 2.0
        assert isinstance(ev.graph.get_node("a").attributes["r"], float)

    def test_boolean_interpolation(self, run):
        ev = run('let f = true; node "flag_{f}";')
        assert ev.graph.has_node("flag_true")


class TestLoops:
    def test_range_is_half_open(self, run):
        ev = run('for i in 0..3 { node "n{i}"; }')
        assert list(ev.graph.nodes) == ["n0", "n1", "n2"]

    def test_empty_range(self, run):
        ev = run('for i in 3..3 { node "n{i}"; }')
        assert ev.graph.node_count() == 0

    def test_loop_variable_scoped(self, run):
        with pytest.raises(UnboundVariable):
            run('for i in 0..2 { node "n{i}"; } node x [v=i];')

    def test_shadowing_restored(self, run):
        ev = run('let i = 100; for i in 0..2 { node "n{i}"; } node last [v=i];')
        assert ev.graph.get_node("last").attributes["v"] == 100

    def test_nested_loops_and_edges(self, run):
        ev = run("""
            for i in 0..3 { node "v{i}"; }
            for i in 0..3 {
                for j in i + 1..3 {
                    edge "v{i}" -- "v{j}";
                }
            }
        """)
        assert ev.graph.edge_count() == 3

    def test_integral_float_bound(self, run):
        ev = run('for i in 0..2.0 { node "n{i}"; }')
        assert ev.graph.node_count() == 2

    def test_string_bound_rejected(self, run):
        with pytest.raises(TypeMismatch) as exc_info:
            run('for i in 0.."3" { node "n{i}"; }')
        assert exc_info.value.statement == "for"

    def test_error_inside_loop_located_at_inner_statement(self, run):
        with pytest.raises(DanglingReference) as exc_info:
            run('for i in 0..2 {\n  edge "a" -> "b";\n}')
        assert exc_info.value.line == 2
        assert exc_info.value.statement == "edge"


class TestConditionals:
    def test_if_else(self, run):
        ev = run("""
            for i in 0..4 {
                if i % 2 == 0 { node "even{i}"; } else { node "odd{i}"; }
            }
        """)
        assert list(ev.graph.nodes) == ["even0", "odd1", "even2", "odd3"]

    def test_condition_must_be_boolean(self, run):
        with pytest.raises(TypeMismatch):
            run("if 1 { node a; }")


class TestDeclarations:
    def test_edge_between_declared_nodes(self, run):
        ev = run("node a; node b; edge friends: a -- b [since=2020]; edge a -> b;")
        assert ev.graph.get_edge("friends").attributes == {"since": 2020}
        assert ev.graph.get_edge("e_a_b").directed is True

    def test_dangling_edge(self, run):
        with pytest.raises(DanglingReference):
            run("node a; edge a -- ghost;")

    def test_redeclaration_merges(self, run):
        ev = run("node a: t [x=1]; node a [y=2];")
        node = ev.graph.get_node("a")
        assert node.type == "t"
        assert node.attributes == {"x": 1, "y": 2}


class TestGenerate:
    def test_complete_with_prefix(self, run):
        ev = run('generate complete { nodes: 3; prefix: "u"; }')
        assert list(ev.graph.nodes) == ["u0", "u1", "u2"]
        assert ev.graph.edge_count() == 3

    def test_parameters_are_expressions(self, run):
        ev = run("let size = 2; generate grid { rows: size; cols: size + 1; }")
        assert ev.graph.node_count() == 6

    def test_default_prefix_configurable(self, run):
        ev = run("generate path { nodes: 2; }", default_prefix="v")
        assert list(ev.graph.nodes) == ["v0", "v1"]

    def test_generated_graph_merges(self, run):
        ev = run("node n0 [keep=true]; generate path { nodes: 2; }")
        assert ev.graph.get_node("n0").attributes == {"keep": True}
        assert ev.graph.edge_count() == 1

    def test_unknown_generator(self, run):
        with pytest.raises(UnknownGenerator) as exc_info:
            run("generate nope { nodes: 1; }")
        assert exc_info.value.statement == "generate"

    def test_bad_params(self, run):
        with pytest.raises(InvalidGeneratorParams):
            run('generate complete { nodes: "x"; }')

    def test_duplicate_param(self, run):
        with pytest.raises(InvalidGeneratorParams):
            run("generate path { nodes: 2; nodes: 3; }")


class TestRules:
    def test_convergence(self, run):
        ev = run("""
            for i in 0..4 { node "p{i}": person; }
            rule activate {
                lhs { node p: person; }
                rhs { node p: person [active=true]; }
            }
            apply activate 10 times;
        """)
        assert all(n.attributes == {"active": True} for n in ev.graph)
        result = ev.applications[0]
        assert result.converged is True
        assert result.performed <= 4

    def test_apply_after_convergence_changes_nothing(self, run, parser):
        ev = run("""
            for i in 0..4 { node "p{i}": person; }
            rule activate {
                lhs { node p: person; }
                rhs { node p: person [active=true]; }
            }
            apply activate 10 times;
        """)
        before = ev.graph.to_json()
        ev.execute_all(parser.parse("apply activate 10 times;").statements)
        assert [a.performed for a in ev.applications] == [4, 0]
        assert ev.applications[1].converged is True
        assert ev.graph.to_json() == before

    def test_kept_edge_moved_off_deleted_node(self, run):
        ev = run("""
            node a: hub; node b: leaf;
            edge link: a -> b [w=3];
            rule move {
                lhs { node x: hub; node y: leaf; edge e: x -> y; }
                rhs { node x: hub; node z: fresh; edge e: x -> z; }
            }
            apply move 1 times;
        """)
        assert not ev.graph.has_node("b")
        edge = ev.graph.get_edge("link")
        assert (edge.source, edge.target) == ("a", "move_0_z")
        assert edge.attributes == {"w": 3}
        assert ev.applications[0].performed == 1

    def test_undirected_edge_written_reversed_converges(self, run):
        ev = run("""
            node a; node b; edge a -- b;
            rule same {
                lhs { node x; node y; edge x -- y; }
                rhs { node x; node y; edge y -- x; }
            }
            apply same 5 times;
        """)
        result = ev.applications[0]
        assert (result.performed, result.converged) == (0, True)
        assert list(ev.graph.edges) == ["e_a_b"]

    def test_zero_times(self, run):
        ev = run("""
            node a: person;
            rule drop { lhs { node p: person; } rhs { } }
            apply drop 0 times;
        """)
        assert ev.graph.has_node("a")
        assert ev.applications[0].performed == 0

    def test_node_deletion_cascades(self, run):
        ev = run("""
            node a: temp; node b; node c;
            edge a -- b; edge c -> a; edge b -- c;
            rule purge { lhs { node x: temp; } rhs { } }
            apply purge 1 times;
        """)
        assert not ev.graph.has_node("a")
        assert list(ev.graph.edges) == ["e_b_c"]

    def test_pattern_attribute_evaluated_at_definition(self, run):
        ev = run("""
            let level = 1;
            node a [level=1]; node b [level=2];
            rule tag { lhs { node x [level=level]; } rhs { node x [tagged=true]; } }
            let level = 2;
            apply tag 5 times;
        """)
        assert ev.graph.get_node("a").attributes.get("tagged") is True
        assert "tagged" not in ev.graph.get_node("b").attributes

    def test_edge_rule_with_creation(self, run):
        ev = run("""
            node root: seed;
            rule sprout {
                lhs { node s: seed; }
                rhs { node s: done; node leaf: leaf; edge s -> leaf; }
            }
            apply sprout 3 times;
        """)
        assert ev.graph.get_node("root").type == "done"
        assert ev.graph.has_node("sprout_0_leaf")
        assert ev.graph.get_edge("sprout_0_e0").target == "sprout_0_leaf"
        assert ev.applications[0].performed == 1
        assert ev.applications[0].converged is True

    def test_unknown_rule(self, run):
        with pytest.raises(UnknownRule) as exc_info:
            run("apply missing 1 times;")
        assert exc_info.value.statement == "apply"

    def test_negative_count(self, run):
        with pytest.raises(TypeMismatch):
            run("rule r { lhs { node a; } rhs { node a; } } apply r -1 times;")

    def test_rule_with_dangling_edge(self, run):
        with pytest.raises(DanglingReference) as exc_info:
            run("rule r { lhs { node a; } rhs { node a; edge a -- b; } }")
        assert exc_info.value.statement == "rule"

    def test_rule_duplicate_variable(self, run):
        with pytest.raises(InvalidPattern):
            run("rule r { lhs { node a; node a; } rhs { } }")

    def test_redefinition_replaces(self, run):
        ev = run("""
            node a: t;
            rule r { lhs { node x: t; } rhs { node x: t [v=1]; } }
            rule r { lhs { node x: t; } rhs { node x: t [v=2]; } }
            apply r 1 times;
        """)
        assert ev.graph.get_node("a").attributes == {"v": 2}

    def test_no_match_is_not_an_error(self, run):
        ev = run("""
            node a: person;
            rule r { lhs { node c: company; } rhs { } }
            apply r 3 times;
        """)
        result = ev.applications[0]
        assert (result.performed, result.converged) == (0, True)
        assert ev.graph.has_node("a")

    def test_snapshot(self, run):
        ev = run("node a; rule r { lhs { node x; } rhs { node x; } } apply r 2 times;")
        snap = ev.snapshot()
        assert snap["graph"]["nodes"] == [{"id": "a", "attributes": {}}]
        assert snap["applications"] == [
            {"rule": "r", "requested": 2, "performed": 0, "converged": True}
        ]


class TestAtomicExecution:
    def test_failure_restores_state(self, run, parser):
        ev = run("""
            node a: person;
            let n = 1;
            rule tag { lhs { node p: person; } rhs { node p: person [seen=true]; } }
        """)
        before = ev.graph.to_json()
        chunk = parser.parse("""
            node b; let n = 2;
            rule extra { lhs { node q; } rhs { } }
            apply tag 1 times;
            edge a -> ghost;
        """)
        with pytest.raises(DanglingReference):
            ev.execute_atomic(chunk.statements)
        assert ev.graph.to_json() == before
        assert ev.env.lookup("n") == 1
        assert list(ev.rules) == ["tag"]
        assert ev.rules["tag"].counter == 0
        assert ev.applications == []

    def test_rewriter_follows_restored_graph(self, run, parser):
        ev = run("node a: person; rule tag { lhs { node p: person; } rhs { node p: person [seen=true]; } }")
        with pytest.raises(UnboundVariable):
            ev.execute_atomic(parser.parse("node b: person; node c [x=missing];").statements)
        ev.execute_atomic(parser.parse("apply tag 5 times;").statements)
        assert ev.graph.get_node("a").attributes == {"seen": True}
        assert not ev.graph.has_node("b")
        assert ev.applications[0].performed == 1

    def test_success_keeps_changes(self, run, parser):
        ev = run("node a;")
        ev.execute_atomic(parser.parse("node b; edge a -- b;").statements)
        assert list(ev.graph.edges) == ["e_a_b"]
