"""Example usage of the ggl library."""

from ggl import GGLEngine
from ggl.dump import to_source

# A small social network: a generated core, a few named people, and a rule
# that marks everyone as active
program = """
graph community {
    generate complete { nodes: 4; prefix: "core"; }

    let names = 3;
    for i in 0..names {
        node "member{i}": person [rank=i];
        edge "member{i}" -- "core{i}";
    }

    rule activate {
        lhs { node p: person; }
        rhs { node p: person [active=true]; }
    }
    apply activate 10 times;
}
"""

engine = GGLEngine()
result = engine.run(program)

print(f"Graph '{result.name}': {result.graph.node_count()} nodes, {result.graph.edge_count()} edges")
for application in result.applications:
    print(f"  apply {application.rule}: {application.performed} of {application.requested}"
          f"{' (converged)' if application.converged else ''}")

# JSON output, as the command-line tool prints it
print(engine.generate(program))

# The same graph as literal GGL declarations
print(to_source(result.graph, result.name))

# Errors come back as structured data from respond()
print(engine.respond("node a;\nedge a -> b;"))
