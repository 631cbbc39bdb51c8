"""GGL - a graph generation language with generators and rewrite rules."""

from ggl.engine import EngineConfig, EvaluationResult, GGLEngine
from ggl.errors import (
    DanglingReference,
    GGLError,
    InvalidGeneratorParams,
    InvalidPattern,
    TypeMismatch,
    UnboundVariable,
    UnknownGenerator,
    UnknownRule,
)
from ggl.graph import Edge, Graph, Node
from ggl.parsing import GGLParser

__all__ = [
    # Main API
    "GGLEngine",
    "EngineConfig",
    "EvaluationResult",
    "GGLParser",
    # Graph store
    "Graph",
    "Node",
    "Edge",
    # Errors
    "GGLError",
    "UnboundVariable",
    "DanglingReference",
    "InvalidGeneratorParams",
    "UnknownGenerator",
    "UnknownRule",
    "TypeMismatch",
    "InvalidPattern",
]

__version__ = "0.1.0"
