"""GGL engine: the single entry point hosts call with source text or a parsed program."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ggl.errors import GGLError
from ggl.evaluator import Evaluator
from ggl.generators import DEFAULT_PREFIX, DEFAULT_SEED
from ggl.graph import Graph
from ggl.parsing.ast import Program
from ggl.rewriter import ApplyResult

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Engine-wide defaults."""
    default_prefix: str = DEFAULT_PREFIX
    default_seed: int = DEFAULT_SEED
    indent: int | None = 2


@dataclass
class EvaluationResult:
    """Final graph of one evaluation plus the outcome of each `apply`."""
    graph: Graph
    applications: list[ApplyResult] = field(default_factory=list)
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "graph": self.graph.to_dict(),
            "applications": [a.to_dict() for a in self.applications],
        }


class GGLEngine:
    """Parses and evaluates GGL programs. Every run starts from an empty graph."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self._parser: Any = None

    # ---- Public API ----

    def parse(self, source: str) -> Program:
        return self._get_parser().parse(source)

    def run(self, program: str | Program) -> EvaluationResult:
        """Evaluate source text or a pre-parsed program."""
        if isinstance(program, str):
            program = self.parse(program)
        evaluator = Evaluator(self.config.default_prefix, self.config.default_seed)
        graph = evaluator.run(program)
        logger.debug("evaluated %s: %r", program.name or "<program>", graph)
        return EvaluationResult(graph=graph, applications=evaluator.applications, name=program.name)

    def generate(self, program: str | Program) -> str:
        """Evaluate and return the graph as JSON."""
        return self.run(program).graph.to_json(indent=self.config.indent)

    def respond(self, program: str | Program) -> dict[str, Any]:
        """Evaluate and report success or a structured error, never raising for program faults."""
        try:
            result = self.run(program)
        except SyntaxError as exc:
            return {
                "ok": False,
                "error": {"kind": "SyntaxError", "message": str(exc), "line": None, "statement": None},
            }
        except GGLError as exc:
            return {"ok": False, "error": exc.to_dict()}
        return {"ok": True, **result.to_dict()}

    def respond_json(self, program: str | Program) -> str:
        return json.dumps(self.respond(program), indent=self.config.indent)

    # ---- Parser lazy initialization ----

    def _get_parser(self) -> Any:
        if self._parser is None:
            from ggl.parsing.parser import GGLParser
            self._parser = GGLParser()
            self._parser.build(debug=False, write_tables=False)
        return self._parser
