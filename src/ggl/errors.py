"""Error kinds raised while evaluating a GGL program."""

from __future__ import annotations

from typing import Any


class GGLError(Exception):
    """Base class for evaluation failures.

    ``line`` and ``statement`` are filled in by the evaluator once the error
    propagates out of the statement that triggered it.
    """

    kind = "GGLError"

    def __init__(self, message: str, line: int | None = None, statement: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.statement = statement

    def locate(self, line: int | None, statement: str | None) -> GGLError:
        """Attach location info unless an inner statement already did."""
        if self.line is None:
            self.line = line
            self.statement = statement
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "line": self.line,
            "statement": self.statement,
        }

    def __str__(self) -> str:
        if self.line is not None:
            return f"{self.kind} (line {self.line}, {self.statement}): {self.message}"
        return f"{self.kind}: {self.message}"


class UnboundVariable(GGLError):
    kind = "UnboundVariable"


class DanglingReference(GGLError):
    kind = "DanglingReference"


class InvalidGeneratorParams(GGLError):
    kind = "InvalidGeneratorParams"


class UnknownGenerator(GGLError):
    kind = "UnknownGenerator"


class UnknownRule(GGLError):
    kind = "UnknownRule"


class TypeMismatch(GGLError):
    kind = "TypeMismatch"


class InvalidPattern(GGLError):
    """A rule pattern declares the same variable twice."""

    kind = "InvalidPattern"
