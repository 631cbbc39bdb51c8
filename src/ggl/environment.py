"""Lexical binding table for `let` and loop variables."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from ggl.errors import UnboundVariable
from ggl.values import Value


class Environment:
    """A stack of scopes. Lookups walk outward from the innermost scope."""

    def __init__(self) -> None:
        self._scopes: list[dict[str, Value]] = [{}]

    @property
    def depth(self) -> int:
        return len(self._scopes)

    def bind(self, name: str, value: Value) -> None:
        """Bind in the innermost scope, shadowing any outer binding."""
        self._scopes[-1][name] = value

    def lookup(self, name: str) -> Value:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        raise UnboundVariable(f"Undefined variable: '{name}'")

    def get(self, name: str, default: Value | None = None) -> Value | None:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return default

    def __contains__(self, name: str) -> bool:
        return any(name in scope for scope in self._scopes)

    def push(self) -> None:
        self._scopes.append({})

    def pop(self) -> None:
        if len(self._scopes) == 1:
            raise RuntimeError("Cannot pop the global scope")
        self._scopes.pop()

    @contextmanager
    def child_scope(self) -> Iterator[dict[str, Value]]:
        """Push a fresh scope for the duration of the block."""
        self.push()
        try:
            yield self._scopes[-1]
        finally:
            self.pop()

    def snapshot(self) -> list[dict[str, Value]]:
        return [dict(scope) for scope in self._scopes]

    def restore(self, scopes: list[dict[str, Value]]) -> None:
        self._scopes = [dict(scope) for scope in scopes]

    def flatten(self) -> dict[str, Value]:
        """Visible bindings, inner scopes winning."""
        merged: dict[str, Value] = {}
        for scope in self._scopes:
            merged.update(scope)
        return merged
