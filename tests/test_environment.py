"""Tests for the scope stack."""

import pytest

from ggl.environment import Environment
from ggl.errors import UnboundVariable


class TestEnvironment:
    def test_bind_and_lookup(self):
        env = Environment()
        env.bind("x", 1)
        assert env.lookup("x") == 1
        assert "x" in env

    def test_unbound(self):
        env = Environment()
        with pytest.raises(UnboundVariable, match="'y'"):
            env.lookup("y")
        assert env.get("y") is None

    def test_shadowing_and_restore(self):
        env = Environment()
        env.bind("x", 1)
        with env.child_scope():
            env.bind("x", 2)
            assert env.lookup("x") == 2
            assert env.depth == 2
        assert env.lookup("x") == 1
        assert env.depth == 1

    def test_inner_binding_disappears(self):
        env = Environment()
        with env.child_scope():
            env.bind("tmp", "v")
        assert "tmp" not in env

    def test_scope_popped_on_error(self):
        env = Environment()
        with pytest.raises(RuntimeError):
            with env.child_scope():
                raise RuntimeError("boom")
        assert env.depth == 1

    def test_cannot_pop_global(self):
        with pytest.raises(RuntimeError):
            Environment().pop()

    def test_flatten(self):
        env = Environment()
        env.bind("a", 1)
        env.bind("b", 2)
        env.push()
        env.bind("a", 3)
        assert env.flatten() == {"a": 3, "b": 2}

    def test_snapshot_and_restore(self):
        env = Environment()
        env.bind("a", 1)
        saved = env.snapshot()
        env.bind("a", 2)
        env.push()
        env.bind("b", 3)
        env.restore(saved)
        assert env.depth == 1
        assert env.flatten() == {"a": 1}
