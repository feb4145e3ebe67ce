"""Tests for the handle-indexed arena."""
import pytest

from georecon.controller.cache import Arena


def test_add_and_get():
    arena = Arena()
    first = arena.add("a")
    second = arena.add("b")
    assert (first, second) == (0, 1)
    assert arena.get(second) == "b"
    assert len(arena) == 2


def test_invalid_handle():
    with pytest.raises(KeyError):
        Arena().get(0)


def test_memoize_builds_once():
    arena = Arena()
    calls = []

    def factory():
        calls.append(1)
        return object()

    first = arena.memoize("profile", factory)
    second = arena.memoize("profile", factory)
    assert first is second
    assert len(calls) == 1
    assert arena.get(arena.handle_for("profile")) is first


def test_memoize_stores_nothing_when_factory_raises():
    arena = Arena()

    def factory():
        raise ValueError("broken")

    with pytest.raises(ValueError):
        arena.memoize("profile", factory)
    assert "profile" not in arena
    assert len(arena) == 0
