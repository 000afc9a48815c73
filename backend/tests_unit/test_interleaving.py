"""
Interleaving Composer Tests (Unit)
==================================

WHAT: Unit tests for promoted slot placement in an organic result page.
WHY: The composer is pure, so every placement rule is checked without a database.

NOTE:
These tests live outside `backend/catalogx/tests/` to avoid loading the
integration-test `conftest.py`, which configures a database not required here.

REFERENCES:
- backend/catalogx/services/interleaving.py
"""

from types import SimpleNamespace

from catalogx.services.interleaving import PROMOTED_INTERVAL, interleave


def _items(prefix: str, count: int) -> list:
    return [SimpleNamespace(id=f"{prefix}{i}") for i in range(count)]


def _ids(items) -> list:
    return [item.id for item in items]


def test_promoted_items_take_every_fifth_slot() -> None:
    organic = _items("o", 20)
    promoted = _items("p", 5)

    result = interleave(organic, promoted)

    assert len(result) == 25
    assert [i for i, item in enumerate(result) if item.id.startswith("p")] == [4, 9, 14, 19, 24]
    assert len(set(_ids(result))) == 25
    assert PROMOTED_INTERVAL == 5


def test_promoted_order_is_preserved() -> None:
    result = interleave(_items("o", 10), _items("p", 2))

    assert [item.id for item in result if item.id.startswith("p")] == ["p0", "p1"]


def test_no_promoted_returns_organic_unchanged() -> None:
    organic = _items("o", 3)

    result = interleave(organic, [])

    assert _ids(result) == ["o0", "o1", "o2"]
    assert result is not organic


def test_no_organic_returns_promoted() -> None:
    assert _ids(interleave([], _items("p", 3))) == ["p0", "p1", "p2"]


def test_both_empty() -> None:
    assert interleave([], []) == []


def test_promoted_product_is_removed_from_organic() -> None:
    organic = _items("o", 6)
    promoted = [SimpleNamespace(id="o2")]

    result = interleave(organic, promoted)

    assert _ids(result) == ["o0", "o1", "o3", "o4", "o2", "o5"]


def test_leftover_promoted_are_appended_when_organic_runs_out() -> None:
    result = interleave(_items("o", 2), _items("p", 3))

    assert _ids(result) == ["o0", "o1", "p0", "p1", "p2"]


def test_leftover_organic_follows_when_promoted_runs_out() -> None:
    result = interleave(_items("o", 12), _items("p", 1))

    assert _ids(result) == ["o0", "o1", "o2", "o3", "p0"] + [f"o{i}" for i in range(4, 12)]


def test_accepts_mappings() -> None:
    organic = [{"id": i} for i in range(5)]
    promoted = [{"id": "p"}]

    result = interleave(organic, promoted)

    assert [item["id"] for item in result] == [0, 1, 2, 3, "p", 4]
