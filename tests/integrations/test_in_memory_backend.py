"""Tests for the in-memory table backend."""

# ruff: noqa: PLR2004

from __future__ import annotations

import asyncio

import pytest

from greenline.integrations.in_memory_backend import InMemoryTableBackend

INVENTORY = [
    {"id": 1, "sku": "GL-ALPHA", "quantity": 4, "restocked": None},
    {"id": 2, "sku": "GL-beta", "quantity": 12, "restocked": "2026-03-01"},
    {"id": 3, "sku": "XR-gamma", "quantity": 0, "restocked": "2026-02-15"},
]


@pytest.fixture()
def backend() -> InMemoryTableBackend:
    store = InMemoryTableBackend()
    store.prime("inventory", INVENTORY)
    return store


def test_select_filters_and_projects(backend: InMemoryTableBackend) -> None:
    response = asyncio.run(backend.table("inventory").select("sku").gte("quantity", 4).execute())

    assert response.data == [{"sku": "GL-ALPHA"}, {"sku": "GL-beta"}]
    assert response.count is None


def test_like_is_case_sensitive_and_ilike_is_not(backend: InMemoryTableBackend) -> None:
    like = asyncio.run(backend.table("inventory").select("id").like("sku", "GL-%a").execute())
    ilike = asyncio.run(backend.table("inventory").select("id").ilike("sku", "gl-%a").execute())

    assert like.data == [{"id": 2}]
    assert ilike.data == [{"id": 1}, {"id": 2}]


def test_negated_null_check(backend: InMemoryTableBackend) -> None:
    response = asyncio.run(backend.table("inventory").select("id").not_.is_("restocked", "null").execute())

    assert response.data == [{"id": 2}, {"id": 3}]
    assert backend.calls_named("not") == [("not",)]


def test_comparisons_skip_null_values(backend: InMemoryTableBackend) -> None:
    response = asyncio.run(backend.table("inventory").select("id").lt("restocked", "2026-03-01").execute())

    assert response.data == [{"id": 3}]


def test_order_puts_nulls_last_and_range_pages(backend: InMemoryTableBackend) -> None:
    ascending = asyncio.run(backend.table("inventory").select("id").order("restocked").execute())
    page = asyncio.run(
        backend.table("inventory").select("id").order("quantity", desc=True).range(1, 2).execute()
    )

    assert ascending.data == [{"id": 3}, {"id": 2}, {"id": 1}]
    assert page.data == [{"id": 1}, {"id": 3}]


def test_count_is_computed_before_limit(backend: InMemoryTableBackend) -> None:
    response = asyncio.run(backend.table("inventory").select("*", count="exact").limit(1).execute())

    assert response.count == 3
    assert len(response.data) == 1
    assert backend.calls_named("select") == [("select", "*", {"count": "exact"})]


def test_insert_update_delete_mutate_table(backend: InMemoryTableBackend) -> None:
    inserted = asyncio.run(backend.table("inventory").insert({"id": 4, "sku": "NEW", "quantity": 1}).execute())
    updated = asyncio.run(backend.table("inventory").update({"quantity": 9}).in_("id", [1, 4]).execute())
    deleted = asyncio.run(backend.table("inventory").delete().eq("quantity", 0).execute())

    assert inserted.data == [{"id": 4, "sku": "NEW", "quantity": 1}]
    assert [row["quantity"] for row in updated.data] == [9, 9]
    assert deleted.data == [INVENTORY[2]]
    assert [row["id"] for row in backend.rows("inventory")] == [1, 2, 4]


def test_fail_next_raises_once(backend: InMemoryTableBackend) -> None:
    backend.fail_next("inventory", RuntimeError("boom"))

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(backend.table("inventory").select("*").execute())
    response = asyncio.run(backend.table("inventory").select("*").execute())

    assert len(response.data) == 3


def test_prime_copies_rows(backend: InMemoryTableBackend) -> None:
    asyncio.run(backend.table("inventory").update({"quantity": 100}).eq("id", 1).execute())

    assert INVENTORY[0]["quantity"] == 4
