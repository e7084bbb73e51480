# tests/v1/test_pricing_api.py
"""Tests for pricing administration and the audit trail."""

from fastapi import status

from engagement_engine.core.cities import DEFAULT_CITY_TIERS
from engagement_engine.core.security import Role


def test_create_then_supersede(client, auth_headers) -> None:
    headers = auth_headers("mgr-1", Role.MANAGER)

    created = client.post(
        "/api/v1/admin/pricing",
        json={"city": "Mumbai", "price_per_view": "0.10", "price_per_like": "0.25"},
        headers=headers,
    )
    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["versioned"] is False
    assert created.json()["rule"]["tier"] == "tier1"

    superseding = client.post(
        "/api/v1/admin/pricing",
        json={"city": "Mumbai", "price_per_view": "0.20", "price_per_like": "0.30"},
        headers=headers,
    )
    assert superseding.json()["versioned"] is True

    active = client.get("/api/v1/admin/pricing/active", headers=headers).json()
    assert [rule["price_per_view"] for rule in active] == [0.2]
    assert len(client.get("/api/v1/admin/pricing", headers=headers).json()) == 2


def test_out_of_bounds_price_is_unprocessable(client, auth_headers) -> None:
    response = client.post(
        "/api/v1/admin/pricing",
        json={"city": "Mumbai", "price_per_view": "0.001", "price_per_like": "0.25"},
        headers=auth_headers("admin-1", Role.ADMIN),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_unsupported_city(client, auth_headers) -> None:
    response = client.post(
        "/api/v1/admin/pricing",
        json={"city": "Atlantis", "price_per_view": "0.10", "price_per_like": "0.25"},
        headers=auth_headers("admin-1", Role.ADMIN),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["code"] == "INVALID_CITY"


def test_update_and_delete_rule(client, auth_headers, make_pricing) -> None:
    rule = make_pricing("Delhi", "0.10", "0.25")
    headers = auth_headers("admin-1", Role.ADMIN)

    updated = client.put(
        f"/api/v1/admin/pricing/{rule.id}", json={"price_per_like": "0.50"}, headers=headers
    )
    assert updated.status_code == status.HTTP_200_OK
    new_rule = updated.json()
    assert new_rule["id"] != rule.id
    assert new_rule["price_per_view"] == 0.1
    assert new_rule["price_per_like"] == 0.5

    deleted = client.delete(f"/api/v1/admin/pricing/{new_rule['id']}", headers=headers)
    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/api/v1/admin/pricing/active", headers=headers).json() == []


def test_missing_rule(client, auth_headers) -> None:
    response = client.put(
        "/api/v1/admin/pricing/999",
        json={"price_per_view": "0.20"},
        headers=auth_headers("admin-1", Role.ADMIN),
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"]["code"] == "PRICING_NOT_FOUND"


def test_initialize_is_admin_only(client, auth_headers) -> None:
    forbidden = client.post(
        "/api/v1/admin/pricing/initialize", headers=auth_headers("mgr-1", Role.MANAGER)
    )
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    admin = auth_headers("admin-1", Role.ADMIN)
    first = client.post("/api/v1/admin/pricing/initialize", headers=admin)
    second = client.post("/api/v1/admin/pricing/initialize", headers=admin)

    assert first.json()["created"] == len(DEFAULT_CITY_TIERS.cities)
    assert second.json()["created"] == 0

    stats = client.get("/api/v1/admin/pricing/stats", headers=admin).json()
    assert stats["active_rules"] == len(DEFAULT_CITY_TIERS.cities)
    assert stats["inactive_rules"] == 0


def test_pricing_forbidden_for_users(client, auth_headers) -> None:
    response = client.get("/api/v1/admin/pricing", headers=auth_headers("reader"))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_audit_trail_lists_privileged_actions(client, auth_headers, make_post) -> None:
    admin = auth_headers("admin-1", Role.ADMIN)
    post = make_post()
    client.post(
        "/api/v1/admin/pricing",
        json={"city": "Mumbai", "price_per_view": "0.10", "price_per_like": "0.25"},
        headers=admin,
    )
    client.patch(f"/api/v1/admin/posts/{post.id}/approve", headers=admin)

    response = client.get("/api/v1/admin/audit", headers=admin)

    assert response.status_code == status.HTTP_200_OK
    actions = [entry["action"] for entry in response.json()]
    assert set(actions) == {"CREATE", "APPROVE"}

    scoped = client.get(
        "/api/v1/admin/audit", params={"resource": "POST", "resource_id": post.id}, headers=admin
    ).json()
    assert [entry["action"] for entry in scoped] == ["APPROVE"]


def test_audit_trail_is_admin_only(client, auth_headers) -> None:
    response = client.get("/api/v1/admin/audit", headers=auth_headers("mgr-1", Role.MANAGER))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_superseded_rule_cannot_be_updated(client, auth_headers) -> None:
    headers = auth_headers("admin-1", Role.ADMIN)
    first = client.post(
        "/api/v1/admin/pricing",
        json={"city": "Delhi", "price_per_view": "0.10", "price_per_like": "0.25"},
        headers=headers,
    ).json()["rule"]
    client.post(
        "/api/v1/admin/pricing",
        json={"city": "Delhi", "price_per_view": "0.20", "price_per_like": "0.25"},
        headers=headers,
    )

    response = client.put(
        f"/api/v1/admin/pricing/{first['id']}", json={"price_per_view": "0.30"}, headers=headers
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"]["code"] == "PRICING_SUPERSEDED"
    active = client.get("/api/v1/admin/pricing/active", headers=headers).json()
    assert [rule["price_per_view"] for rule in active] == [0.2]
