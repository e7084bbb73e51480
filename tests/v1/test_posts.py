# tests/v1/test_posts.py
"""Tests for post creation and retrieval endpoints."""

from fastapi import status

from engagement_engine.core.cities import DEFAULT_CITY_TIERS


def test_create_post_starts_pending(client, auth_headers) -> None:
    response = client.post(
        "/api/v1/posts",
        json={"body": "hello", "city": "Pune"},
        headers=auth_headers("author-1"),
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["author_id"] == "author-1"
    assert data["city"] == "Pune"
    assert data["moderation_state"] == "pending"
    assert data["view_count"] == 0
    assert data["likes_count"] == 0
    assert data["total_revenue"] == 0
    assert data["approved"] is False and data["paid"] is False


def test_create_post_assigns_supported_city(client, auth_headers) -> None:
    response = client.post("/api/v1/posts", json={"body": "hi"}, headers=auth_headers("author-1"))
    assert response.status_code == status.HTTP_201_CREATED
    assert DEFAULT_CITY_TIERS.is_supported(response.json()["city"])


def test_create_post_rejects_unknown_city(client, auth_headers) -> None:
    response = client.post(
        "/api/v1/posts",
        json={"body": "hi", "city": "Atlantis"},
        headers=auth_headers("author-1"),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["code"] == "INVALID_CITY"


def test_create_post_requires_token(client) -> None:
    response = client.post("/api/v1/posts", json={"body": "hi"})
    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}


def test_invalid_token_is_unauthorized(client) -> None:
    response = client.get("/api/v1/posts/1", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_get_post_includes_likes(client, auth_headers, make_post) -> None:
    post = make_post(view_count=3, likers=("a", "b"))

    response = client.get(f"/api/v1/posts/{post.id}", headers=auth_headers("reader"))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == post.id
    assert data["view_count"] == 3
    assert data["likes_count"] == 2


def test_get_missing_post(client, auth_headers) -> None:
    response = client.get("/api/v1/posts/999", headers=auth_headers("reader"))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"]["code"] == "POST_NOT_FOUND"
