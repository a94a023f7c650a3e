# mypy: ignore-errors
"""Tests for community and membership endpoints."""

from fastapi import status


def _create(client, headers, **overrides):
    payload = {"name": "Birders", "description": "Birds", "privacy": "public"}
    payload.update(overrides)
    response = client.post("/api/v1/communities", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


def test_create_community(client, test_user, auth_token) -> None:
    """Test creating a new community."""
    data = _create(client, auth_token, coverImageUrl="https://img.test/c.png")
    assert data["creatorId"] == test_user["id"]
    assert data["adminIds"] == [test_user["id"]]
    assert data["memberIds"] == [test_user["id"]]
    assert data["coverImageUrl"] == "https://img.test/c.png"

    user = client.get(f"/api/v1/users/{test_user['id']}").json()
    assert user["communityIds"] == [data["id"]]


def test_create_community_requires_auth(client) -> None:
    """Test that anonymous calls are rejected."""
    response = client.post("/api/v1/communities", json={"name": "x"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_create_community_invalid_privacy(client, test_user, auth_token) -> None:
    response = client.post(
        "/api/v1/communities", json={"name": "x", "privacy": "secret"}, headers=auth_token
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_get_nonexistent_community(client) -> None:
    """Test getting a non-existent community."""
    response = client.get(f"/api/v1/communities/{'a' * 24}")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Community not found."


def test_join_and_leave_public(client, test_user, other_user, auth_token, other_auth_token) -> None:
    """Test joining and leaving a public community."""
    community = _create(client, auth_token)
    url = f"/api/v1/communities/{community['id']}/members"

    response = client.post(url, headers=other_auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert other_user["id"] in response.json()["memberIds"]

    members = client.get(url).json()
    assert [m["id"] for m in members] == [test_user["id"], other_user["id"]]

    response = client.delete(url, headers=other_auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert other_user["id"] not in response.json()["memberIds"]


def test_creator_cannot_leave(client, test_user, auth_token) -> None:
    community = _create(client, auth_token)
    response = client.delete(f"/api/v1/communities/{community['id']}/members", headers=auth_token)
    assert response.status_code == status.HTTP_409_CONFLICT


def test_private_request_flow(client, test_user, other_user, auth_token, other_auth_token) -> None:
    """Test requesting, listing and approving a private join."""
    community = _create(client, auth_token, privacy="private")
    base = f"/api/v1/communities/{community['id']}"

    response = client.post(f"{base}/members", headers=other_auth_token)
    assert response.json()["pendingMemberIds"] == [other_user["id"]]

    assert client.get(f"{base}/requests", headers=other_auth_token).status_code == status.HTTP_403_FORBIDDEN
    pending = client.get(f"{base}/requests", headers=auth_token).json()
    assert [u["id"] for u in pending] == [other_user["id"]]

    response = client.post(
        f"{base}/requests",
        json={"userId": other_user["id"], "action": "approve"},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["pendingMemberIds"] == []
    assert other_user["id"] in data["memberIds"]

    notes = client.get("/api/v1/notifications", headers=other_auth_token).json()
    assert [n["type"] for n in notes] == ["community_join_approved"]


def test_deny_request(client, other_user, auth_token, other_auth_token) -> None:
    community = _create(client, auth_token, privacy="private")
    base = f"/api/v1/communities/{community['id']}"
    client.post(f"{base}/members", headers=other_auth_token)

    response = client.post(
        f"{base}/requests", json={"userId": other_user["id"], "action": "deny"}, headers=auth_token
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["pendingMemberIds"] == []

    response = client.post(
        f"{base}/requests", json={"userId": other_user["id"], "action": "ban"}, headers=auth_token
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_transfer_ownership(client, test_user, other_user, auth_token, other_auth_token) -> None:
    """Test handing ownership to a member."""
    community = _create(client, auth_token)
    base = f"/api/v1/communities/{community['id']}"
    client.post(f"{base}/members", headers=other_auth_token)

    response = client.post(
        f"{base}/transfer-ownership", json={"newOwnerId": other_user["id"]}, headers=other_auth_token
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post(
        f"{base}/transfer-ownership", json={"newOwnerId": other_user["id"]}, headers=auth_token
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["creatorId"] == other_user["id"]

    assert client.delete(f"{base}/members", headers=auth_token).status_code == status.HTTP_200_OK
    assert client.delete(f"{base}/members", headers=other_auth_token).status_code == status.HTTP_409_CONFLICT


def test_update_community(client, auth_token, other_auth_token, other_user) -> None:
    community = _create(client, auth_token)
    url = f"/api/v1/communities/{community['id']}"

    response = client.put(url, json={"description": "All about birds"}, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["description"] == "All about birds"
    assert response.json()["name"] == "Birders"

    response = client.put(url, json={"name": "Mine"}, headers=other_auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_delete_community(client, test_user, auth_token) -> None:
    """Test cascade deletion and the second delete being a 404."""
    community = _create(client, auth_token)
    url = f"/api/v1/communities/{community['id']}"
    post = client.post(
        "/api/v1/posts", json={"content": "Hello", "communityId": community["id"]}, headers=auth_token
    ).json()

    response = client.delete(url, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"postsDeleted": 1, "eventsDeleted": 0, "usersUnlinked": 1}
    assert client.get(f"/api/v1/posts/{post['id']}").status_code == status.HTTP_404_NOT_FOUND
    assert client.get(f"/api/v1/users/{test_user['id']}").json()["communityIds"] == []
    assert client.delete(url, headers=auth_token).status_code == status.HTTP_404_NOT_FOUND
