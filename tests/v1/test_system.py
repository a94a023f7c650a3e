"""Tests for system endpoints."""

from unittest.mock import patch

from fastapi import status
from fastapi.testclient import TestClient

import pytest

from commonplace.core.errors import UnavailableError
from commonplace.core.settings import settings
from commonplace.store import USERS


@pytest.fixture()
def operator(monkeypatch, test_user, auth_token):
    """Register the primary test user as an operator and return its headers."""
    monkeypatch.setattr(settings, "operator_ids", [test_user["id"]])
    return auth_token


def test_root(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["docs"] == "/docs"


def test_health(client: TestClient) -> None:
    """Test the health endpoint on an empty store."""
    response = client.get("/api/v1/system/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok", "version": "0.1.0", "pendingReconciliation": 0}


def test_reconcile_repairs_failed_join(client: TestClient, store, other_user, operator, other_auth_token) -> None:
    """Test that a join whose mirror write failed is repaired by the sweep."""
    community = client.post("/api/v1/communities", json={"name": "Owls"}, headers=operator).json()
    real_update = store.update_one

    def flaky(collection, *args, **kwargs):
        if collection == USERS:
            raise UnavailableError("Document store is unavailable")
        return real_update(collection, *args, **kwargs)

    with patch.object(store, "update_one", side_effect=flaky):
        response = client.post(f"/api/v1/communities/{community['id']}/members", headers=other_auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert client.get(f"/api/v1/users/{other_user['id']}").json()["communityIds"] == []
    assert client.get("/api/v1/system/health").json()["pendingReconciliation"] == 1

    response = client.post("/api/v1/system/reconcile", headers=operator)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["replayed"] == 1
    assert client.get(f"/api/v1/users/{other_user['id']}").json()["communityIds"] == [community["id"]]
    assert client.get("/api/v1/system/health").json()["pendingReconciliation"] == 0


def test_reconcile_requires_auth(client: TestClient) -> None:
    assert client.post("/api/v1/system/reconcile").status_code == status.HTTP_401_UNAUTHORIZED


def test_publish_due(client: TestClient, operator) -> None:
    scheduled = client.post(
        "/api/v1/posts",
        json={"content": "Past due", "scheduledAt": "2020-01-01T00:00:00Z"},
        headers=operator,
    ).json()
    assert scheduled["status"] == "scheduled"

    response = client.post("/api/v1/system/publish-due", headers=operator)
    assert response.json() == {"count": 1}
    assert client.get(f"/api/v1/posts/{scheduled['id']}").json()["status"] == "published"


def test_maintenance_is_limited_to_operators(client: TestClient, operator, other_auth_token) -> None:
    """Authenticated non-operators cannot trigger maintenance tasks."""
    for path in ("/api/v1/system/reconcile", "/api/v1/system/publish-due"):
        response = client.post(path, headers=other_auth_token)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "Only operators can run maintenance tasks."
        assert client.post(path, headers=operator).status_code == status.HTTP_200_OK
