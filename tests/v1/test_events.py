# mypy: ignore-errors
"""Tests for event and RSVP endpoints."""

from fastapi import status

EVENT = {
    "title": "Launch party",
    "description": "Celebrating the first release",
    "startTime": "2030-05-01T18:00:00Z",
    "endTime": "2030-05-01T22:00:00Z",
}


def test_create_and_get_event(client, test_user, auth_token) -> None:
    """Test creating an event and reading it back."""
    response = client.post("/api/v1/events", json={**EVENT, "tags": "launch, party"}, headers=auth_token)
    assert response.status_code == status.HTTP_201_CREATED
    event = response.json()
    assert event["organizerId"] == test_user["id"]
    assert event["tags"] == ["launch", "party"]
    assert event["rsvpCount"] == 0

    response = client.get(f"/api/v1/events/{event['id']}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["title"] == "Launch party"


def test_create_event_rejects_end_before_start(client, auth_token) -> None:
    response = client.post(
        "/api/v1/events",
        json={**EVENT, "endTime": "2030-05-01T17:00:00Z"},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "endTime" in response.json()["errors"]


def test_rsvp_until_full(client, make_user, headers_for, auth_token, other_auth_token) -> None:
    """Test that RSVPs are idempotent and stop at capacity."""
    event = client.post("/api/v1/events", json={**EVENT, "maxAttendees": 1}, headers=auth_token).json()
    url = f"/api/v1/events/{event['id']}/rsvp"

    for _ in range(2):
        response = client.post(url, headers=other_auth_token)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["rsvpCount"] == 1

    response = client.post(url, headers=headers_for(make_user("Latecomer")))
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"] == "Event is full. Cannot RSVP."

    assert len(client.get(url).json()) == 1
    response = client.delete(url, headers=other_auth_token)
    assert response.json()["rsvpIds"] == []


def test_rsvp_missing_event(client, auth_token) -> None:
    response = client.post(f"/api/v1/events/{'f' * 24}/rsvp", headers=auth_token)
    assert response.status_code == status.HTTP_404_NOT_FOUND
