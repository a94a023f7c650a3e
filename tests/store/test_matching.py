# mypy: ignore-errors
"""Tests for filter evaluation."""

from commonplace.store.matching import first_match_index, matches

POST = {
    "id": "a" * 24,
    "likedBy": ["u1", "u2"],
    "likeCount": 2,
    "status": "scheduled",
    "scheduledAt": "2026-01-01T00:00:00+00:00",
    "pollOptions": [
        {"id": "o1", "votes": 1, "votedBy": ["u1"]},
        {"id": "o2", "votes": 0, "votedBy": []},
    ],
}


def test_equality_on_list_means_membership() -> None:
    """A scalar condition on an array field matches any element."""
    assert matches(POST, {"likedBy": "u1"})
    assert not matches(POST, {"likedBy": "u3"})


def test_ne_on_list_requires_absence() -> None:
    """$ne on an array field fails when any element equals the operand."""
    assert matches(POST, {"likedBy": {"$ne": "u3"}})
    assert not matches(POST, {"likedBy": {"$ne": "u2"}})


def test_dotted_path_descends_into_array_of_objects() -> None:
    """Dotted paths reach fields of objects stored inside lists."""
    assert matches(POST, {"pollOptions.id": "o2"})
    assert not matches(POST, {"pollOptions.votedBy": {"$ne": "u1"}})
    assert matches(POST, {"pollOptions.votedBy": {"$ne": "u9"}})


def test_comparison_operators() -> None:
    """Range operators compare scalar values."""
    assert matches(POST, {"likeCount": {"$gte": 2, "$lt": 3}})
    assert matches(POST, {"scheduledAt": {"$lte": "2026-06-01T00:00:00+00:00"}})
    assert not matches(POST, {"scheduledAt": {"$lte": "2025-06-01T00:00:00+00:00"}})


def test_in_nin_and_exists() -> None:
    """Set operators and field presence."""
    assert matches(POST, {"status": {"$in": ["draft", "scheduled"]}})
    assert matches(POST, {"status": {"$nin": ["published"]}})
    assert matches(POST, {"communityId": {"$exists": False}})
    assert not matches(POST, {"likedBy": {"$exists": False}})


def test_empty_filter_matches_everything() -> None:
    """No conditions means every document qualifies."""
    assert matches(POST, None)
    assert matches(POST, {})


def test_first_match_index_uses_element_conditions() -> None:
    """The positional index is the first element satisfying the element conditions."""
    assert first_match_index(POST, "pollOptions", {"pollOptions.id": "o2"}) == 1
    assert first_match_index(POST, "pollOptions", {"pollOptions.id": "missing"}) is None
    assert first_match_index(POST, "pollOptions", {"likeCount": 2}) is None
