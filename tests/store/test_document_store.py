# mypy: ignore-errors
"""Tests for the SQLAlchemy-backed document store."""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from commonplace.core.errors import ConflictError
from commonplace.store import (
    COMMENTS,
    POSTS,
    USERS,
    StoreContentionError,
    StoreUnavailableError,
    is_valid_id,
    new_id,
)
from commonplace.store.matching import matches


def test_new_ids_are_well_formed_and_unique() -> None:
    """Generated ids are 24 hex characters and do not collide."""
    ids = {new_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(is_valid_id(doc_id) for doc_id in ids)
    assert not is_valid_id("not-an-id")
    assert not is_valid_id(None)
    assert not is_valid_id("A" * 24)


def test_insert_and_find_one(store) -> None:
    """Inserted documents get an id and read back unchanged."""
    doc = store.insert_one(USERS, {"name": "Ada", "communityIds": []})
    assert is_valid_id(doc["id"])
    assert store.find_one(USERS, doc["id"]) == doc
    assert store.find_one(POSTS, doc["id"]) is None


def test_insert_does_not_alias_caller_document(store) -> None:
    """The caller's dictionary is not mutated by the insert."""
    source = {"name": "Ada"}
    store.insert_one(USERS, source)
    assert "id" not in source


def test_duplicate_id_is_a_conflict(store) -> None:
    doc = store.insert_one(USERS, {"name": "Ada"})
    with pytest.raises(ConflictError):
        store.insert_one(USERS, {"id": doc["id"], "name": "Twin"})


def test_find_many_preserves_requested_order(store) -> None:
    """Documents come back in id order requested, missing ids skipped."""
    a = store.insert_one(USERS, {"name": "a"})
    b = store.insert_one(USERS, {"name": "b"})
    found = store.find_many(USERS, [b["id"], new_id(), a["id"], b["id"]])
    assert [doc["name"] for doc in found] == ["b", "a"]
    assert store.find_many(USERS, []) == []


def test_find_filters_sorts_and_limits(store) -> None:
    for index, status in enumerate(["draft", "published", "published", "scheduled"]):
        store.insert_one(POSTS, {"status": status, "createdAt": f"2026-01-0{index + 1}"})
    published = store.find(POSTS, {"status": "published"}, sort=[("createdAt", -1)])
    assert [doc["createdAt"] for doc in published] == ["2026-01-03", "2026-01-02"]
    assert len(store.find(POSTS, sort=[("createdAt", 1)], limit=2)) == 2
    assert store.count(POSTS, {"status": {"$ne": "published"}}) == 2


def test_update_one_reports_match_and_modification(store) -> None:
    """Counts distinguish a missing target, a failed match and a no-op."""
    post = store.insert_one(POSTS, {"likedBy": [], "likeCount": 0})
    like = {"$addToSet": {"likedBy": "u1"}, "$inc": {"likeCount": 1}}

    first = store.update_one(POSTS, post["id"], like, match={"likedBy": {"$ne": "u1"}})
    assert (first.matched_count, first.modified_count) == (1, 1)
    assert first.document["likeCount"] == 1

    second = store.update_one(POSTS, post["id"], like, match={"likedBy": {"$ne": "u1"}})
    assert (second.matched_count, second.modified_count) == (0, 0)
    assert second.document is None

    noop = store.update_one(POSTS, post["id"], {"$addToSet": {"likedBy": "u1"}})
    assert (noop.matched_count, noop.modified_count) == (1, 0)

    missing = store.update_one(POSTS, new_id(), like)
    assert missing.matched_count == 0
    assert store.find_one(POSTS, post["id"])["likeCount"] == 1


def test_positional_update_targets_matched_element(store) -> None:
    poll = store.insert_one(
        POSTS,
        {
            "pollOptions": [
                {"id": "o1", "votes": 0, "votedBy": []},
                {"id": "o2", "votes": 0, "votedBy": []},
            ],
            "totalVotes": 0,
        },
    )
    result = store.update_one(
        POSTS,
        poll["id"],
        {"$inc": {"pollOptions.$.votes": 1, "totalVotes": 1}, "$addToSet": {"pollOptions.$.votedBy": "u"}},
        match={"pollOptions.id": "o2", "pollOptions.votedBy": {"$ne": "u"}},
    )
    assert result.modified_count == 1
    assert result.document["pollOptions"][1] == {"id": "o2", "votes": 1, "votedBy": ["u"]}
    assert result.document["pollOptions"][0]["votes"] == 0


def test_update_many_and_delete_many(store) -> None:
    cid = new_id()
    for name in ("a", "b", "c"):
        store.insert_one(USERS, {"name": name, "communityIds": [cid] if name != "c" else []})
    result = store.update_many(USERS, {"communityIds": cid}, {"$pull": {"communityIds": cid}})
    assert (result.matched_count, result.modified_count) == (2, 2)
    assert store.count(USERS, {"communityIds": cid}) == 0
    assert store.delete_many(USERS, {"name": {"$in": ["a", "b"]}}) == 2
    assert store.delete_many(USERS, {"name": "nobody"}) == 0
    assert store.count(USERS) == 1


def test_delete_one_honours_match(store) -> None:
    note = store.insert_one("notifications", {"userId": "owner"})
    assert store.delete_one("notifications", note["id"], match={"userId": "intruder"}) == 0
    assert store.delete_one("notifications", note["id"], match={"userId": "owner"}) == 1
    assert store.delete_one("notifications", note["id"]) == 0


def test_database_failure_surfaces_as_unavailable(store) -> None:
    """Driver errors become StoreUnavailableError."""
    failure = OperationalError("SELECT", {}, Exception("database is locked"))
    with patch.object(store.engine, "connect", side_effect=failure):
        with pytest.raises(StoreUnavailableError) as exc_info:
            store.find_one(USERS, new_id())
    assert exc_info.value.status_code == 503


def test_lost_races_give_up_after_retry_budget(store) -> None:
    """A document that always changes underneath raises StoreContentionError."""
    doc = store.insert_one(POSTS, {"likeCount": 0})
    store.cas_max_retries = 3
    stale = (dict(doc), 0)
    with patch.object(store, "_load", return_value=stale):
        with pytest.raises(StoreContentionError):
            store.update_one(POSTS, doc["id"], {"$inc": {"likeCount": 1}})
    assert store.find_one(POSTS, doc["id"])["likeCount"] == 0


def test_concurrent_increments_are_serialized(threaded_store) -> None:
    """Parallel $inc updates on one document never lose a write."""
    doc = threaded_store.insert_one(POSTS, {"likeCount": 0})

    def bump(_: int) -> None:
        threaded_store.update_one(POSTS, doc["id"], {"$inc": {"likeCount": 1}})

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(bump, range(40)))
    assert threaded_store.find_one(POSTS, doc["id"])["likeCount"] == 40


def test_find_narrows_id_filters_in_sql(store) -> None:
    """Only rows that can match an id condition come back from the database."""
    wanted, other, user = new_id(), new_id(), new_id()
    for post_id in (wanted, other, other, other):
        store.insert_one(COMMENTS, {"postId": post_id, "content": "hi"})
    # The id appears in the body but not under postId.
    store.insert_one(COMMENTS, {"postId": other, "content": wanted})
    store.insert_one(POSTS, {"likedBy": [user], "authorId": other})
    store.insert_one(POSTS, {"likedBy": [], "authorId": user})

    with patch("commonplace.store.document_store.matches", wraps=matches) as checked:
        found = store.find(COMMENTS, {"postId": wanted})
    assert [doc["postId"] for doc in found] == [wanted]
    assert checked.call_count == 1

    with patch("commonplace.store.document_store.matches", wraps=matches) as checked:
        liked = store.find(POSTS, {"likedBy": user})
    assert [doc["authorId"] for doc in liked] == [other]
    assert checked.call_count == 2
