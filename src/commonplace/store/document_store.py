"""Collection-oriented document store on top of SQLAlchemy.

The store offers exactly the primitives the engine is allowed to rely on:
find by id, find many by id set, filtered find, insert, atomic single-document
update, delete and delete-many. There are no multi-document transactions.

Atomicity of a single-document update comes from optimistic concurrency: the
body and its ``version`` are read, the update operators and match filter are
evaluated on that snapshot, and the new body is written with
``UPDATE ... WHERE version = :seen``. Losing the race re-reads and re-applies,
so two concurrent updates to one document are always serialized and a match
condition (``{"likedBy": {"$ne": user}}``) is checked against the very version
that gets written.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, Engine, String, cast, delete, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from commonplace.core.errors import ConflictError, UnavailableError
from commonplace.core.settings import settings
from commonplace.models import Document
from commonplace.store.ids import is_valid_id, new_id
from commonplace.store.matching import first_match_index, matches
from commonplace.store.operators import apply_update, positional_arrays

logger = logging.getLogger(__name__)

Filter = Mapping[str, Any]
Update = Mapping[str, Mapping[str, Any]]

# Reference fields that always hold a single id.
SCALAR_REFERENCES = frozenset({"authorId", "communityId", "postId", "userId"})


def _sql_conditions(filter_: Filter | None) -> list[ColumnElement[bool]]:
    """Translate id equality conditions of ``filter_`` into SQL pre-filters.

    Rows that pass are still checked by :func:`matches`; the SQL side only
    narrows the scan. Scalar references compare the extracted JSON value,
    id-valued set membership (``{"memberIds": user_id}``) narrows on the
    serialized body.
    """
    conditions: list[ColumnElement[bool]] = []
    for path, condition in (filter_ or {}).items():
        if "." in path or not is_valid_id(condition):
            continue
        if path in SCALAR_REFERENCES:
            conditions.append(Document.body[path].as_string() == condition)
        else:
            conditions.append(cast(Document.body, String).contains(condition, autoescape=True))
    return conditions


class StoreUnavailableError(UnavailableError):
    """Raised when the backing database cannot be reached."""


class StoreContentionError(UnavailableError):
    """Raised when a document stays contended past the retry budget."""


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of an update.

    ``document`` is the after-image for single-document updates that matched.
    """

    matched_count: int
    modified_count: int
    document: dict[str, Any] | None = None


class DocumentStore:
    """Schemaless collections persisted in the ``document`` table."""

    def __init__(self, engine: Engine, *, cas_max_retries: int | None = None) -> None:
        self.engine = engine
        self.cas_max_retries = cas_max_retries or settings.store_cas_max_retries

    @contextmanager
    def _guard(self, action: str, collection: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            raise ConflictError(f"Document already exists in {collection}") from exc
        except (OperationalError, DBAPIError) as exc:
            logger.error("Document store unavailable during %s on %s: %s", action, collection, exc)
            raise StoreUnavailableError("Document store is unavailable") from exc

    def _load(self, collection: str, doc_id: str) -> tuple[dict[str, Any], int] | None:
        with self._guard("read", collection), self.engine.connect() as conn:
            row = conn.execute(
                select(Document.body, Document.version).where(
                    Document.collection == collection,
                    Document.id == doc_id,
                )
            ).first()
        if row is None:
            return None
        return dict(row.body), int(row.version)

    def _scan(self, collection: str, filter_: Filter | None = None) -> list[dict[str, Any]]:
        with self._guard("scan", collection), self.engine.connect() as conn:
            rows = conn.execute(
                select(Document.body).where(
                    Document.collection == collection,
                    *_sql_conditions(filter_),
                )
            ).all()
        return [dict(row.body) for row in rows]

    # Reads

    def find_one(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return the document with ``doc_id`` or None."""
        loaded = self._load(collection, doc_id)
        return loaded[0] if loaded else None

    def find_many(self, collection: str, ids: Iterable[str]) -> list[dict[str, Any]]:
        """Return the documents for ``ids`` in the given order, skipping missing ones."""
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []
        with self._guard("read", collection), self.engine.connect() as conn:
            rows = conn.execute(
                select(Document.id, Document.body).where(
                    Document.collection == collection,
                    Document.id.in_(wanted),
                )
            ).all()
        by_id = {row.id: dict(row.body) for row in rows}
        return [by_id[doc_id] for doc_id in wanted if doc_id in by_id]

    def find(
        self,
        collection: str,
        filter_: Filter | None = None,
        *,
        sort: Sequence[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents matching ``filter_``.

        Args:
            collection: Collection name.
            filter_: Conditions every returned document satisfies.
            sort: ``(field, direction)`` pairs, direction 1 ascending, -1 descending.
            limit: Maximum number of documents to return.
        """
        found = [doc for doc in self._scan(collection, filter_) if matches(doc, filter_)]
        for field, direction in reversed(sort or []):
            found.sort(
                key=lambda doc, f=field: (doc.get(f) is None, doc.get(f)),
                reverse=direction < 0,
            )
        if limit is not None:
            found = found[:limit]
        return found

    def count(self, collection: str, filter_: Filter | None = None) -> int:
        """Return the number of documents matching ``filter_``."""
        return len(self.find(collection, filter_))

    # Writes

    def insert_one(self, collection: str, document: Mapping[str, Any]) -> dict[str, Any]:
        """Insert ``document`` and return it with its assigned id."""
        body = copy.deepcopy(dict(document))
        body.setdefault("id", new_id())
        with self._guard("insert", collection), self.engine.begin() as conn:
            conn.execute(
                insert(Document).values(
                    collection=collection,
                    id=body["id"],
                    body=body,
                    version=1,
                )
            )
        return body

    def update_one(
        self,
        collection: str,
        doc_id: str,
        update_: Update,
        *,
        match: Filter | None = None,
    ) -> UpdateResult:
        """Atomically apply ``update_`` to one document.

        Args:
            collection: Collection name.
            doc_id: Target document id.
            update_: Operator document (``$set``, ``$inc``, ``$addToSet``...).
            match: Extra conditions the document must satisfy at write time.
                Positional ``$`` paths resolve against the element it matches.

        Returns:
            ``matched_count`` 0 when the document is absent or ``match`` fails,
            ``modified_count`` 0 when the update changed nothing.
        """
        arrays = positional_arrays(update_)
        for _attempt in range(self.cas_max_retries):
            loaded = self._load(collection, doc_id)
            if loaded is None:
                return UpdateResult(0, 0)
            body, version = loaded
            if not matches(body, match):
                return UpdateResult(0, 0)

            positional: dict[str, int] = {}
            for array_path in arrays:
                index = first_match_index(body, array_path, match)
                if index is None:
                    return UpdateResult(0, 0)
                positional[array_path] = index

            updated = copy.deepcopy(body)
            apply_update(updated, update_, positional)
            if updated == body:
                return UpdateResult(1, 0, body)

            with self._guard("update", collection), self.engine.begin() as conn:
                result = conn.execute(
                    update(Document)
                    .where(
                        Document.collection == collection,
                        Document.id == doc_id,
                        Document.version == version,
                    )
                    .values(body=updated, version=version + 1)
                )
            if result.rowcount == 1:
                return UpdateResult(1, 1, updated)
            logger.debug("Version conflict on %s/%s, retrying", collection, doc_id)

        logger.error("Gave up updating %s/%s after %d attempts", collection, doc_id, self.cas_max_retries)
        raise StoreContentionError(f"Document {doc_id} in {collection} is too contended")

    def update_many(self, collection: str, filter_: Filter, update_: Update) -> UpdateResult:
        """Apply ``update_`` to every matching document, each one atomically."""
        matched = modified = 0
        for doc in self.find(collection, filter_):
            result = self.update_one(collection, doc["id"], update_, match=filter_)
            matched += result.matched_count
            modified += result.modified_count
        return UpdateResult(matched, modified)

    def delete_one(self, collection: str, doc_id: str, *, match: Filter | None = None) -> int:
        """Delete one document, optionally only while it satisfies ``match``."""
        for _attempt in range(self.cas_max_retries):
            loaded = self._load(collection, doc_id)
            if loaded is None:
                return 0
            body, version = loaded
            if not matches(body, match):
                return 0
            with self._guard("delete", collection), self.engine.begin() as conn:
                result = conn.execute(
                    delete(Document).where(
                        Document.collection == collection,
                        Document.id == doc_id,
                        Document.version == version,
                    )
                )
            if result.rowcount == 1:
                return 1
        raise StoreContentionError(f"Document {doc_id} in {collection} is too contended")

    def delete_many(self, collection: str, filter_: Filter | None = None) -> int:
        """Delete every document matching ``filter_`` and return how many went."""
        ids = [doc["id"] for doc in self.find(collection, filter_)]
        if not ids:
            return 0
        with self._guard("delete", collection), self.engine.begin() as conn:
            result = conn.execute(
                delete(Document).where(
                    Document.collection == collection,
                    Document.id.in_(ids),
                )
            )
        return int(result.rowcount or 0)
