"""Shared API dependencies for the document store and the acting user."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from commonplace.core.errors import AuthorizationError
from commonplace.core.security import decode_subject
from commonplace.core.settings import settings
from commonplace.db.session import engine
from commonplace.services.identity import ActorId, resolve_actor
from commonplace.store import DocumentStore

# HTTP Bearer scheme carrying the actor id as the token subject
bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_store() -> DocumentStore:
    """Return the process-wide document store."""
    return DocumentStore(engine)


StoreDep = Annotated[DocumentStore, Depends(get_store)]


def get_actor_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> ActorId:
    """Return the actor id carried by the bearer token.

    Raises:
        HTTPException: If the token is missing or invalid.
        ValidationError: If the subject is not a well-formed id.
    """
    subject = decode_subject(credentials.credentials) if credentials else None
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return resolve_actor(subject)


ActorDep = Annotated[ActorId, Depends(get_actor_id)]


def get_operator_id(actor: ActorDep) -> ActorId:
    """Return the actor id if it belongs to a configured operator.

    Raises:
        AuthorizationError: If the actor is not listed in ``OPERATOR_IDS``.
    """
    if actor not in settings.operator_ids:
        raise AuthorizationError("Only operators can run maintenance tasks.")
    return actor


OperatorDep = Annotated[ActorId, Depends(get_operator_id)]
