"""
Dependency wiring for the FastAPI app.

Backend selection lives here only; the engine and stores never read settings.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header

from moviemap.auth import (
    AccessGate,
    FirebaseTokenVerifier,
    Identity,
    Moderator,
    StaticTokenVerifier,
    TokenVerifier,
    bearer_token,
    initialize_firebase_app,
)
from moviemap.config import get_settings
from moviemap.db import (
    InMemoryLocationStore,
    InMemoryModeratorStore,
    InMemorySubmissionStore,
    LocationStore,
    ModeratorStore,
    SqlDatabase,
    SqlLocationStore,
    SqlModeratorStore,
    SqlSubmissionStore,
    SubmissionStore,
)
from moviemap.moderation import ModerationEngine
from moviemap.sample_data import seed_sample_data

logger = logging.getLogger(__name__)

_database: SqlDatabase | None = None
_location_store: LocationStore | None = None
_submission_store: SubmissionStore | None = None
_moderator_store: ModeratorStore | None = None
_token_verifier: TokenVerifier | None = None


def _use_in_memory() -> bool:
    settings = get_settings()
    return settings.use_in_memory_backends or not settings.database_url


def _use_dev_auth() -> bool:
    # Explicit flag only; a missing DATABASE_URL alone keeps Firebase auth.
    return get_settings().use_in_memory_backends


def get_database() -> SqlDatabase:
    global _database
    if _database:
        return _database
    settings = get_settings()
    _database = SqlDatabase(
        settings.database_url, timeout_seconds=settings.store_timeout_seconds
    )
    return _database


def _init_in_memory_stores() -> None:
    global _location_store, _submission_store
    _location_store = InMemoryLocationStore()
    _submission_store = InMemorySubmissionStore()
    if get_settings().seed_sample_data:
        seed_sample_data(_location_store, _submission_store)


def get_location_store() -> LocationStore:
    """
    Return a singleton location store so data persists across requests.
    """
    global _location_store
    if _location_store:
        return _location_store
    if _use_in_memory():
        _init_in_memory_stores()
    else:
        _location_store = SqlLocationStore(get_database())
    return _location_store


def get_submission_store() -> SubmissionStore:
    global _submission_store
    if _submission_store:
        return _submission_store
    if _use_in_memory():
        _init_in_memory_stores()
    else:
        _submission_store = SqlSubmissionStore(get_database())
    return _submission_store


def get_moderator_store() -> ModeratorStore:
    global _moderator_store
    if _moderator_store:
        return _moderator_store
    if _use_in_memory():
        _moderator_store = InMemoryModeratorStore()
        if _use_dev_auth():
            _moderator_store.add_moderator(get_settings().dev_moderator_uid)
    else:
        _moderator_store = SqlModeratorStore(get_database())
    return _moderator_store


def get_token_verifier() -> TokenVerifier:
    global _token_verifier
    if _token_verifier:
        return _token_verifier
    settings = get_settings()
    if _use_dev_auth():
        logger.warning(
            "Using static development token verifier; %r authenticates as %r",
            settings.dev_moderator_token,
            settings.dev_moderator_uid,
        )
        _token_verifier = StaticTokenVerifier(
            {settings.dev_moderator_token: Identity(uid=settings.dev_moderator_uid)}
        )
    else:
        app = initialize_firebase_app(
            service_account_json=settings.firebase_service_account_json,
            service_account_path=settings.firebase_service_account_path,
            project_id=settings.firebase_project_id,
        )
        _token_verifier = FirebaseTokenVerifier(
            app, check_revoked=settings.firebase_check_revoked
        )
    return _token_verifier


def get_access_gate(
    verifier: TokenVerifier = Depends(get_token_verifier),
    moderators: ModeratorStore = Depends(get_moderator_store),
) -> AccessGate:
    return AccessGate(verifier, moderators)


def get_moderation_engine(
    locations: LocationStore = Depends(get_location_store),
    submissions: SubmissionStore = Depends(get_submission_store),
) -> ModerationEngine:
    settings = get_settings()
    return ModerationEngine(
        locations, submissions, retry_attempts=settings.store_retry_attempts
    )


def require_moderator(
    authorization: Optional[str] = Header(default=None),
    gate: AccessGate = Depends(get_access_gate),
) -> Moderator:
    """Authenticate the bearer token and require moderator membership."""
    return gate.authorize(bearer_token(authorization))


def reset_dependencies() -> None:
    """Drop cached backends (useful in tests)."""
    global _database, _location_store, _submission_store, _moderator_store
    global _token_verifier
    _database = None
    _location_store = None
    _submission_store = None
    _moderator_store = None
    _token_verifier = None
