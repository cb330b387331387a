"""
Access control for moderation routes.

Authorization is two-staged: the bearer token is verified by the identity
provider (Firebase Authentication), then the verified uid is looked up in the
moderator set. A bad credential is ``Unauthorized``; a good credential for a
non-moderator is ``Forbidden``.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from moviemap.db import ModeratorStore
from moviemap.errors import Forbidden, StoreUnavailable, Unauthorized

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    uid: str
    email: Optional[str] = None


@dataclass(frozen=True)
class Moderator:
    uid: str
    email: Optional[str] = None


class TokenVerifier(Protocol):
    """Verifies an identity token, raising ``Unauthorized`` when it is bad."""

    def verify(self, token: str) -> Identity:
        ...


class FirebaseTokenVerifier:
    def __init__(
        self, app: Optional[firebase_admin.App] = None, *, check_revoked: bool = False
    ):
        self.app = app
        self.check_revoked = check_revoked

    def verify(self, token: str) -> Identity:
        try:
            claims = firebase_auth.verify_id_token(
                token, app=self.app, check_revoked=self.check_revoked
            )
        except firebase_auth.CertificateFetchError as exc:
            logger.warning("Could not fetch Firebase signing certificates: %s", exc)
            raise StoreUnavailable("Identity provider is temporarily unavailable") from exc
        except (
            ValueError,
            firebase_auth.InvalidIdTokenError,
            firebase_auth.UserDisabledError,
        ) as exc:
            logger.warning("Rejected identity token: %s", exc)
            raise Unauthorized("Unauthorized: Invalid token") from exc
        return Identity(uid=claims["uid"], email=claims.get("email"))


@dataclass
class StaticTokenVerifier:
    """Fixed token -> identity table for development and tests."""

    tokens: dict[str, Identity] = field(default_factory=dict)

    def verify(self, token: str) -> Identity:
        identity = self.tokens.get(token)
        if identity is None:
            raise Unauthorized("Unauthorized: Invalid token")
        return identity


class AccessGate:
    def __init__(self, verifier: TokenVerifier, moderators: ModeratorStore):
        self.verifier = verifier
        self.moderators = moderators

    def authorize(self, identity_token: Optional[str]) -> Moderator:
        if not identity_token:
            raise Unauthorized("Unauthorized: Authentication required")
        identity = self.verifier.verify(identity_token)
        if not self.moderators.is_moderator(identity.uid):
            logger.warning("User %s is not a moderator", identity.uid)
            raise Forbidden("Forbidden: User is not a moderator")
        return Moderator(uid=identity.uid, email=identity.email)


def bearer_token(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized("Unauthorized: Missing or invalid authorization header")
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthorized("Unauthorized: Missing or invalid authorization header")
    return token


def initialize_firebase_app(
    *,
    service_account_json: Optional[str] = None,
    service_account_path: Optional[str] = None,
    project_id: Optional[str] = None,
) -> firebase_admin.App:
    """
    Return the default Firebase app, initializing it on first use.

    Credentials are taken from, in order: a service-account JSON string, a
    service-account file, then application default credentials.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if service_account_json:
        credential = credentials.Certificate(json.loads(service_account_json))
        source = "service account JSON"
    elif service_account_path and os.path.exists(service_account_path):
        credential = credentials.Certificate(service_account_path)
        source = service_account_path
    else:
        credential = credentials.ApplicationDefault()
        source = "application default credentials"

    options = {"projectId": project_id} if project_id else None
    app = firebase_admin.initialize_app(credential, options)
    logger.info("Firebase Admin SDK initialized from %s", source)
    return app
