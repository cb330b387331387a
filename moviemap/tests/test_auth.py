import unittest
from unittest.mock import patch

from firebase_admin import auth as firebase_auth

from moviemap.auth import (
    AccessGate,
    FirebaseTokenVerifier,
    Identity,
    Moderator,
    StaticTokenVerifier,
    bearer_token,
)
from moviemap.db import InMemoryModeratorStore
from moviemap.errors import Forbidden, StoreUnavailable, Unauthorized


class AccessGateTests(unittest.TestCase):
    def setUp(self):
        self.verifier = StaticTokenVerifier(
            {
                "mod-token": Identity(uid="mod-1", email="mod@example.com"),
                "user-token": Identity(uid="user-1"),
            }
        )
        self.gate = AccessGate(self.verifier, InMemoryModeratorStore({"mod-1"}))

    def test_moderator_is_authorized(self):
        moderator = self.gate.authorize("mod-token")
        self.assertEqual(moderator, Moderator(uid="mod-1", email="mod@example.com"))

    def test_valid_non_moderator_is_forbidden(self):
        with self.assertRaises(Forbidden) as ctx:
            self.gate.authorize("user-token")
        self.assertEqual(ctx.exception.http_status, 403)

    def test_invalid_token_is_unauthorized(self):
        with self.assertRaises(Unauthorized) as ctx:
            self.gate.authorize("forged-token")
        self.assertEqual(ctx.exception.http_status, 401)

    def test_missing_token_is_unauthorized(self):
        for token in (None, ""):
            with self.assertRaises(Unauthorized):
                self.gate.authorize(token)


class BearerTokenTests(unittest.TestCase):
    def test_extracts_token(self):
        self.assertEqual(bearer_token("Bearer abc.def"), "abc.def")

    def test_rejects_bad_headers(self):
        for header in (None, "", "abc.def", "Basic abc", "Bearer ", "bearer abc"):
            with self.assertRaises(Unauthorized):
                bearer_token(header)


class FirebaseTokenVerifierTests(unittest.TestCase):
    def setUp(self):
        self.verifier = FirebaseTokenVerifier()

    @patch.object(firebase_auth, "verify_id_token")
    def test_verified_claims_become_identity(self, mock_verify):
        mock_verify.return_value = {"uid": "mod-1", "email": "mod@example.com"}
        identity = self.verifier.verify("good-token")
        self.assertEqual(identity, Identity(uid="mod-1", email="mod@example.com"))
        mock_verify.assert_called_once_with(
            "good-token", app=None, check_revoked=False
        )

    @patch.object(firebase_auth, "verify_id_token")
    def test_expired_token_is_unauthorized(self, mock_verify):
        mock_verify.side_effect = firebase_auth.ExpiredIdTokenError(
            "Token expired", cause=None
        )
        with self.assertRaises(Unauthorized):
            self.verifier.verify("expired-token")

    @patch.object(firebase_auth, "verify_id_token")
    def test_tampered_token_is_unauthorized(self, mock_verify):
        mock_verify.side_effect = firebase_auth.InvalidIdTokenError("Bad signature")
        with self.assertRaises(Unauthorized):
            self.verifier.verify("tampered-token")

    @patch.object(firebase_auth, "verify_id_token")
    def test_malformed_token_is_unauthorized(self, mock_verify):
        mock_verify.side_effect = ValueError("Illegal ID token provided")
        with self.assertRaises(Unauthorized):
            self.verifier.verify("???")

    @patch.object(firebase_auth, "verify_id_token")
    def test_certificate_fetch_failure_is_retryable(self, mock_verify):
        mock_verify.side_effect = firebase_auth.CertificateFetchError(
            "Could not fetch certificates", cause=None
        )
        with self.assertRaises(StoreUnavailable) as ctx:
            self.verifier.verify("good-token")
        self.assertTrue(ctx.exception.retryable)


if __name__ == "__main__":
    unittest.main()
