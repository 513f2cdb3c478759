"""Bearer-token authentication."""
import jwt
from django.conf import settings
from django.test import SimpleTestCase
from rest_framework import exceptions
from rest_framework.test import APIRequestFactory

from quota_core.adapters.security.jwt_authentication import JWTAuthentication
from quota_core.adapters.security.jwt_service import JWTService


class JWTServiceTests(SimpleTestCase):
    def test_clinic_token_carries_clinic_claim(self):
        token = JWTService.create_token(subject="u-1", role="clinic", clinic_id="c-9")
        payload = JWTService.decode_token(token)
        self.assertEqual(payload["sub"], "u-1")
        self.assertEqual(payload["role"], "clinic")
        self.assertEqual(payload["clinic_id"], "c-9")

    def test_admin_token_has_no_clinic(self):
        payload = JWTService.decode_token(JWTService.create_token(subject="a-1", role="admin"))
        self.assertNotIn("clinic_id", payload)

    def test_expired_token(self):
        token = JWTService.create_token(subject="u-1", role="clinic", expires_in=-10)
        with self.assertRaises(jwt.ExpiredSignatureError):
            JWTService.decode_token(token)

    def test_foreign_signature(self):
        token = jwt.encode({"sub": "u-1"}, "another-secret-that-is-long-enough-for-hs256", algorithm=settings.JWT_ALGORITHM)
        with self.assertRaises(jwt.InvalidSignatureError):
            JWTService.decode_token(token)


class JWTAuthenticationTests(SimpleTestCase):
    def setUp(self):
        self.auth = JWTAuthentication()
        self.factory = APIRequestFactory()

    def _request(self, header=None):
        extra = {"HTTP_AUTHORIZATION": header} if header is not None else {}
        return self.factory.get("/api/cases", **extra)

    def test_no_header_means_anonymous(self):
        self.assertIsNone(self.auth.authenticate(self._request()))
        self.assertIsNone(self.auth.authenticate(self._request("Basic abc")))

    def test_valid_token_builds_user(self):
        token = JWTService.create_token(subject="u-7", role="clinic", clinic_id="c-1")
        user, raw = self.auth.authenticate(self._request(f"Bearer {token}"))
        self.assertEqual((user.id, user.role, user.clinic_id), ("u-7", "clinic", "c-1"))
        self.assertTrue(user.is_authenticated)
        self.assertEqual(raw, token)

    def test_malformed_header(self):
        with self.assertRaises(exceptions.AuthenticationFailed):
            self.auth.authenticate(self._request("Bearer a b"))

    def test_token_without_subject(self):
        token = jwt.encode({"role": "clinic"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
        with self.assertRaises(exceptions.AuthenticationFailed):
            self.auth.authenticate(self._request(f"Bearer {token}"))
