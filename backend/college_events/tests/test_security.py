import unittest
from datetime import timedelta
from unittest.mock import patch

from jose import jwt

from college_events.scheduling import utc_now
from college_events.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from college_events.tests.support import make_settings


class PasswordTests(unittest.TestCase):
    def test_hash_and_verify(self):
        hashed = hash_password("hunter22")
        self.assertTrue(hashed.startswith("$2b$10$"))
        self.assertTrue(verify_password("hunter22", hashed))
        self.assertFalse(verify_password("hunter23", hashed))

    def test_long_passwords_are_truncated_consistently(self):
        hashed = hash_password("x" * 100)
        self.assertTrue(verify_password("x" * 72, hashed))

    def test_missing_or_foreign_hash(self):
        self.assertFalse(verify_password("hunter22", None))
        self.assertFalse(verify_password("hunter22", "plaintext"))


class TokenTests(unittest.TestCase):
    def setUp(self):
        self.settings = make_settings()

    def test_round_trip_claims(self):
        token = create_access_token("u1", "asha@college.edu", "STUDENT", self.settings)
        claims = jwt.decode(token, "test-secret", algorithms=["HS256"])
        self.assertEqual(claims["userId"], "u1")
        self.assertEqual(claims["role"], "STUDENT")
        self.assertEqual(claims["exp"] - claims["iat"], 24 * 3600)

        user = decode_access_token(token, self.settings)
        self.assertEqual(user.user_id, "u1")
        self.assertEqual(user.email, "asha@college.edu")

    def test_wrong_secret_is_rejected(self):
        token = create_access_token("u1", None, "STUDENT", self.settings)
        other = make_settings(jwt_secret="another-secret")
        self.assertIsNone(decode_access_token(token, other))

    def test_expired_token_is_rejected(self):
        issued = utc_now() - timedelta(hours=25)
        with patch("college_events.security.utc_now", return_value=issued):
            token = create_access_token("u1", None, "STUDENT", self.settings)
        self.assertIsNone(decode_access_token(token, self.settings))

    def test_token_without_role_is_rejected(self):
        token = jwt.encode({"userId": "u1"}, "test-secret", algorithm="HS256")
        self.assertIsNone(decode_access_token(token, self.settings))

    def test_garbage_token(self):
        self.assertIsNone(decode_access_token("abc.def", self.settings))


if __name__ == "__main__":
    unittest.main()
