"""Unit tests for auth/passwords.py -- Argon2id credential hashing.

Covers:
- hash() output is an encoded Argon2id string, never the plaintext
- verify() accepts the right password and rejects others
- salt randomization: two hashes of one password differ, both verify
- verify() fails closed on malformed hashes and out-of-bounds input
- hash() refuses empty and oversized plaintext
- hashes carry their own cost parameters across hasher instances
"""

import pytest

from auth.errors import ValidationError
from auth.passwords import MAX_PASSWORD_BYTES, CredentialHasher


class TestHash:
    def test_hash_is_not_plaintext(self, hasher: CredentialHasher) -> None:
        encoded = hasher.hash("secret")
        assert encoded != "secret"
        assert "secret" not in encoded

    def test_hash_is_argon2id_phc_string(self, hasher: CredentialHasher) -> None:
        encoded = hasher.hash("secret")
        assert encoded.startswith("$argon2id$v=19$")
        assert "m=1024,t=1,p=1" in encoded

    def test_same_password_gets_fresh_salt(self, hasher: CredentialHasher) -> None:
        """Two hashes of one password must differ yet both verify."""
        first = hasher.hash("correct horse battery staple")
        second = hasher.hash("correct horse battery staple")
        assert first != second
        assert hasher.verify("correct horse battery staple", first)
        assert hasher.verify("correct horse battery staple", second)

    def test_empty_password_rejected(self, hasher: CredentialHasher) -> None:
        with pytest.raises(ValidationError) as exc_info:
            hasher.hash("")
        assert exc_info.value.field == "password"

    def test_oversized_password_rejected(self, hasher: CredentialHasher) -> None:
        with pytest.raises(ValidationError):
            hasher.hash("a" * (MAX_PASSWORD_BYTES + 1))

    def test_limit_counts_bytes_not_characters(self, hasher: CredentialHasher) -> None:
        """130 two-byte characters is 260 bytes -- over the limit."""
        with pytest.raises(ValidationError):
            hasher.hash("é" * 130)

    def test_password_at_limit_accepted(self, hasher: CredentialHasher) -> None:
        plain = "a" * MAX_PASSWORD_BYTES
        assert hasher.verify(plain, hasher.hash(plain))


class TestVerify:
    @pytest.mark.parametrize("password", ["secret", "pässwörd", " padded ", "x" * 200])
    def test_correct_password_verifies(self, hasher: CredentialHasher, password: str) -> None:
        assert hasher.verify(password, hasher.hash(password)) is True

    def test_wrong_password_rejected(self, hasher: CredentialHasher) -> None:
        encoded = hasher.hash("secret")
        assert hasher.verify("Secret", encoded) is False
        assert hasher.verify("secret ", encoded) is False

    @pytest.mark.parametrize(
        "encoded",
        [
            "",
            "not-a-hash",
            "$argon2id$v=19$m=1024,t=1,p=1$garbage",
            "$2b$12$KIXQJQhYp4bqz1W9nH5o2uE6vZq7H8pQm9bM0Tz5f1Yc3rN2sD4eG",
            "$argon2id$v=19$m=1024,t=1,p=1$ünicode$ünicode",
            None,
        ],
    )
    def test_malformed_hash_returns_false(self, hasher: CredentialHasher, encoded) -> None:
        """Fail closed: a bad stored hash is a failed login, never an exception."""
        assert hasher.verify("secret", encoded) is False

    def test_empty_plaintext_returns_false(self, hasher: CredentialHasher) -> None:
        encoded = hasher.hash("secret")
        assert hasher.verify("", encoded) is False

    def test_oversized_plaintext_returns_false(self, hasher: CredentialHasher) -> None:
        encoded = hasher.hash("secret")
        assert hasher.verify("a" * (MAX_PASSWORD_BYTES + 1), encoded) is False

    def test_verify_dummy_never_raises(self, hasher: CredentialHasher) -> None:
        assert hasher.verify_dummy("anything") is None

    def test_hash_is_self_describing(self, hasher: CredentialHasher) -> None:
        """A hash made at one cost verifies under a hasher configured with another."""
        encoded = hasher.hash("secret")
        other = CredentialHasher(time_cost=2, memory_cost=2048, parallelism=1)
        assert other.verify("secret", encoded) is True
