"""Unit tests for password hashing."""

from greyn.kernel.identity.password import (
    MIN_PASSWORD_LENGTH,
    PasswordHasher,
    hash_password,
    verify_password,
)


class TestPasswordHasher:
    """Tests for PasswordHasher."""

    def test_hash_is_salted(self):
        """Same password should create different hashes (due to salt)."""
        hasher = PasswordHasher(rounds=4)
        hash1 = hasher.hash("TestPassword123")
        hash2 = hasher.hash("TestPassword123")

        assert hash1 != hash2
        assert hash1.startswith("$2b$04$")

    def test_verify_correct_and_wrong_password(self):
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("TestPassword123")

        assert hasher.verify("TestPassword123", hashed) is True
        assert hasher.verify("WrongPassword", hashed) is False

    def test_malformed_hash_never_verifies(self):
        assert PasswordHasher(rounds=4).verify("anything", "not-a-bcrypt-hash") is False

    def test_long_passwords_are_truncated_consistently(self):
        """bcrypt reads 72 bytes; anything past that must not break verification."""
        hasher = PasswordHasher(rounds=4)
        password = "x" * 100
        hashed = hasher.hash(password)

        assert hasher.verify(password, hashed) is True
        assert hasher.verify("x" * 72, hashed) is True

    def test_convenience_functions(self):
        hashed = hash_password("TestPassword123")

        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_minimum_length(self):
        assert MIN_PASSWORD_LENGTH == 6
