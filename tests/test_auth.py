"""
Unit tests for password hashing and security-question comparison.
"""

import pytest

from api.auth import MAX_PASSWORD_BYTES, answers_match, hash_password, verify_password


class TestPasswordHashing:
    """Test cases for hash_password and verify_password."""

    def test_hash_is_not_plaintext(self):
        hashed = hash_password("potter", rounds=4)

        assert hashed != "potter"
        assert hashed.startswith("$2")

    def test_hash_uses_requested_rounds(self):
        assert hash_password("potter", rounds=5).split("$")[2] == "05"

    def test_same_password_hashes_differently(self):
        assert hash_password("potter", rounds=4) != hash_password("potter", rounds=4)

    def test_verify_correct_password(self):
        assert verify_password("potter", hash_password("potter", rounds=4))

    def test_verify_wrong_password(self):
        assert not verify_password("malfoy", hash_password("potter", rounds=4))

    def test_verify_malformed_hash(self):
        assert not verify_password("potter", "not-a-bcrypt-hash")

    def test_too_long_password_rejected(self):
        with pytest.raises(ValueError):
            hash_password("x" * (MAX_PASSWORD_BYTES + 1), rounds=4)

    def test_too_long_password_never_verifies(self):
        hashed = hash_password("x" * MAX_PASSWORD_BYTES, rounds=4)

        assert verify_password("x" * MAX_PASSWORD_BYTES, hashed)
        assert not verify_password("x" * (MAX_PASSWORD_BYTES + 1), hashed)


class TestAnswersMatch:
    """Test cases for answers_match."""

    def test_identical_answers(self):
        assert answers_match(["a", "b", "c"], ["a", "b", "c"])

    def test_one_wrong_answer(self):
        assert not answers_match(["a", "x", "c"], ["a", "b", "c"])

    def test_order_matters(self):
        assert not answers_match(["c", "b", "a"], ["a", "b", "c"])

    def test_case_matters(self):
        assert not answers_match(["A", "b", "c"], ["a", "b", "c"])

    def test_length_mismatch(self):
        assert not answers_match(["a", "b", "c"], [])
        assert not answers_match(["a", "b"], ["a", "b", "c"])

    def test_non_ascii_answers(self):
        assert answers_match(["Hédwig"], ["Hédwig"])
