"""
Unit tests for account provisioning and credential checks.

Tests find-or-create by phone, registration validation order and
password login.
"""

import re
from unittest.mock import patch

import pytest

from bookworm.errors import AuthenticationError, ConflictError, ValidationError
from bookworm.services import AccountProvisioner, CredentialVerifier

PHONE = "+15551234567"
USERNAME_PATTERN = re.compile(r"^user_\d{6}$")


class TestEnsureUserByPhone:
    """Tests for the OTP path provisioning."""

    @pytest.mark.unit
    def test_creates_account_with_derived_defaults(self, provisioner):
        user = provisioner.ensure_user_by_phone(PHONE)

        assert user.phone_number == PHONE
        assert USERNAME_PATTERN.match(user.username)
        assert user.profile_image == (
            f"https://api.dicebear.com/9.x/personas/svg?seed={user.username}"
        )
        assert user.email is None
        assert user.password_hash.startswith("$2b$")

    @pytest.mark.unit
    def test_idempotent_with_single_write(self, provisioner, user_store):
        """Test two calls return the same account and write once."""
        with patch.object(user_store, "_save_all", wraps=user_store._save_all) as save:
            first = provisioner.ensure_user_by_phone(PHONE)
            second = provisioner.ensure_user_by_phone(PHONE)

        assert first.user_id == second.user_id
        assert save.call_count == 1

    @pytest.mark.unit
    def test_existing_account_is_returned_unchanged(self, provisioner, user_store):
        existing = user_store.create_user(username="bookfan", phone_number=PHONE)

        user = provisioner.ensure_user_by_phone(PHONE)

        assert user.user_id == existing.user_id
        assert user.username == "bookfan"

    @pytest.mark.unit
    def test_username_collision_is_retried(self, provisioner, user_store):
        """Test a taken synthetic username triggers a fresh one."""
        user_store.create_user(username="user_123456", email="taken@example.com")

        with patch.object(
            provisioner, "generate_username", side_effect=["user_123456", "user_654321"]
        ):
            user = provisioner.ensure_user_by_phone(PHONE)

        assert user.username == "user_654321"
        assert user.profile_image.endswith("seed=user_654321")

    @pytest.mark.unit
    def test_gives_up_after_retry_budget(self, user_store):
        user_store.create_user(username="user_123456", email="taken@example.com")
        provisioner = AccountProvisioner(user_store, retry_attempts=3)

        with patch.object(provisioner, "generate_username", return_value="user_123456"):
            with pytest.raises(ConflictError):
                provisioner.ensure_user_by_phone(PHONE)

        assert user_store.get_by_phone(PHONE) is None

    @pytest.mark.unit
    def test_generated_usernames_match_pattern(self):
        for attempt in range(5):
            assert USERNAME_PATTERN.match(AccountProvisioner.generate_username(attempt))

    @pytest.mark.unit
    def test_first_username_uses_clock_tail(self):
        with patch("bookworm.services.account_provisioner.time.time_ns",
                   return_value=1_700_000_123_456_000_000):
            assert AccountProvisioner.generate_username() == "user_123456"

    @pytest.mark.unit
    def test_custom_avatar_base(self, user_store):
        provisioner = AccountProvisioner(user_store, avatar_base_url="https://avatars.test/svg")
        assert provisioner.avatar_url("a b") == "https://avatars.test/svg?seed=a%20b"


class TestRegisterUser:
    """Tests for the registration path."""

    @pytest.mark.unit
    def test_register_success(self, provisioner, user_store):
        user = provisioner.register_user("a@x.com", "abc", "secret1")

        assert user.email == "a@x.com"
        assert user.username == "abc"
        assert user.profile_image.endswith("seed=abc")
        assert user_store.verify_password(user, "secret1") is True

    @pytest.mark.unit
    def test_email_is_normalized(self, provisioner):
        user = provisioner.register_user("  Reader@Example.COM ", "reader", "secret1")
        assert user.email == "reader@example.com"

    @pytest.mark.unit
    @pytest.mark.parametrize("email,username,password", [
        (None, "abc", "secret1"),
        ("   ", "abc", "secret1"),
        ("a@x.com", "", "secret1"),
        ("a@x.com", "   ", "secret1"),
        ("a@x.com", "abc", None),
    ])
    def test_missing_fields(self, provisioner, email, username, password):
        with pytest.raises(ValidationError, match="All fields are required"):
            provisioner.register_user(email, username, password)

    @pytest.mark.unit
    def test_short_password_writes_nothing(self, provisioner, user_store):
        with patch.object(user_store, "_save_all") as save:
            with pytest.raises(ValidationError, match="Password should be at least 6"):
                provisioner.register_user("a@x.com", "abc", "12345")

        save.assert_not_called()

    @pytest.mark.unit
    def test_blank_email_writes_nothing(self, provisioner, user_store):
        with pytest.raises(ValidationError, match="All fields are required"):
            provisioner.register_user("   ", "blank", "secret1")

        assert user_store.list_users() == []

    @pytest.mark.unit
    def test_password_over_bcrypt_limit_writes_nothing(self, provisioner, user_store):
        with patch.object(user_store, "_save_all") as save:
            with pytest.raises(ValidationError, match="at most 72 bytes"):
                provisioner.register_user("a@x.com", "abc", "a" * 73)

        save.assert_not_called()

    @pytest.mark.unit
    def test_password_limit_counts_bytes(self, provisioner):
        """Test a short password of multi-byte characters can still exceed the limit."""
        with pytest.raises(ValidationError, match="at most 72 bytes"):
            provisioner.register_user("a@x.com", "abc", "\u00e9" * 37)

    @pytest.mark.unit
    def test_short_username(self, provisioner):
        with pytest.raises(ValidationError, match="Username should be at least 3"):
            provisioner.register_user("a@x.com", "ab", "secret1")

    @pytest.mark.unit
    def test_password_checked_before_username(self, provisioner):
        with pytest.raises(ValidationError, match="Password"):
            provisioner.register_user("a@x.com", "ab", "12345")

    @pytest.mark.unit
    def test_duplicate_email_wins_over_duplicate_username(self, provisioner, user_store):
        """Test email conflict is reported before username is looked at."""
        provisioner.register_user("a@x.com", "abc", "secret1")

        with patch.object(
            user_store, "get_by_username", wraps=user_store.get_by_username
        ) as by_username:
            with pytest.raises(ConflictError, match="Email already exists"):
                provisioner.register_user("a@x.com", "abc", "secret1")

        by_username.assert_not_called()

    @pytest.mark.unit
    def test_duplicate_username(self, provisioner):
        provisioner.register_user("a@x.com", "abc", "secret1")

        with pytest.raises(ConflictError, match="Username already exists"):
            provisioner.register_user("b@x.com", "abc", "secret1")

    @pytest.mark.unit
    def test_store_conflict_is_translated(self, provisioner, user_store):
        """Test a race lost at insert time reports the same message."""
        provisioner.register_user("a@x.com", "abc", "secret1")

        with patch.object(user_store, "get_by_email", return_value=None):
            with pytest.raises(ConflictError, match="Email already exists"):
                provisioner.register_user("a@x.com", "other", "secret1")


class TestCredentialVerifier:
    """Tests for password login."""

    @pytest.mark.unit
    def test_login_success(self, user_store, sample_user, test_config):
        verifier = CredentialVerifier(user_store)
        user = verifier.login(test_config["test_email"], test_config["test_password"])

        assert user.user_id == sample_user.user_id

    @pytest.mark.unit
    def test_login_email_case_insensitive(self, user_store, sample_user, test_config):
        verifier = CredentialVerifier(user_store)
        user = verifier.login(test_config["test_email"].upper(), test_config["test_password"])

        assert user.user_id == sample_user.user_id

    @pytest.mark.unit
    def test_unknown_user(self, user_store):
        with pytest.raises(AuthenticationError, match="User not found"):
            CredentialVerifier(user_store).login("nobody@example.com", "secret1")

    @pytest.mark.unit
    def test_blank_email_matches_nobody(self, user_store, sample_user):
        with pytest.raises(AuthenticationError, match="User not found"):
            CredentialVerifier(user_store).login("   ", "secret1")

    @pytest.mark.unit
    def test_over_long_password_is_invalid_credentials(self, user_store, sample_user, test_config):
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            CredentialVerifier(user_store).login(test_config["test_email"], "a" * 100)

    @pytest.mark.unit
    def test_wrong_password(self, user_store, sample_user, test_config):
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            CredentialVerifier(user_store).login(test_config["test_email"], "wrong-pass")

    @pytest.mark.unit
    def test_otp_account_cannot_password_login(self, user_store, provisioner):
        """Test the placeholder password of an OTP account never matches."""
        user = provisioner.ensure_user_by_phone(PHONE)
        user.email = "phone@example.com"
        user_store.update_user(user)

        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            CredentialVerifier(user_store).login("phone@example.com", "anything")
