"""Tests for admin sign-in."""

import pytest

from swiftship.config import Settings
from swiftship.services.auth import SESSION_KEY, SessionProvider


@pytest.fixture
def config():
    return Settings(admin_email="ops@example.com", admin_password="s3cret", admin_name="Ops")


class TestSessionProvider:
    """Test signing in and out against a session mapping."""

    def test_signed_out_by_default(self, config):
        assert SessionProvider({}, config).get_current_user() is None

    def test_sign_in(self, config):
        session = {}
        user = SessionProvider(session, config).sign_in(" OPS@example.com ", "s3cret")

        assert user is not None
        assert user.is_admin
        assert user.full_name == "Ops"
        # A new provider over the same session sees the same user
        assert SessionProvider(session, config).get_current_user() == user

    def test_wrong_password(self, config):
        session = {}
        assert SessionProvider(session, config).sign_in("ops@example.com", "nope") is None
        assert SESSION_KEY not in session

    def test_sign_out(self, config):
        session = {}
        provider = SessionProvider(session, config)
        provider.sign_in("ops@example.com", "s3cret")

        provider.sign_out()

        assert provider.get_current_user() is None
        assert session == {}

    def test_unreadable_session_is_signed_out(self, config):
        session = {SESSION_KEY: {"unexpected": "shape"}}
        assert SessionProvider(session, config).get_current_user() is None
        assert SESSION_KEY not in session
