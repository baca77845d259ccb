"""Admin sign-in backed by the signed session cookie."""

import secrets
from dataclasses import asdict, dataclass
from typing import Any, MutableMapping

import structlog

from swiftship.config import Settings, settings

logger = structlog.get_logger(__name__)

SESSION_KEY = "user"


@dataclass(frozen=True)
class User:
    id: str
    email: str
    full_name: str
    role: str = "admin"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class SessionProvider:
    """The signed-in user for one request.

    The session mapping is the only place the sign-in is kept.
    """

    def __init__(self, session: MutableMapping[str, Any], config: Settings | None = None):
        self.session = session
        self.config = config or settings

    def get_current_user(self) -> User | None:
        data = self.session.get(SESSION_KEY)
        if not data:
            return None
        try:
            return User(**data)
        except TypeError:
            # Cookie written by an incompatible version
            self.session.pop(SESSION_KEY, None)
            return None

    def sign_in(self, email: str, password: str) -> User | None:
        """Check credentials against the configured admin account."""
        email = email.strip().lower()
        expected_email = self.config.admin_email.lower()
        expected_password = self.config.admin_password.get_secret_value()

        email_ok = secrets.compare_digest(email.encode(), expected_email.encode())
        password_ok = secrets.compare_digest(password.encode(), expected_password.encode())
        if not (email_ok and password_ok):
            logger.warning("Admin sign-in rejected", email=email)
            return None

        user = User(id="admin", email=expected_email, full_name=self.config.admin_name)
        self.session[SESSION_KEY] = asdict(user)
        logger.info("Admin signed in", email=user.email)
        return user

    def sign_out(self) -> None:
        user = self.get_current_user()
        self.session.pop(SESSION_KEY, None)
        if user:
            logger.info("Admin signed out", email=user.email)
