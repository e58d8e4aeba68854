"""
Authentication Flow Module

Signup, login and logout on top of the user store, the session table and a
cookie transport. Login failures are deliberately uniform: an unknown email
and a wrong password produce the same error.
"""

from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from .storage import StorageInterface, StorageRecord
from .users import User, UserManager
from .security import SessionTokenIssuer
from .cookies import CookieTransport, cleared_cookie_attributes, session_cookie_attributes
from .errors import ConflictError, UnauthorizedError, UniqueConstraintError
from .validation import DEFAULT_MINIMUM_AGE, validate_email, validate_signup
from .logging_config import get_logger, log_action


logger = get_logger(__name__)

SESSION_COOKIE = "session"
SESSION_MAX_AGE = timedelta(days=7)


@dataclass
class Session(StorageRecord):
    """Live login session"""
    token: str
    user_id: int
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return self.expires_at > now

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            token=data['token'],
            user_id=data['user_id'],
            expires_at=datetime.fromisoformat(data['expires_at']),
        )


@dataclass(frozen=True)
class AuthResult:
    user: Dict[str, Any]
    token: str


@dataclass(frozen=True)
class LogoutResult:
    success: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message}


class AuthService:
    """
    Issues and revokes sessions
    """

    def __init__(
        self,
        storage: StorageInterface,
        user_manager: UserManager,
        token_issuer: SessionTokenIssuer,
        cookie_name: str = SESSION_COOKIE,
        session_max_age: timedelta = SESSION_MAX_AGE,
        minimum_age: int = DEFAULT_MINIMUM_AGE,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.user_manager = user_manager
        self.token_issuer = token_issuer
        self.cookie_name = cookie_name
        self.session_max_age = session_max_age
        self.minimum_age = minimum_age
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.sessions_table = "sessions"
        self.storage.add_unique_constraint(self.sessions_table, "token")

    def _start_session(self, user: User, transport: CookieTransport) -> str:
        now = self.clock()
        token = self.token_issuer.issue(user.id, now)
        session = Session(
            id=self.storage.next_id(self.sessions_table),
            created_at=now,
            token=token,
            user_id=user.id,
            expires_at=now + self.session_max_age,
        )
        self.storage.save(self.sessions_table, session.id, session.to_dict())

        transport.set_cookie(
            self.cookie_name, token,
            session_cookie_attributes(int(self.session_max_age.total_seconds()))
        )
        return token

    def signup(self, payload: Mapping[str, Any], transport: CookieTransport) -> AuthResult:
        """
        Register a user and log them in

        Raises:
            ValidationError: Any identity field failed its rules
            ConflictError: Email already registered
        """
        data = validate_signup(payload, today=self.clock().date(),
                               minimum_age=self.minimum_age).unwrap()

        if self.user_manager.get_user_by_email(data.email):
            raise ConflictError("User already exists")

        try:
            user = self.user_manager.create_user(data)
        except UniqueConstraintError:
            raise ConflictError("User already exists")

        token = self._start_session(user, transport)

        log_action(
            logger, "info", "User signed up",
            user_id=user.id, action="signup", resource="auth"
        )
        return AuthResult(user=user.to_public_dict(), token=token)

    def login(self, email: Any, password: Any, transport: CookieTransport) -> AuthResult:
        """
        Authenticate and replace every existing session of the user

        Raises:
            UnauthorizedError: Unknown email or wrong password
        """
        normalized = validate_email(email)
        user = None
        if normalized.ok:
            user = self.user_manager.get_user_by_email(normalized.value)

        if user is None or not isinstance(password, str) \
                or not self.user_manager.verify_password(user, password):
            log_action(
                logger, "warning", "Login failed",
                action="login_failed", resource="auth"
            )
            raise UnauthorizedError("Invalid credentials")

        with self.storage.atomic():
            for session_data in self.storage.find(self.sessions_table, {"user_id": user.id}):
                self.storage.delete(self.sessions_table, session_data['id'])
            token = self._start_session(user, transport)

        log_action(
            logger, "info", "User logged in",
            user_id=user.id, action="login", resource="auth"
        )
        return AuthResult(user=user.to_public_dict(), token=token)

    def logout(self, transport: CookieTransport) -> LogoutResult:
        """
        Revoke the session named by the request cookie, if any.

        The cookie is always cleared, even when no session was presented.
        """
        token = transport.get_cookie(self.cookie_name)

        if token:
            for session_data in self.storage.find(self.sessions_table, {"token": token}):
                self.storage.delete(self.sessions_table, session_data['id'])
                log_action(
                    logger, "info", "User logged out",
                    user_id=session_data['user_id'], action="logout", resource="auth"
                )

        transport.set_cookie(self.cookie_name, "", cleared_cookie_attributes())

        if token:
            return LogoutResult(success=True, message="Logged out successfully")
        return LogoutResult(success=False, message="No active session")

    def get_session_user(self, token: Optional[str]) -> Optional[User]:
        """
        Resolve the user behind a session token.

        Expired sessions are deleted when they are looked up.
        """
        # Expiry is enforced by the session row, against the injected clock
        if not token or self.token_issuer.decode(token, verify_exp=False) is None:
            return None

        sessions = self.storage.find(self.sessions_table, {"token": token})
        if not sessions:
            return None

        session = Session.from_dict(sessions[0])
        if not session.is_valid(self.clock()):
            self.storage.delete(self.sessions_table, session.id)
            return None

        return self.user_manager.get_user(session.user_id)
