"""
Auth Service Module
Toy username/password scheme of the site: a user registry, bearer-token
login sessions with expiry and per-client popup dismissal flags, all kept
in a SessionRepository.
"""

import logging
import secrets
import threading
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from utils import defaults
from utils.errors import AuthorizationError, LoginRequiredError, PermissionDeniedError, ValidationError
from utils.helpers import new_id
from utils.models import User

from services.session_store import SessionRepository

logger = logging.getLogger("AuthService")

USERS_KEY = "mango_users_db"
USER_KEY_PREFIX = "mango_user:"
POPUP_KEY_PREFIX = "mango_popup_closed:"

LOGIN_FAILED_MESSAGE = "Username or password does not match."


class AuthService:
    """
    Args:
        repo: Where users, sessions and popup flags are persisted
        admin_username / admin_password: Credentials of the single admin account
        ttl_minutes: Lifetime of a login token
    """

    def __init__(self, repo: SessionRepository, admin_username: str = "admin",
                 admin_password: Optional[str] = None, ttl_minutes: int = 60 * 24):
        self.repo = repo
        self.admin_username = admin_username
        self.admin_password = admin_password
        self.ttl = timedelta(minutes=ttl_minutes)
        self._lock = threading.RLock()

    # ========================================================================
    # REGISTRY
    # ========================================================================

    def seed_users(self) -> bool:
        """Write the default users when the registry is empty. Returns True if seeded."""
        with self._lock:
            if self.repo.get(USERS_KEY):
                return False
            users = [dict(u) for u in defaults.DEFAULT_USERS]
            for user in users:
                if user["role"] == "admin":
                    user["username"] = self.admin_username
            self.repo.set(USERS_KEY, users)
        logger.info(f"[AUTH] Seeded {len(users)} default users")
        return True

    def _load_users(self) -> List[User]:
        raw = self.repo.get(USERS_KEY)
        if not raw:
            self.seed_users()
            raw = self.repo.get(USERS_KEY, [])
        return [User.model_validate(u) for u in raw]

    def list_users(self) -> List[dict]:
        return [u.public_view() for u in self._load_users()]

    def find_user(self, username: str) -> Optional[User]:
        return next((u for u in self._load_users() if u.username == username), None)

    # ========================================================================
    # LOGIN / SIGNUP
    # ========================================================================

    def _start_session(self, user: User) -> str:
        token = secrets.token_urlsafe(24)
        self.repo.set(f"{USER_KEY_PREFIX}{token}", {
            "user": user.public_view(),
            "expiresAt": (datetime.now() + self.ttl).isoformat(),
        })
        return token

    def login(self, username: str, password: Optional[str] = None) -> Tuple[str, User]:
        """
        Authenticate and open a session.

        The admin account is checked against the configured password; other
        users log in by username, plus password when they registered one.

        Returns:
            (token, user)
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError("Enter your username.")

        if username == self.admin_username:
            if not self.admin_password or password != self.admin_password:
                logger.warning("[AUTH] Failed admin login")
                raise AuthorizationError(LOGIN_FAILED_MESSAGE)
            user = self.find_user(username) or User(id="admin", username=username, role="admin", nickname="관리자")
        else:
            user = self.find_user(username)
            if user is None or (user.password and password != user.password):
                raise AuthorizationError(LOGIN_FAILED_MESSAGE)

        token = self._start_session(user)
        logger.info(f"[AUTH] {user.username} logged in ({user.role})")
        return token, user

    def signup(self, username: str, password: str, nickname: str) -> Tuple[str, User]:
        username = (username or "").strip()
        password = (password or "").strip()
        nickname = (nickname or "").strip()
        if not username or not password:
            raise ValidationError("Enter a username and password.")
        if not nickname:
            raise ValidationError("Enter a nickname.")

        with self._lock:
            users = self._load_users()
            if username == self.admin_username or any(u.username == username for u in users):
                raise ValidationError(f"The username '{username}' is already taken.")
            user = User(id=new_id(), username=username, role="user", nickname=nickname, password=password)
            users.append(user)
            self.repo.set(USERS_KEY, [u.to_document() for u in users])

        logger.info(f"[AUTH] New user signed up: {username}")
        return self._start_session(user), user

    def logout(self, token: Optional[str]):
        if token:
            self.repo.clear(f"{USER_KEY_PREFIX}{token}")

    # ========================================================================
    # SESSIONS
    # ========================================================================

    def current_user(self, token: Optional[str]) -> Optional[User]:
        """User behind a token, or None when missing or expired"""
        if not token:
            return None
        entry = self.repo.get(f"{USER_KEY_PREFIX}{token}")
        if not entry:
            return None
        try:
            expired = datetime.fromisoformat(entry["expiresAt"]) < datetime.now()
        except (KeyError, TypeError, ValueError):
            expired = True
        if expired:
            self.repo.clear(f"{USER_KEY_PREFIX}{token}")
            return None
        return User.model_validate(entry["user"])

    def require_user(self, token: Optional[str]) -> User:
        user = self.current_user(token)
        if user is None:
            raise LoginRequiredError()
        return user

    def require_admin(self, token: Optional[str]) -> User:
        user = self.require_user(token)
        if not user.is_admin:
            raise PermissionDeniedError("Only administrators can do that.")
        return user

    # ========================================================================
    # POPUP
    # ========================================================================

    def is_popup_dismissed(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        return bool(self.repo.get(f"{POPUP_KEY_PREFIX}{session_id}"))

    def dismiss_popup(self, session_id: str):
        if not session_id:
            raise ValidationError("A client session id is required.")
        self.repo.set(f"{POPUP_KEY_PREFIX}{session_id}", True)
