# companion/services/identity.py
"""
Identity: accounts, sessions and profile resolution.

- AccountService   : stateless (register / authenticate / issue + verify JWT);
                     used directly by the HTTP API
- IdentityProvider : the client-side session holder (get_session,
                     on_session_change, sign_in, sign_up, sign_out)
- IdentityResolver : session -> UserProfile, never raising
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, Union

from jose import JWTError, jwt
from passlib.context import CryptContext

from companion.core.config import settings
from companion.core.errors import AuthenticationError
from companion.core.logging import get_logger
from companion.repositories.base import PracticeRepository
from companion.schemas.practice import UserProfile, UserRole

logger = get_logger(__name__)

JWT_ALG = "HS256"
DEFAULT_DISPLAY_NAME = "Doctor Friend"

# Messages surfaced verbatim to the user
INVALID_CREDENTIALS = "Invalid login credentials"
EMAIL_NOT_CONFIRMED = "Email not confirmed"
ALREADY_REGISTERED = "User already registered"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


@dataclass(frozen=True)
class Session:
    access_token: str
    user_id: str
    email: str
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


@dataclass(frozen=True)
class SignUpResult:
    """No session means an email-verification step is still pending."""
    session: Optional[Session] = None
    user: Optional[UserProfile] = None


SessionCallback = Callable[[str, Optional[Session]], Union[Awaitable[None], None]]


class AccountService:
    def __init__(
        self,
        repository: PracticeRepository,
        *,
        secret: Optional[str] = None,
        expire_minutes: Optional[int] = None,
        require_email_confirmation: Optional[bool] = None,
    ):
        self.repository = repository
        self.secret = secret or settings.JWT_SECRET
        self.expire_minutes = expire_minutes or settings.JWT_EXPIRE_MINUTES
        self.require_email_confirmation = (
            settings.REQUIRE_EMAIL_CONFIRMATION if require_email_confirmation is None else require_email_confirmation
        )

    async def register(self, email: str, password: str, full_name: str = "") -> tuple[UserProfile, bool]:
        """Returns (profile, confirmed)."""
        email = (email or "").strip().lower()
        if not email or not password:
            raise AuthenticationError("Email and password are required")
        if len(password) < settings.MIN_PASSWORD_LENGTH:
            raise AuthenticationError(f"Password should be at least {settings.MIN_PASSWORD_LENGTH} characters")

        confirmed = not self.require_email_confirmation
        try:
            profile = await self.repository.create_account(
                email=email,
                full_name=full_name or "",
                password_hash=hash_password(password),
                role=UserRole.PSYCHOLOGIST,
                email_confirmed=confirmed,
            )
        except ValueError:
            raise AuthenticationError(ALREADY_REGISTERED)

        logger.info("account_registered", user_id=profile.id, confirmed=confirmed)
        return profile, confirmed

    async def authenticate(self, email: str, password: str) -> UserProfile:
        account = await self.repository.find_account((email or "").strip().lower())
        if account is None or not verify_password(password, account.password_hash):
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not account.email_confirmed:
            raise AuthenticationError(EMAIL_NOT_CONFIRMED)
        return account.profile

    async def confirm_email(self, user_id: str) -> bool:
        return await self.repository.confirm_account(user_id)

    def issue_session(self, profile: UserProfile) -> Session:
        now = datetime.now(timezone.utc)
        expire = now + timedelta(minutes=self.expire_minutes)
        payload: dict[str, Any] = {
            "sub": profile.id,
            "email": profile.email,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        token = jwt.encode(payload, self.secret, algorithm=JWT_ALG)
        return Session(access_token=token, user_id=profile.id, email=profile.email,
                       expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc))

    def verify_token(self, token: str) -> Optional[Session]:
        # tolerate stray quotes/spaces from copy-pasted tokens
        token = (token or "").strip().strip('"').strip("'")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[JWT_ALG])
        except JWTError:
            return None
        sub = payload.get("sub")
        if not sub:
            return None
        return Session(
            access_token=token,
            user_id=sub,
            email=payload.get("email", ""),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )


class IdentityProvider:
    """Holds the current session for one client and notifies listeners."""

    def __init__(self, accounts: AccountService):
        self.accounts = accounts
        self._session: Optional[Session] = None
        self._listeners: list[SessionCallback] = []

    def get_session(self) -> Optional[Session]:
        if self._session is not None and self._session.is_expired():
            logger.info("session_expired", user_id=self._session.user_id)
            self._session = None
        return self._session

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _notify(self, event: str) -> None:
        for callback in list(self._listeners):
            result = callback(event, self._session)
            if inspect.isawaitable(result):
                await result

    async def sign_in(self, email: str, password: str) -> Session:
        profile = await self.accounts.authenticate(email, password)
        self._session = self.accounts.issue_session(profile)
        await self._notify("SIGNED_IN")
        return self._session

    async def sign_up(self, email: str, password: str, display_name: str = "") -> SignUpResult:
        profile, confirmed = await self.accounts.register(email, password, display_name)
        if not confirmed:
            return SignUpResult(session=None, user=profile)
        self._session = self.accounts.issue_session(profile)
        await self._notify("SIGNED_IN")
        return SignUpResult(session=self._session, user=profile)

    async def sign_out(self) -> None:
        if self._session is None:
            return
        self._session = None
        await self._notify("SIGNED_OUT")


class IdentityResolver:
    def __init__(self, repository: PracticeRepository):
        self.repository = repository

    async def resolve(self, session: Optional[Session]) -> Optional[UserProfile]:
        if session is None:
            return None
        try:
            return await self.repository.fetch_profile(session.user_id)
        except Exception as e:
            logger.warning("profile_fetch_failed", user_id=session.user_id, error=str(e))
            return None


def display_name(profile: Optional[UserProfile], session: Optional[Session] = None) -> str:
    if profile and profile.full_name:
        return profile.full_name
    if session and session.email:
        return session.email
    return DEFAULT_DISPLAY_NAME
