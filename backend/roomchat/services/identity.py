from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from jwt import ExpiredSignatureError, InvalidTokenError
from sqlalchemy.exc import IntegrityError

from roomchat.core.config import Settings, settings as default_settings
from roomchat.core.errors import AuthenticationError, ValidationError
from roomchat.models.chat import User
from roomchat.services.store import ChatStore

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class Identity:
    subject_id: str
    display_handle: str


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


class TokenIssuer:
    """Signs and verifies HS256 bearer tokens; no database access."""

    def __init__(self, config: Settings | None = None) -> None:
        config = config or default_settings
        self.secret = config.jwt_secret
        self.algorithm = config.jwt_algorithm
        self.expires = timedelta(minutes=config.jwt_expires_minutes)

    def issue_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.id,
            "username": user.username,
            "iat": now,
            "exp": now + self.expires,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_credential(self, token: str | None) -> Identity:
        if not token:
            raise AuthenticationError("missing bearer token")
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except ExpiredSignatureError as exc:
            raise AuthenticationError("token expired") from exc
        except InvalidTokenError as exc:
            raise AuthenticationError("invalid token") from exc
        return Identity(subject_id=str(claims["sub"]), display_handle=str(claims.get("username", "")))


class IdentityService:
    def __init__(self, store: ChatStore, issuer: TokenIssuer | None = None):
        self.store = store
        self.issuer = issuer or TokenIssuer()

    def register(self, username: str, password: str) -> User:
        username = (username or "").strip()
        if not username or not password:
            raise ValidationError("username and password required")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        if self.store.find_user_by_username(username):
            raise ValidationError("username taken")
        try:
            user = self.store.create_user(username, hash_password(password))
        except IntegrityError as exc:
            # a concurrent registration took the name between check and insert
            raise ValidationError("username taken") from exc
        logger.info("Registered user %s", user.username)
        return user

    def login(self, username: str, password: str) -> str:
        username = (username or "").strip()
        if not username or not password:
            raise ValidationError("username and password required")
        user = self.store.find_user_by_username(username)
        if not user or not check_password(password, user.password_hash):
            raise AuthenticationError("invalid credentials")
        return self.issuer.issue_token(user)

    def verify_credential(self, token: str | None) -> Identity:
        return self.issuer.verify_credential(token)
