# Overview: Service-layer operations for access/refresh tokens; encapsulates issuance and validation.

"""
Token Management Service

WHY: Stateless short-lived access tokens for every request, plus a
longer-lived refresh token that is tracked server-side so it can be revoked.

SECURITY FEATURES:
- HS256-signed JWTs (PyJWT); access tokens carry user_id and role slugs
- Access token lifetime: ACCESS_TOKEN_TTL_MINUTES (default 15)
- Refresh token lifetime: REFRESH_TOKEN_TTL_DAYS (default 7)
- Refresh tokens hashed with SHA-256 before storage, with a role snapshot
- Logout hard-deletes the refresh token row
- Expiry is checked lazily: an expired refresh token is deleted when presented
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from ..models import RefreshToken, User
from ..time_utils import utcnow
from .errors import UnauthenticatedError
from .role_service import RoleService


TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"
JWT_ALGORITHM = "HS256"


@dataclass
class TokenClaims:
    """Validated token contents."""
    user_id: int
    roles: list[str]
    token_type: str
    expires_at: datetime
    jti: str | None = None


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime in seconds
    record: RefreshToken


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy (unlike passwords), so a fast hash is
    sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


class TokenService:
    def __init__(self, session, *, secret_key: str, access_ttl: timedelta, refresh_ttl: timedelta):
        self.session = session
        self.secret_key = secret_key
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_config(cls, session, config) -> "TokenService":
        return cls(
            session,
            secret_key=config["JWT_SECRET_KEY"],
            access_ttl=timedelta(minutes=config["ACCESS_TOKEN_TTL_MINUTES"]),
            refresh_ttl=timedelta(days=config["REFRESH_TOKEN_TTL_DAYS"]),
        )

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def _encode(self, claims: dict, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = dict(claims)
        payload["iat"] = now
        payload["exp"] = now + ttl
        return jwt.encode(payload, self.secret_key, algorithm=JWT_ALGORITHM)

    def issue_access_token(self, user_id: int, role_slugs: list[str]) -> str:
        return self._encode(
            {"user_id": user_id, "roles": list(role_slugs), "type": TOKEN_TYPE_ACCESS},
            self.access_ttl,
        )

    def issue_token_pair(self, user: User) -> TokenPair:
        """Issue access + refresh tokens and persist the refresh token."""
        role_slugs = RoleService.role_slugs(user)
        access_token = self.issue_access_token(user.id, role_slugs)
        refresh_token = self._encode(
            {"user_id": user.id, "jti": uuid.uuid4().hex, "type": TOKEN_TYPE_REFRESH},
            self.refresh_ttl,
        )

        record = RefreshToken(
            user_id=user.id,
            token_hash=hash_token(refresh_token),
            roles=",".join(role_slugs),
            expires_at=utcnow() + self.refresh_ttl,
        )
        self.session.add(record)
        self.session.commit()

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.access_ttl.total_seconds()),
            record=record,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def parse_token(self, token: str, *, expected_type: str = TOKEN_TYPE_ACCESS) -> TokenClaims:
        """
        Decode and verify a token.

        Raises UnauthenticatedError on bad signature, expiry, malformed claims
        or a token of the wrong type.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "user_id", "type"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthenticatedError("Token expired")
        except jwt.InvalidTokenError:
            raise UnauthenticatedError("Invalid token")

        if payload.get("type") != expected_type:
            raise UnauthenticatedError("Invalid token type")

        user_id = payload.get("user_id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise UnauthenticatedError("Invalid token")

        return TokenClaims(
            user_id=user_id,
            roles=list(payload.get("roles") or []),
            token_type=payload["type"],
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            jti=payload.get("jti"),
        )

    def refresh_access_token(self, refresh_token: str) -> tuple[str, int]:
        """
        Exchange a refresh token for a new access token.

        The refresh token itself is kept. Roles are re-read from the database
        so a vendor approval shows up in the next access token.

        Returns (access_token, expires_in_seconds).
        """
        claims = self.parse_token(refresh_token, expected_type=TOKEN_TYPE_REFRESH)

        record = self.session.query(RefreshToken).filter_by(
            token_hash=hash_token(refresh_token),
            user_id=claims.user_id,
        ).first()
        if record is None:
            raise UnauthenticatedError("Refresh token not valid")

        if record.expires_at < utcnow():
            self.session.delete(record)
            self.session.commit()
            raise UnauthenticatedError("Refresh token expired")

        user = self.session.get(User, claims.user_id)
        if user is None or not user.is_active:
            raise UnauthenticatedError("User not found")

        access_token = self.issue_access_token(user.id, RoleService.role_slugs(user))
        return access_token, int(self.access_ttl.total_seconds())

    def revoke_refresh_token(self, refresh_token: str) -> bool:
        """
        Hard-delete a refresh token (logout).

        Returns True if a row was deleted, False if the token was unknown.
        """
        deleted = self.session.query(RefreshToken).filter_by(
            token_hash=hash_token(refresh_token),
        ).delete(synchronize_session=False)
        self.session.commit()
        return deleted > 0

    def purge_expired(self) -> int:
        """Delete refresh tokens past their expiry. Returns count deleted."""
        deleted = self.session.query(RefreshToken).filter(
            RefreshToken.expires_at < utcnow(),
        ).delete(synchronize_session=False)
        self.session.commit()
        return deleted
