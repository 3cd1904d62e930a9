"""Access token issuing and validation (HS256 JWT)."""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from archivist.config import JwtConfig
from archivist.domain.auth.model.identity import Anonymous, Identity, Principal
from archivist.domain.auth.model.value import UserId
from archivist.domain.shared.error import ConfigurationError

logger = logging.getLogger(__name__)

AUDIENCE = "authenticated"


@dataclass
class TokenService:
    """Bridges the identity provider's bearer tokens to Identity objects."""

    config: JwtConfig

    def __post_init__(self) -> None:
        if not self.config.secret:
            raise ConfigurationError("No JWT secret configured (set ARCHIVIST_AUTH__JWT__SECRET)")

    def create_access_token(self, user_id: UserId) -> str:
        now = datetime.now(UTC)
        expires_at = now + timedelta(minutes=self.config.access_token_expire_minutes)
        payload = {
            "sub": str(user_id),
            "aud": AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self.config.secret, algorithm=self.config.algorithm)

    def validate_access_token(self, token: str) -> dict[str, Any]:
        """Decode and verify a token.

        Raises:
            jwt.ExpiredSignatureError: If the token has expired
            jwt.InvalidTokenError: If the token is otherwise invalid
        """
        return jwt.decode(
            token,
            self.config.secret,
            algorithms=[self.config.algorithm],
            audience=AUDIENCE,
        )

    def resolve_identity(self, authorization: str | None) -> Identity:
        """Turn an ``Authorization`` header into an Identity.

        Missing, malformed, expired or invalid tokens all yield Anonymous.
        """
        if not authorization or not authorization.startswith("Bearer "):
            return Anonymous()

        try:
            payload = self.validate_access_token(authorization[7:])
            user_id = UserId.parse(payload["sub"])
        except (jwt.InvalidTokenError, KeyError, ValueError) as e:
            logger.debug("Rejected bearer token: %s", e)
            return Anonymous()

        return Principal(user_id=user_id)
