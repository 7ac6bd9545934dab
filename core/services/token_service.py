import jwt
import logging
from typing import Callable, Optional
from datetime import datetime, timedelta, timezone
from enum import Enum

from core.base.models import UnsubscribeClaims
from core.base.exception import (
    InvalidTokenError,
    MalformedTokenError,
    SignatureMismatchError,
    TokenExpiredError,
    WrongPurposeError,
)

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "email", "purpose", "exp"]

class TokenPurpose(Enum):
    Unsubscribe = "unsubscribe"

class TokenService:
    """
    Issues and verifies signed unsubscribe tokens.

    Tokens are compact JWS strings (`header.payload.signature`) signed with an
    HMAC over the first two segments. The signing secret is dedicated to this
    purpose and must match between the sender and the unsubscribe endpoint.
    """

    def __init__(self,
        secret_key: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=30),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        if not self.secret_key or not self.algorithm:
            raise ValueError("UNSUBSCRIBE_SECRET_KEY and TOKEN_ALGORITHM expected in .env")
        if not self.algorithm.startswith("HS"):
            raise ValueError(f"Unsupported token algorithm: {self.algorithm}")
        self.token_duration = lifetime
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _now(self) -> int:
        return int(self.clock().timestamp())

    def generate_unsubscribe_token(self, subscriber_id: str, email: str) -> str:
        """Generate a signed token authorising one subscriber to unsubscribe"""
        if not subscriber_id or not email:
            raise ValueError("subscriber_id and email are required to issue a token")
        issued_at = self._now()
        payload = {
            "sub": subscriber_id,
            "email": email,
            "purpose": TokenPurpose.Unsubscribe.value,
            "iat": issued_at,
            "exp": issued_at + int(self.token_duration.total_seconds()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_unsubscribe_token(self, token: str) -> UnsubscribeClaims:
        """Validate every token invariant, raising the specific InvalidTokenError on failure."""
        if not isinstance(token, str) or token.count(".") != 2:
            raise MalformedTokenError("expected three dot-separated segments")
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                # expiry is checked below against our own clock
                options={"verify_exp": False, "verify_iat": False, "require": REQUIRED_CLAIMS},
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as e:
            raise SignatureMismatchError(str(e))
        except jwt.PyJWTError as e:
            raise MalformedTokenError(str(e))

        subscriber_id, email, exp = payload["sub"], payload["email"], payload["exp"]
        if not isinstance(subscriber_id, str) or not subscriber_id:
            raise MalformedTokenError("subject claim must be a non-empty string")
        if not isinstance(email, str) or not email:
            raise MalformedTokenError("email claim must be a non-empty string")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise MalformedTokenError("exp claim must be numeric")

        # valid strictly before exp
        if self._now() >= exp:
            raise TokenExpiredError()
        if payload["purpose"] != TokenPurpose.Unsubscribe.value:
            raise WrongPurposeError()

        return UnsubscribeClaims(subscriber_id=subscriber_id, email=email)

    def verify_unsubscribe_token(self, token: str) -> Optional[UnsubscribeClaims]:
        """Return the token's claims, or None if any check fails. Never raises."""
        try:
            return self.decode_unsubscribe_token(token)
        except InvalidTokenError as e:
            logger.debug("Unsubscribe token rejected (%s)", e.reason)
            return None


def new_token_service(
    secret_key: str,
    algorithm: str = "HS256",
    lifetime_days: int = 30,
    clock: Optional[Callable[[], datetime]] = None,
) -> TokenService:
    return TokenService(secret_key, algorithm, timedelta(days=lifetime_days), clock)
