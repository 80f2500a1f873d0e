"""
Signed identity tokens (JWT, HS256)
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt


class InvalidTokenError(Exception):
    """Token is malformed, has a bad signature, or is expired"""


class TokenService:
    """Issues and verifies self-contained identity tokens.

    Tokens carry only ``sub`` (the user id) and ``exp``. Nothing is stored
    server-side, so a token stays valid until it expires; rotating the
    signing key invalidates every outstanding token at once.
    """

    algorithm = "HS256"

    def __init__(self, secret_key: str, ttl: timedelta = timedelta(hours=24)):
        self._secret_key = secret_key
        self.ttl = ttl

    def issue(self, subject: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        claims = {
            "sub": str(subject),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """Return the token's subject or raise InvalidTokenError"""
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError(str(e)) from e
        return claims["sub"]
