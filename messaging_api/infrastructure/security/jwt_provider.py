# messaging_api/infrastructure/security/jwt_provider.py

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt

from messaging_api.config.settings import settings
from messaging_api.core.exceptions import UnauthorizedError


class JwtProvider:
    def __init__(self) -> None:
        self._secret = settings.jwt_secret
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self._algorithm = "HS256"

    def issue_access_token(self, *, subject: str, payload: dict | None = None, minutes: int = 0) -> str:
        ttl = minutes if minutes and minutes > 0 else settings.jwt_access_minutes
        now = datetime.now(tz=timezone.utc)
        exp = now + timedelta(minutes=ttl)

        claims = {
            "iss": self._issuer,
            "aud": self._audience,
            "sub": str(subject),
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
            "jti": uuid4().hex,
            "typ": "access",
        }
        claims.update(payload or {})
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> dict:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub", "typ"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise UnauthorizedError("Token expired.") from e
        except jwt.InvalidTokenError as e:
            raise UnauthorizedError("Invalid token.") from e
