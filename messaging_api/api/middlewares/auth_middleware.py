# messaging_api/api/middlewares/auth_middleware.py
from functools import wraps
from typing import Any, Callable, TypeVar

from flask import g, request

from messaging_api.core.exceptions import UnauthorizedError
from messaging_api.infrastructure.security.jwt_provider import JwtProvider

F = TypeVar("F", bound=Callable[..., Any])


def _get_bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    raise UnauthorizedError("Missing token.")


def require_auth(fn: F) -> F:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        claims = JwtProvider().decode(_get_bearer_token())

        if claims.get("typ") != "access":
            raise UnauthorizedError("Invalid token.")

        try:
            int(claims["sub"])
        except (KeyError, TypeError, ValueError):
            raise UnauthorizedError("Invalid token subject.")

        g.auth = claims
        return fn(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_user_id() -> int:
    auth = getattr(g, "auth", None)
    if not auth:
        raise UnauthorizedError("Missing token.")
    return int(auth["sub"])
