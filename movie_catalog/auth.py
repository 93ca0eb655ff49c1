import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, request

from movie_catalog.errors import ApiError, AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


@dataclass(frozen=True)
class Identity:
    """Decoded caller identity attached to ``flask.g``."""

    user_id: str
    role: str


def parse_duration(value: str | int | None, default: int = 86400):
    """
    Parse an expiry such as ``"1d"``, ``"12h"``, ``"30m"`` or ``"3600"``.

    Args:
        value (str | int | None): Raw duration.
        default (int): Seconds used when the value cannot be parsed.

    Returns:
        int: Duration in seconds.
    """
    if value is None:
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    match = re.fullmatch(r"\s*(\d+)\s*([smhd]?)\s*", str(value).lower())
    if not match:
        return default
    amount = int(match.group(1))
    seconds = amount * DURATION_UNITS.get(match.group(2) or "s")
    return seconds if seconds > 0 else default


def issue_token(user_id: str, role: str, secret: str, expires_in: str | int | None = None):
    """
    Sign a bearer token for a user.

    Args:
        user_id (str): User identifier.
        role (str): User role.
        secret (str): Signing secret.
        expires_in (str | int | None): Lifetime, see ``parse_duration``.

    Returns:
        str: Encoded JWT.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(seconds=parse_duration(expires_in)),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def authenticate(header: str | None, secret: str, required_role: str | None = None):
    """
    Verify an ``Authorization`` header and decode the caller's identity.

    Args:
        header (str | None): Raw header value, expected ``Bearer <token>``.
        secret (str): Signing secret.
        required_role (str | None): Role the caller must hold.

    Returns:
        Identity: Decoded identity.

    Raises:
        AuthenticationError: Missing, malformed, tampered or expired token.
        AuthorizationError: Role does not match ``required_role``.
    """
    header = header or ""
    token = header[7:].strip() if header.startswith("Bearer ") else ""
    if not token:
        raise AuthenticationError("No token, authorization denied")

    try:
        decoded = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected bearer token: %s", e)
        raise AuthenticationError("Token is not valid")

    user_id = decoded.get("id")
    if not user_id:
        raise AuthenticationError("Token is not valid")

    identity = Identity(user_id=str(user_id), role=decoded.get("role") or "user")
    if required_role and identity.role != required_role:
        raise AuthorizationError("Forbidden")
    return identity


def require_auth(required_role: str | None = None):
    """
    Decorate a view so it only runs for an authenticated caller.

    Args:
        required_role (str | None): Optional role the caller must hold.

    Returns:
        Callable: View decorator; the identity is available as ``g.identity``.
    """
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            try:
                g.identity = authenticate(
                    request.headers.get("Authorization"),
                    current_app.config["JWT_SECRET"],
                    required_role,
                )
            except ApiError as e:
                return e.to_response()
            return view(*args, **kwargs)
        return wrapped
    return decorator
