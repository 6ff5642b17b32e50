"""Bearer token authentication."""

import hmac
import re

from homefs.exceptions import HomeFSError

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


class AuthenticationError(HomeFSError):
    """The request carries no valid bearer token."""

    code = "unauthorized"


def check_bearer_token(authorization: str | None, expected_token: str) -> None:
    """Verify an Authorization header against the configured token.

    Authentication is disabled when no token is configured. The token
    comparison runs in constant time.

    Args:
        authorization: Raw Authorization header value, if any
        expected_token: Configured token ("" disables authentication)

    Raises:
        AuthenticationError: If the header is missing, malformed, or carries the wrong token
    """
    expected_token = expected_token.strip()
    if not expected_token:
        return

    header = (authorization or "").strip()
    if not header:
        raise AuthenticationError("Unauthorized: missing Authorization header")

    match = _BEARER_RE.match(header)
    if not match:
        raise AuthenticationError("Unauthorized: expected Bearer token in Authorization header")

    supplied = match.group(1).strip()
    if not hmac.compare_digest(expected_token.encode("utf-8"), supplied.encode("utf-8")):
        raise AuthenticationError("Unauthorized: invalid token")
