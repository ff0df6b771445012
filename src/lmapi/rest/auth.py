"""LMv1 request signing.

Every request carries an ``Authorization`` header of the form
``LMv1 {access_id}:{signature}:{epoch_ms}`` where the signature is the
Base64 encoding of the hex HMAC-SHA256 digest of
``method + epoch_ms + body + path`` keyed with the access key.
"""

import base64
import hashlib
import hmac
import time

from ..config import Credentials

BODY_METHODS = frozenset({"PUT", "POST", "PATCH"})


def sign(method: str, path: str, body: str | None, epoch_ms: int, secret: str) -> str:
    """Compute the LMv1 signature for a request.

    Args:
        method: HTTP method, upper case.
        path: Resource path without the API root or query string.
        body: Request body; ignored for methods that carry no body.
        epoch_ms: Milliseconds since the epoch.
        secret: Tenant access key.

    Returns:
        Base64 encoded signature.
    """
    content = (body or "") if method in BODY_METHODS else ""
    message = f"{method}{epoch_ms}{content}{path}"
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    return base64.b64encode(digest.encode()).decode()


class Authenticator:
    """Builds authorization tokens for one tenant's credentials."""

    def __init__(self, credentials: Credentials):
        self._credentials = credentials

    def token(self, method: str, path: str, body: str | None = None) -> str:
        """Return an ``LMv1`` token stamped with the current time.

        Called once per attempt so that retries after a rate-limit sleep
        stay inside the server's clock-skew window.
        """
        epoch_ms = int(time.time() * 1000)
        signature = sign(method, path, body, epoch_ms, self._credentials.access_key)
        return f"LMv1 {self._credentials.access_id}:{signature}:{epoch_ms}"
