"""Utilities for validating Slack request signatures."""

from __future__ import annotations

import hmac
from functools import wraps
from hashlib import sha256

import structlog
from flask import request

from .apps import AppRegistry
from .errors import AuthenticationFailure

SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
VERSION = "v0"


def compute_signature(signing_secret: str, timestamp: str, body: str | bytes) -> str:
    """Return Slack-compatible signature for the provided payload."""

    if isinstance(body, str):
        body = body.encode("utf-8")
    basestring = f"{VERSION}:{timestamp}:".encode("utf-8") + body
    secret = signing_secret.encode("utf-8")
    digest = hmac.new(secret, basestring, sha256).hexdigest()
    return f"{VERSION}={digest}"


def verify_request(
    registry: AppRegistry,
    *,
    body: bytes | None,
    timestamp: str,
    signature: str,
    app_id: str,
) -> None:
    """Raise :class:`AuthenticationFailure` unless the signature checks out."""

    if not body:
        raise AuthenticationFailure("request has no body", app_id=app_id or None)
    secret = registry.signing_secret(app_id)
    if not secret:
        raise AuthenticationFailure(f"no signing secret registered for app {app_id!r}", app_id=app_id or None)
    expected = compute_signature(secret, timestamp or "", body)
    if not hmac.compare_digest(expected.encode("utf-8"), (signature or "").encode("utf-8")):
        raise AuthenticationFailure(f"signature mismatch for app {app_id!r}", app_id=app_id)


def _read_body() -> bytes:
    # cache=True keeps the raw bytes around so the form can still be parsed.
    try:
        return request.get_data(cache=True)
    except Exception:  # an unreadable body just fails verification
        return b""


def require_slack_signature(registry: AppRegistry):
    """Decorate a Flask view so it only runs for correctly signed requests."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            body = _read_body()
            app_id = request.form.get("api_app_id", "") if body else ""
            try:
                verify_request(
                    registry,
                    body=body,
                    timestamp=request.headers.get(SLACK_TIMESTAMP_HEADER, ""),
                    signature=request.headers.get(SLACK_SIGNATURE_HEADER, ""),
                    app_id=app_id,
                )
            except AuthenticationFailure as exc:
                structlog.get_logger().warning(
                    "signature_verification_failed", app_id=exc.app_id, error=str(exc)
                )
                return "", 403
            return view(*args, **kwargs)

        return wrapper

    return decorator
