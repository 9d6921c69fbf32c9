"""Thin wrapper utilities around the Slack WebClient."""

from __future__ import annotations

from http.client import RemoteDisconnected
from typing import Any, List, Mapping, Optional, Sequence
from urllib.error import URLError

from slack_sdk import WebClient
from slack_sdk.http_retry import (
    BackoffRetryIntervalCalculator,
    ConnectionErrorRetryHandler,
    HttpRequest,
    HttpResponse,
    RetryHandler,
    RetryState,
)

from .apps import AppRegistration

DEFAULT_MAX_RETRIES = 4
DEFAULT_BACKOFF_FACTOR = 0.5

# slack_sdk's defaults plus read timeouts.
CONNECTION_ERROR_TYPES = [URLError, ConnectionResetError, RemoteDisconnected, TimeoutError]


class ServerErrorsRetryHandler(RetryHandler):
    """Retry any 5xx response from the Slack API."""

    def _can_retry(
        self,
        *,
        state: RetryState,
        request: HttpRequest,
        response: Optional[HttpResponse] = None,
        error: Optional[Exception] = None,
    ) -> bool:
        return response is not None and 500 <= response.status_code < 600


def transient_retry_handlers(
    *,
    max_retry_count: int = DEFAULT_MAX_RETRIES,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
) -> List[RetryHandler]:
    """Retry handlers for network failures and server errors, with backoff."""

    backoff = BackoffRetryIntervalCalculator(backoff_factor=backoff_factor)
    return [
        ConnectionErrorRetryHandler(
            max_retry_count=max_retry_count,
            interval_calculator=backoff,
            error_types=list(CONNECTION_ERROR_TYPES),
        ),
        ServerErrorsRetryHandler(max_retry_count=max_retry_count, interval_calculator=backoff),
    ]


class SlackClient:
    """Encapsulate Slack WebClient interactions for easier testing."""

    def __init__(self, *, token: str | None = None, client: WebClient | None = None) -> None:
        if client is None and token is None:
            raise ValueError("Either an instantiated client or a bot token must be provided.")
        self._client = client or WebClient(token=token, retry_handlers=transient_retry_handlers())

    @classmethod
    def for_app(cls, app: AppRegistration) -> "SlackClient":
        """Build a client that posts with the app's API token."""

        return cls(token=app.api_token)

    @property
    def client(self) -> WebClient:
        """Expose the underlying WebClient for advanced use cases."""

        return self._client

    def post_message(
        self,
        *,
        channel: str,
        blocks: Sequence[Mapping[str, Any]],
        text: str | None = None,
        **extra: Any,
    ) -> Mapping[str, Any]:
        """Post a message with Block Kit content to a Slack channel."""

        return self._client.chat_postMessage(channel=channel, text=text, blocks=list(blocks), **extra)
