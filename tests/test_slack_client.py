"""Unit tests for the Slack WebClient wrapper."""

import socket
from http.client import RemoteDisconnected

import pytest
from slack_sdk.http_retry import ConnectionErrorRetryHandler, HttpRequest, HttpResponse, RetryState

from slack_gateway.apps import AppRegistration
from slack_gateway.slack_client import ServerErrorsRetryHandler, SlackClient, transient_retry_handlers


class DummyWebClient:
    def __init__(self):
        self.calls = []

    def chat_postMessage(self, **kwargs):
        self.calls.append(("post", kwargs))
        return {"ok": True, "message": kwargs}


def _request() -> HttpRequest:
    return HttpRequest(method="POST", url="https://slack.com/api/chat.postMessage", headers={})


def _response(status_code: int) -> HttpResponse:
    return HttpResponse(status_code=status_code, headers={})


def test_requires_token_or_client():
    with pytest.raises(ValueError):
        SlackClient()


def test_post_message_uses_underlying_client():
    dummy = DummyWebClient()
    client = SlackClient(client=dummy)

    response = client.post_message(
        channel="C123",
        text="Event Status Update",
        blocks=[{"type": "section"}],
        response_type="in_channel",
    )

    assert dummy.calls == [
        (
            "post",
            {
                "channel": "C123",
                "text": "Event Status Update",
                "blocks": [{"type": "section"}],
                "response_type": "in_channel",
            },
        ),
    ]
    assert response["ok"] is True
    assert client.client is dummy


def test_for_app_posts_with_the_app_token():
    client = SlackClient.for_app(AppRegistration(app_id="42", signing_secret="secret", api_token="xoxb-42"))

    assert client.client.token == "xoxb-42"
    handler_types = {type(handler) for handler in client.client.retry_handlers}
    assert {ConnectionErrorRetryHandler, ServerErrorsRetryHandler} <= handler_types


@pytest.mark.parametrize("status_code, expected", [(500, True), (503, True), (599, True), (429, False), (200, False)])
def test_server_errors_are_retried(status_code, expected):
    handler = ServerErrorsRetryHandler(max_retry_count=2)

    assert (
        handler.can_retry(state=RetryState(), request=_request(), response=_response(status_code), error=None)
        is expected
    )


def test_server_errors_give_up_after_max_retries():
    handler = ServerErrorsRetryHandler(max_retry_count=1)
    state = RetryState(current_attempt=1)

    assert handler.can_retry(state=state, request=_request(), response=_response(500), error=None) is False


def test_transient_retry_handlers_share_retry_limit():
    handlers = transient_retry_handlers(max_retry_count=7)

    assert [type(handler) for handler in handlers] == [ConnectionErrorRetryHandler, ServerErrorsRetryHandler]
    assert all(handler.max_retry_count == 7 for handler in handlers)


@pytest.mark.parametrize(
    "error, expected",
    [
        (TimeoutError("The read operation timed out"), True),
        (socket.timeout("timed out"), True),
        (ConnectionResetError("reset"), True),
        (RemoteDisconnected("closed"), True),
        (ValueError("not a network problem"), False),
    ],
)
def test_connection_errors_and_timeouts_are_retried(error, expected):
    connection_handler = transient_retry_handlers()[0]

    assert connection_handler.can_retry(state=RetryState(), request=_request(), error=error) is expected
