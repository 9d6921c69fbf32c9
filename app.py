"""Application entry point for the Slack gateway receiver."""

from __future__ import annotations

from uuid import uuid4

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException
import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

from slack_gateway import load_version
from slack_gateway.apps import AppRegistry, load_app_registry
from slack_gateway.brigade import BrigadeClient, EventsClient
from slack_gateway.commands import SlashCommandService
from slack_gateway.config import get_api_client_settings, get_receiver_settings
from slack_gateway.errors import ValidationFailure
from slack_gateway.logging_config import configure_logging
from slack_gateway.models import SlashCommand
from slack_gateway.security import require_slack_signature

INTERNAL_ERROR_BODY = {"status": "internal server error"}


def _internal_error():
    response = jsonify(INTERNAL_ERROR_BODY)
    response.status_code = 500
    return response


def _register_error_handlers(flask_app: Flask) -> None:
    """Register a JSON error handler that logs a trace identifier."""

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        if isinstance(error, HTTPException):
            return error
        structlog.get_logger().error("unhandled_application_error", exc_info=error)
        return _internal_error()


def _register_request_context(flask_app: Flask) -> None:
    @flask_app.before_request
    def bind_trace_id():
        bind_contextvars(trace_id=str(uuid4()))

    @flask_app.teardown_request
    def unbind_trace_id(_exc):
        unbind_contextvars("trace_id")


_LOGGING_CONFIGURED = False


def create_app(
    *,
    registry: AppRegistry | None = None,
    events_client: EventsClient | None = None,
) -> Flask:
    """Create and configure the Flask application.

    The app registry and the Brigade client are built from environment
    settings unless they are passed in.
    """

    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        configure_logging(component="receiver")
        _LOGGING_CONFIGURED = True

    if registry is None:
        registry = load_app_registry(get_receiver_settings().slack_apps_path)
    if events_client is None:
        events_client = BrigadeClient.from_settings(get_api_client_settings())
    service = SlashCommandService(events_client)

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = load_version()
    _register_error_handlers(flask_app)
    _register_request_context(flask_app)

    @flask_app.route("/slash-commands", methods=["POST"])
    @require_slack_signature(registry)
    def slash_commands():
        command = SlashCommand.from_form(request.form)
        log = structlog.get_logger().bind(app_id=command.api_app_id, command=command.command)
        log.info("slash_command_received", channel=command.channel_id, user_id=command.user_id)
        try:
            body = service.render(command)
        except ValidationFailure as exc:
            log.error("slash_command_failed", error_type=type(exc).__name__, error=str(exc))
            return _internal_error()
        return Response(body, status=200, mimetype="application/json")

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        return jsonify({"ok": True, "version": flask_app.config.get("APP_VERSION", "unknown")})

    return flask_app


def main() -> None:
    settings = get_receiver_settings()
    application = create_app()
    structlog.get_logger().info("receiver_starting", version=load_version(), port=settings.port)
    ssl_context = (settings.tls_cert_path, settings.tls_key_path) if settings.tls_enabled else None
    application.run(host="0.0.0.0", port=settings.port, ssl_context=ssl_context)


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    main()
