"""Exception hierarchy shared by the receiver and the monitor."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors raised by the gateway.

    ``event_id`` and ``app_id`` are attached whenever the failing operation
    concerned a specific Brigade event or Slack app so log lines can carry
    them as structured keys.
    """

    def __init__(self, message: str, *, event_id: str | None = None, app_id: str | None = None) -> None:
        super().__init__(message)
        self.event_id = event_id
        self.app_id = app_id


class AuthenticationFailure(GatewayError):
    """The inbound request signature could not be verified."""


class ValidationFailure(GatewayError):
    """A slash command could not be turned into an event or acknowledged."""


class EventCreationError(ValidationFailure):
    pass


class MessageRenderError(ValidationFailure):
    pass


class PermanentEventFailure(GatewayError):
    """The event cannot be reported until its data is corrected."""


class DeliveryError(GatewayError):
    """Sending a status message to Slack failed after transport retries."""

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class SourceStateError(GatewayError):
    """The status message was delivered but the tracking flag was not cleared."""


class FatalInfrastructureFailure(GatewayError):
    """An error that stops the monitor entirely."""


class EventListingError(FatalInfrastructureFailure):
    pass


class HealthcheckError(FatalInfrastructureFailure):
    pass


class BrigadeApiError(GatewayError):
    """A request to the Brigade API failed or returned an error status."""

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class Cancelled(Exception):
    """Reason attached to a cancellation that was requested explicitly."""


class DeadlineExceeded(Cancelled):
    """Reason attached to a cancellation triggered by an elapsed deadline."""
