"""Error taxonomy for push delivery and notification persistence."""

from enum import Enum


class PushError(Exception):
    """Base class for notification delivery errors."""


class ConfigurationError(PushError):
    """Credentials or keys for a delivery channel are missing or unusable.

    Fatal for the affected channel only, never for the process.
    """


class DeliveryErrorKind(str, Enum):
    INVALID = "invalid"  # Provider confirmed the token is permanently undeliverable
    TRANSIENT = "transient"  # Network error, timeout, 5xx
    UNKNOWN = "unknown"


class DeliveryError(PushError):
    """A single delivery attempt failed.

    ``token`` is always taken from the request that failed, so the error can be
    attributed even when many sends run in one dispatch.
    """

    kind = DeliveryErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        token: str | None = None,
        status_code: int | None = None,
        detail: dict | None = None,
        kind: DeliveryErrorKind | None = None,
    ) -> None:
        super().__init__(message)
        self.token = token
        self.status_code = status_code
        self.detail = detail or {}
        if kind is not None:
            self.kind = kind

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind.value} status={self.status_code}>"


class TransientDeliveryError(DeliveryError):
    kind = DeliveryErrorKind.TRANSIENT


class PermanentTokenError(DeliveryError):
    """Provider reported the token as unregistered or not found. Triggers eviction."""

    kind = DeliveryErrorKind.INVALID


class PersistenceError(Exception):
    """A notification record or device token could not be written.

    The only error class propagated back to the triggering request.
    """
