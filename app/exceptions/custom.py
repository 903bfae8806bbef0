class MNotifyError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class EmailError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class RateLimitError(Exception):
    def __init__(self, service: str):
        self.service = service
        super().__init__(f"Rate limit exceeded for {service}")


class AuthError(Exception):
    def __init__(self, message: str = "Unauthorized"):
        self.message = message
        super().__init__(message)


class PersistenceError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ChannelDeliveryError(Exception):
    """A single channel could not deliver. Never fatal to a batch run."""

    outcome = "delivery_failed"

    def __init__(self, channel: str, message: str):
        self.channel = channel
        self.message = message
        super().__init__(f"{channel}: {message}")


class ChannelUnavailable(ChannelDeliveryError):
    outcome = "unavailable"


class DeliveryFailed(ChannelDeliveryError):
    outcome = "delivery_failed"


class ProviderError(ChannelDeliveryError):
    outcome = "provider_error"
