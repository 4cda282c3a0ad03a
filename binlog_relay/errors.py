"""
Exception hierarchy for the relay.
"""


class RelayError(Exception):
    """Base class for relay errors."""

    pass


class ConfigurationError(RelayError):
    """Raised when configuration is invalid or incomplete."""

    pass


class RelayClosedError(RelayError):
    """Raised when an event arrives after the relay has been closed."""

    pass


class BrokerSendError(RelayError):
    """Raised by a broker client when a batch could not be delivered."""

    def __init__(self, message: str, batch_size: int = 0) -> None:
        super().__init__(message)
        self.batch_size = batch_size
