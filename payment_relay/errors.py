"""Exception types shared across Payment Relay."""


class RelayError(Exception):
    """Base class for all Payment Relay errors."""


class ConfigError(RelayError):
    pass


class PersistenceError(RelayError):
    """A write to the request store could not complete."""


class RequestNotFound(PersistenceError):
    pass


class NotificationError(RelayError):
    """Posting, editing or reacting to a Slack message failed."""


__all__ = [
    "RelayError",
    "ConfigError",
    "PersistenceError",
    "RequestNotFound",
    "NotificationError",
]
