"""Error hierarchy for provider, delivery and persistence failures"""


class UntisWatchError(Exception):
    """Base exception for all untis-watch errors."""

    pass


class AuthError(UntisWatchError):
    """Login or logout against the timetable provider failed.

    Also raised when the provider reports that the session is no longer
    authenticated, which forces a re-login on the next tick.
    """

    pass


class FetchError(UntisWatchError):
    """Timetable, timegrid or class list could not be retrieved."""

    pass


class DeliveryError(UntisWatchError):
    """A notification batch could not be delivered to the webhook."""

    pass


class PersistenceError(UntisWatchError):
    """The snapshot store could not be read or written.

    Not handled by the poll loop; terminates the process.
    """

    pass


class MessageRejectedError(DeliveryError):
    """Discord refused the message itself (HTTP 400); resending will not help."""

    pass
