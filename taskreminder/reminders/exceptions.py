class ReminderError(Exception):
    """Base class for reminder engine errors."""


class QueryError(ReminderError):
    """The task store could not be scanned; the current tick is abandoned."""


class TransportError(ReminderError):
    """A message could not be handed to the transport (refused, failed or timed out)."""


class InvalidRecipient(ReminderError):
    """A task's address does not look like local@domain.tld."""

    def __init__(self, address):
        super().__init__(f"invalid recipient address: {address!r}")
        self.address = address
