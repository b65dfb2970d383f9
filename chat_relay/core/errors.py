"""Errors raised by the relay core."""


class PersistenceError(Exception):
    """
    Raised when the durable store fails to upsert a user or append a message.
    Aborts delivery of the triggering event, never the process.
    """
