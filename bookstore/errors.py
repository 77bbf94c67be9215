"""Exceptions raised by the bookstore package."""

from contextlib import contextmanager

from pymongo.errors import ConnectionFailure


class InvalidInput(ValueError):
    """A request or stored record cannot be processed as given."""


class StoreUnavailable(RuntimeError):
    """MongoDB could not be reached."""


@contextmanager
def store_call(action: str):
    """Re-raise driver connection failures as ``StoreUnavailable``.

    ``ServerSelectionTimeoutError``, ``AutoReconnect`` and ``NetworkTimeout``
    all derive from ``ConnectionFailure``. The driver error stays chained.
    """
    try:
        yield
    except ConnectionFailure as e:
        raise StoreUnavailable(f"MongoDB unavailable during {action}: {e}") from e
