"""bookstore package initializer

Queries, aggregation reports and collection setup for the ``books``
collection of the bookstore MongoDB database. Every function that talks to
MongoDB takes the collection (or database) handle as an argument; use
``connect_db.get_database`` to build one from the environment.
"""

from .errors import InvalidInput, StoreUnavailable

__all__ = [
    "InvalidInput",
    "StoreUnavailable",
    "connect_db",
    "create_collections",
    "insert_books",
    "queries",
    "reports",
    "schema",
]
