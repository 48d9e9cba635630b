"""Persistence layer exceptions.

All of them inherit from PersistenceError so callers can catch the whole
family with one clause.
"""


class PersistenceError(Exception):
    """Base exception for all listing store errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """The store could not be initialized or reached.

    Examples: empty URL, unreadable SQLite file, failing connection probe,
    session requested before init_database().
    """

    pass


class RecordNotFoundError(PersistenceError):
    """A listing that must exist was not found.

    Optional lookups return None instead.
    """

    pass


class DataIntegrityError(PersistenceError):
    """A write violated a constraint (e.g. duplicate slug)."""

    pass
