class PgStatsError(Exception):
    """Base class for errors raised while collecting statistics."""


class ConnectionError(PgStatsError):
    """A session for the target database could not be established."""

    def __init__(self, database: str, message: str) -> None:
        self.database = database
        super().__init__(f"Cannot connect to database '{database}': {message}")


class QueryError(PgStatsError):
    """A statement failed after a session existed."""

    def __init__(self, database: str, message: str) -> None:
        self.database = database
        super().__init__(f"Query against database '{database}' failed: {message}")
