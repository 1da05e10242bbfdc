from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from .config import Settings
from .exceptions import ConnectionError, QueryError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
EngineFactory = Callable[..., Engine]


@dataclass
class ConnectionState:
    """The one live connection and the database it points at."""

    target_database: Optional[str] = None
    live_connection: Optional[Connection] = None
    engine: Optional[Engine] = None

    def is_live_for(self, database: str) -> bool:
        return (
            self.live_connection is not None
            and not self.live_connection.closed
            and self.target_database == database
        )


class ConnectionManager:
    """Keeps at most one connection open, reconnecting when the database changes."""

    def __init__(
        self,
        settings: Settings,
        engine_factory: EngineFactory = create_engine,
        state: Optional[ConnectionState] = None,
    ) -> None:
        self.settings = settings
        self.engine_factory = engine_factory
        self.state = state if state is not None else ConnectionState()

    def url_for(self, database: str) -> URL:
        return URL.create(
            "postgresql+psycopg2",
            username=self.settings.user,
            password=self.settings.password or None,
            host=self.settings.host,
            port=self.settings.port,
            database=database,
        )

    def connect(self, database: str) -> Connection:
        if self.state.is_live_for(database):
            return self.state.live_connection  # type: ignore[return-value]

        self.close()

        engine: Optional[Engine] = None
        try:
            engine = self.engine_factory(
                self.url_for(database),
                poolclass=NullPool,
                isolation_level="AUTOCOMMIT",
                echo=self.settings.sqlalchemy_echo,
            )
            connection = engine.connect()
        except SQLAlchemyError as exc:
            if engine is not None:
                engine.dispose()
            logger.error("Connection to database %s failed: %s", database, exc)
            raise ConnectionError(database, str(exc)) from exc

        self.state = ConnectionState(
            target_database=database, live_connection=connection, engine=engine
        )
        logger.info("Connected to database %s on %s", database, self.settings.host)
        return connection

    def close(self) -> None:
        state = self.state
        if state.live_connection is None and state.engine is None:
            return
        self.state = ConnectionState()
        try:
            if state.live_connection is not None:
                state.live_connection.close()
        finally:
            if state.engine is not None:
                state.engine.dispose()
        logger.info("Closed connection to database %s", state.target_database)


class QueryExecutor:
    """Runs read-only statements and materializes their rows."""

    def __init__(self, connections: ConnectionManager) -> None:
        self.connections = connections

    def run_query(
        self,
        database: str,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[Row]:
        connection = self.connections.connect(database)
        logger.debug("Running query on %s: %s %s", database, " ".join(sql.split()), params or {})
        try:
            result = connection.execute(text(sql), dict(params or {}))
            fields = list(result.keys())
            return [dict(zip(fields, row)) for row in result]
        except SQLAlchemyError as exc:
            if isinstance(exc, DBAPIError) and exc.connection_invalidated:
                logger.warning("Connection to database %s was severed", database)
                self.connections.close()
            logger.error("Query on database %s failed: %s", database, exc)
            raise QueryError(database, str(exc)) from exc
