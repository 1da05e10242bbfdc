from __future__ import annotations

import logging
from typing import AbstractSet, Any, Dict, List, Mapping, Optional

from ..config import Settings, settings as default_settings
from ..db import ConnectionManager, QueryExecutor
from ..metrics import postgres
from ..metrics.base import MetricResult, MetricScope
from ..metrics.registry import MetricRegistry

logger = logging.getLogger(__name__)


class StatsCollector:
    """Entry point for a monitoring agent polling one PostgreSQL cluster.

    Every call runs synchronously on the collector's single connection;
    use one collector per thread if collection is parallelised.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[MetricRegistry] = None,
        executor: Optional[QueryExecutor] = None,
    ) -> None:
        self.settings = settings if settings is not None else default_settings
        self.registry = registry if registry is not None else postgres.build_default_registry()
        self.executor = executor if executor is not None else QueryExecutor(
            ConnectionManager(self.settings)
        )

    @property
    def exclude_dbs(self) -> AbstractSet[str]:
        return frozenset(self.settings.exclude_dbs)

    @property
    def maintenance_database(self) -> str:
        return self.settings.maintenance_database

    def run_query(
        self,
        database: str,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        return self.executor.run_query(database, sql, params)

    def close(self) -> None:
        self.executor.connections.close()

    def __enter__(self) -> "StatsCollector":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def table_metric_names(self) -> List[str]:
        return self.registry.table_metric_names()

    def aggregate_metric_names(self) -> List[str]:
        return self.registry.aggregate_metric_names()

    def floating_table_metric_names(self) -> List[str]:
        return self.registry.floating_table_metric_names()

    def floating_aggregate_metric_names(self) -> List[str]:
        return self.registry.floating_aggregate_metric_names()

    def list_databases(self) -> List[str]:
        return postgres.list_databases(self)

    def list_tables(self, database: str) -> List[str]:
        return postgres.list_tables(self, database)

    def list_locks(self, database: str) -> List[Dict[str, Any]]:
        return postgres.get_locks_per_database(self, database)

    def estimated_rows(self, database: str, table: str) -> int:
        if table not in self.list_tables(database):
            raise KeyError(f"Table '{table}' is not a visible table of '{database}'.")
        return postgres.get_table_estimated_rows(self, database, table)

    def collect_table_metric(self, name: str, database: str) -> MetricResult:
        definition = self.registry.get(name, MetricScope.TABLE)
        logger.debug("Collecting table metric %s for %s", name, database)
        return MetricResult(definition, database, definition.collect(self, database))

    def collect_aggregate_metric(self, name: str, database: Optional[str] = None) -> MetricResult:
        definition = self.registry.get(name, MetricScope.AGGREGATE)
        logger.debug("Collecting aggregate metric %s for %s", name, database or "all databases")
        return MetricResult(definition, database, definition.collect(self, database))

    def collect_table_metrics(self, database: str) -> List[MetricResult]:
        return [self.collect_table_metric(name, database) for name in self.table_metric_names()]

    def collect_aggregate_metrics(self, database: str) -> List[MetricResult]:
        return [
            self.collect_aggregate_metric(name, database)
            for name in self.aggregate_metric_names()
        ]
