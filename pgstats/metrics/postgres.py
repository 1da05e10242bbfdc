import math
from functools import partial
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import QueryError
from . import queries
from .base import (
    AggregateMetricResult,
    MetricDefinition,
    MetricKind,
    MetricScope,
    Number,
    QuerySource,
    TableMetricResult,
)
from .registry import MetricRegistry

DEFAULT_PAGE_SIZE = 8192


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    return int(value)


def _to_float(value: Any) -> float:
    if value is None:
        return 0.0
    return float(value)


def _convert(value: Any, as_float: bool) -> Number:
    return _to_float(value) if as_float else _to_int(value)


def rows_to_table_mapping(
    rows: Iterable[Dict[str, Any]],
    value_column: str = "value",
    key_column: str = "relname",
    as_float: bool = False,
) -> TableMetricResult:
    """Zip a key column and a value column of query rows into a mapping."""
    return {row[key_column]: _convert(row[value_column], as_float) for row in rows}


def collect_per_table(
    source: QuerySource, database: str, sql: str, as_float: bool = False
) -> TableMetricResult:
    return rows_to_table_mapping(source.run_query(database, sql), as_float=as_float)


def collect_per_database(
    source: QuerySource, database: str, sql: str, as_float: bool = False
) -> Number:
    rows = source.run_query(database, sql, {"database": database})
    if not rows:
        raise QueryError(database, "no statistics row for this database")
    return _convert(rows[0]["value"], as_float)


def list_databases(source: QuerySource) -> List[str]:
    rows = source.run_query(source.maintenance_database, queries.LIST_DATABASES)
    return [row["Database"] for row in rows if row["Database"] not in source.exclude_dbs]


def list_tables(source: QuerySource, database: str) -> List[str]:
    return [row["relname"] for row in source.run_query(database, queries.LIST_TABLES)]


def estimate_row_count(
    table_bytes: Number,
    relpages: Number,
    reltuples: Number,
    page_size: Number = DEFAULT_PAGE_SIZE,
) -> int:
    """Rows that fit in ``table_bytes`` at the density the planner last recorded.

    Returns 0 until the table has been vacuumed or analyzed at least once.
    """
    if not reltuples or reltuples <= 0 or not relpages or relpages <= 0:
        return 0
    bytes_per_row = float(page_size) * float(relpages) / float(reltuples)
    return int(math.floor(float(table_bytes) / bytes_per_row + 0.5))


def get_table_estimated_rows(source: QuerySource, database: str, table: str) -> int:
    rows = source.run_query(database, queries.TABLE_PLANNER_STATS, {"table": table})
    if not rows:
        raise QueryError(database, f"no planner statistics for table '{table}'")
    row = rows[0]
    return estimate_row_count(
        _to_int(row["table_bytes"]),
        _to_int(row["relpages"]),
        _to_float(row["reltuples"]),
        _to_int(row.get("page_size")) or DEFAULT_PAGE_SIZE,
    )


def get_tables_estimated_rows(source: QuerySource, database: str) -> TableMetricResult:
    return {
        table: get_table_estimated_rows(source, database, table)
        for table in list_tables(source, database)
    }


def get_connections_per_database(
    source: QuerySource, database: Optional[str] = None
) -> AggregateMetricResult:
    rows = source.run_query(source.maintenance_database, queries.CONNECTIONS_PER_DATABASE)
    counts = {
        row["datname"]: _to_int(row["count"])
        for row in rows
        if row["datname"] is not None and row["datname"] not in source.exclude_dbs
    }
    if database is not None:
        return counts.get(database, 0)
    return counts


def get_locks_per_database(source: QuerySource, database: str) -> List[Dict[str, Any]]:
    return source.run_query(database, queries.LOCKS, {"database": database})


def get_number_of_locks_per_database(source: QuerySource, database: str) -> int:
    return len(get_locks_per_database(source, database))


def table_metric(
    name: str,
    units: str,
    kind: MetricKind,
    sql: str,
    reported_as_float: bool = False,
    description: str = "",
) -> MetricDefinition:
    return MetricDefinition(
        name=name,
        units=units,
        kind=kind,
        scope=MetricScope.TABLE,
        handler=partial(collect_per_table, sql=sql, as_float=reported_as_float),
        reported_as_float=reported_as_float,
        description=description,
    )


def database_counter(name: str, units: str, sql: str, description: str = "") -> MetricDefinition:
    return MetricDefinition(
        name=name,
        units=units,
        kind=MetricKind.COUNTER,
        scope=MetricScope.AGGREGATE,
        handler=partial(collect_per_database, sql=sql, as_float=True),
        reported_as_float=True,
        description=description,
    )


GAUGE = MetricKind.GAUGE
COUNTER = MetricKind.COUNTER

TABLE_GAUGES = [
    table_metric("table_size", "bytes", GAUGE, queries.TABLE_SIZES,
                 description="Size of the table's main fork."),
    table_metric("index_size", "bytes", GAUGE, queries.INDEX_SIZES,
                 description="Size of the table's indexes and TOAST data."),
    MetricDefinition(
        name="estimated_rows",
        units="rows",
        kind=GAUGE,
        scope=MetricScope.TABLE,
        handler=get_tables_estimated_rows,
        description="Row count estimated from planner statistics.",
    ),
    table_metric("dead", "rows", GAUGE, queries.DEAD_TUPLES,
                 description="Dead tuples not yet reclaimed by vacuum."),
    table_metric("last_vacuum", "seconds since", GAUGE, queries.LAST_AUTOVACUUM,
                 description="Seconds since the last autovacuum, -1 if never."),
]

TABLE_COUNTERS = [
    table_metric("inserts", "inserts/s", COUNTER, queries.TUPLES_INSERTED, True),
    table_metric("updates", "updates/s", COUNTER, queries.TUPLES_UPDATED, True),
    table_metric("deletes", "deletes/s", COUNTER, queries.TUPLES_DELETED, True),
    table_metric("hot_updates", "updates/s", COUNTER, queries.TUPLES_HOT_UPDATED, True),
    table_metric("seq_scan", "scans/s", COUNTER, queries.SEQ_SCAN, True),
    table_metric("idx_scan", "scans/s", COUNTER, queries.IDX_SCAN, True),
    table_metric("seq_tup_read", "rows/s", COUNTER, queries.SEQ_TUP_READ, True),
    table_metric("idx_tup_fetch", "rows/s", COUNTER, queries.IDX_TUP_FETCH, True),
    table_metric("heap_blks_read", "blocks/s", COUNTER, queries.HEAP_BLKS_READ, True),
    table_metric("heap_blks_hit", "blocks/s", COUNTER, queries.HEAP_BLKS_HIT, True),
    table_metric("idx_blks_read", "blocks/s", COUNTER, queries.IDX_BLKS_READ, True),
    table_metric("idx_blks_hit", "blocks/s", COUNTER, queries.IDX_BLKS_HIT, True),
    table_metric("returned", "rows/s", COUNTER, queries.TUPLES_RETURNED),
    table_metric("fetched", "rows/s", COUNTER, queries.TUPLES_FETCHED),
]

AGGREGATE_GAUGES = [
    MetricDefinition(
        name="locks",
        units="locks",
        kind=GAUGE,
        scope=MetricScope.AGGREGATE,
        handler=get_number_of_locks_per_database,
        description="Locks held on user relations of the database.",
    ),
    MetricDefinition(
        name="connections",
        units="connections",
        kind=GAUGE,
        scope=MetricScope.AGGREGATE,
        handler=get_connections_per_database,
        description="Backends connected to the database.",
    ),
]

AGGREGATE_COUNTERS = [
    database_counter("blocks_fetched", "blocks/s", queries.DB_BLOCKS_FETCHED),
    database_counter("blocks_hit", "blocks/s", queries.DB_BLOCKS_HIT),
    database_counter("commits", "commits/s", queries.DB_XACT_COMMIT),
    database_counter("rollbacks", "rollbacks/s", queries.DB_XACT_ROLLBACK),
    database_counter("inserts", "inserts/s", queries.DB_TUPLES_INSERTED),
    database_counter("updates", "updates/s", queries.DB_TUPLES_UPDATED),
    database_counter("deletes", "deletes/s", queries.DB_TUPLES_DELETED),
]

DEFAULT_DEFINITIONS = TABLE_GAUGES + TABLE_COUNTERS + AGGREGATE_GAUGES + AGGREGATE_COUNTERS


def build_default_registry() -> MetricRegistry:
    registry = MetricRegistry()
    registry.register_all(DEFAULT_DEFINITIONS)
    return registry
