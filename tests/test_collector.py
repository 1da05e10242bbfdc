from unittest.mock import MagicMock

import pytest

from pgstats.config import Settings
from pgstats.exceptions import QueryError
from pgstats.metrics.base import MetricKind, MetricScope
from pgstats.services.collector import StatsCollector


def _executor(rows_for):
    """Executor whose run_query answers with ``rows_for(database, sql, params)``."""
    executor = MagicMock()
    executor.run_query.side_effect = rows_for
    return executor


@pytest.fixture
def settings():
    return Settings(exclude_dbs={"template0", "template1"}, maintenance_database="postgres")


def test_table_metric_is_dispatched_to_table_handler(settings):
    def rows_for(database, sql, params):
        if "pg_stat_get_tuples_inserted" in sql:
            return [{"relname": "orders", "value": 12}]
        return []

    collector = StatsCollector(settings, executor=_executor(rows_for))
    result = collector.collect_table_metric("inserts", "shop")

    assert result.definition.scope is MetricScope.TABLE
    assert result.definition.kind is MetricKind.COUNTER
    assert result.database == "shop"
    assert result.value == {"orders": 12.0}


def test_aggregate_metric_is_dispatched_to_aggregate_handler(settings):
    def rows_for(database, sql, params):
        assert params == {"database": "shop"}
        return [{"value": 40}]

    collector = StatsCollector(settings, executor=_executor(rows_for))
    result = collector.collect_aggregate_metric("inserts", "shop")

    assert result.definition.scope is MetricScope.AGGREGATE
    assert result.value == 40.0


def test_connections_without_database_returns_mapping(settings):
    def rows_for(database, sql, params):
        assert database == "postgres"
        return [{"datname": "shop", "count": 2}, {"datname": "template1", "count": 1}]

    collector = StatsCollector(settings, executor=_executor(rows_for))

    assert collector.collect_aggregate_metric("connections").value == {"shop": 2}
    assert collector.collect_aggregate_metric("connections", "shop").value == 2


def test_unknown_metric_raises_key_error(settings):
    collector = StatsCollector(settings, executor=_executor(lambda *args: []))
    with pytest.raises(KeyError):
        collector.collect_table_metric("connections", "shop")


def test_collect_table_metrics_covers_catalog_in_order(settings):
    collector = StatsCollector(settings, executor=_executor(lambda *args: []))

    results = collector.collect_table_metrics("shop")

    assert [r.definition.name for r in results] == collector.table_metric_names()
    assert all(r.value == {} for r in results)


def test_collect_aggregate_metrics_stops_at_first_failure(settings):
    def rows_for(database, sql, params):
        if "pg_locks" in sql:
            raise QueryError(database, "permission denied for pg_locks")
        return [{"value": 1}]

    collector = StatsCollector(settings, executor=_executor(rows_for))
    with pytest.raises(QueryError):
        collector.collect_aggregate_metrics("shop")


def test_catalog_accessors_delegate_to_registry(settings):
    collector = StatsCollector(settings, executor=_executor(lambda *args: []))
    assert len(collector.table_metric_names()) == 19
    assert len(collector.aggregate_metric_names()) == 9
    assert len(collector.floating_table_metric_names()) == 12
    assert len(collector.floating_aggregate_metric_names()) == 7


def test_list_databases_applies_settings_exclusions(settings):
    def rows_for(database, sql, params):
        return [{"Database": name, "Owner": "postgres"} for name in ("postgres", "shop", "template0", "template1")]

    collector = StatsCollector(settings, executor=_executor(rows_for))
    assert collector.list_databases() == ["postgres", "shop"]


def test_estimated_rows_for_single_table(settings):
    def rows_for(database, sql, params):
        if params and "table" in params:
            return [{"reltuples": 1000.0, "relpages": 10, "table_bytes": 81920, "page_size": 8192}]
        return [{"relname": "orders"}]

    collector = StatsCollector(settings, executor=_executor(rows_for))

    assert collector.estimated_rows("shop", "orders") == 1000
    with pytest.raises(KeyError):
        collector.estimated_rows("shop", "orders; DROP TABLE orders")


def test_list_locks_returns_rows(settings):
    locks = [{"pid": 10, "relname": "orders", "mode": "AccessShareLock"}]
    collector = StatsCollector(settings, executor=_executor(lambda *args: locks))
    assert collector.list_locks("shop") == locks


def test_context_manager_closes_connection(settings):
    executor = _executor(lambda *args: [])
    with StatsCollector(settings, executor=executor) as collector:
        collector.list_tables("shop")
    executor.connections.close.assert_called_once_with()
