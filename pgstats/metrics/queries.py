"""SQL text for every statistic.

Table and database names are never interpolated: they are bound as the
``:database`` and ``:table`` parameters. Table-scoped statements return
``relname`` and ``value`` columns, database-scoped ones a single ``value``.
"""

VISIBLE_TABLES = """
    FROM pg_catalog.pg_class c
    LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE c.relkind IN ('r', '')
      AND n.nspname NOT IN ('pg_catalog', 'pg_toast', 'information_schema')
      AND pg_catalog.pg_table_is_visible(c.oid)
"""

LIST_DATABASES = """
    SELECT pg_database.datname AS "Database", pg_user.usename AS "Owner"
    FROM pg_database, pg_user
    WHERE pg_database.datdba = pg_user.usesysid
    UNION
    SELECT pg_database.datname AS "Database", NULL AS "Owner"
    FROM pg_database
    WHERE pg_database.datdba NOT IN (SELECT usesysid FROM pg_user)
    ORDER BY "Database"
"""

LIST_TABLES = "SELECT c.relname" + VISIBLE_TABLES

TABLE_SIZES = "SELECT c.relname, pg_relation_size(c.oid) AS value" + VISIBLE_TABLES

INDEX_SIZES = (
    "SELECT c.relname, pg_total_relation_size(c.oid) - pg_relation_size(c.oid) AS value"
    + VISIBLE_TABLES
)

TABLE_PLANNER_STATS = """
    SELECT c.reltuples AS reltuples,
           c.relpages AS relpages,
           pg_relation_size(c.oid) AS table_bytes,
           CAST(current_setting('block_size') AS integer) AS page_size
    FROM pg_catalog.pg_class c
    WHERE c.oid = CAST(quote_ident(:table) AS regclass)
"""

LAST_AUTOVACUUM = """
    SELECT c.relname,
           COALESCE(
               round(extract(epoch FROM now() - pg_stat_get_last_autovacuum_time(c.oid))),
               -1
           ) AS value
    FROM pg_catalog.pg_class c
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE c.relkind = 'r'
      AND n.nspname = 'public'
    ORDER BY c.relname
"""


def table_stat_function(function: str) -> str:
    """Per-table value from one of the ``pg_stat_get_*(oid)`` functions."""
    return f"SELECT c.relname, {function}(c.oid) AS value" + VISIBLE_TABLES


def user_table_stat_column(column: str) -> str:
    """Per-table value from a ``pg_stat_user_tables``/``pg_statio_user_tables`` column."""
    return f"""
    SELECT statio.relname AS relname, {column} AS value
    FROM pg_stat_user_tables stat
    RIGHT JOIN pg_statio_user_tables statio ON stat.relid = statio.relid
    WHERE pg_catalog.pg_table_is_visible(statio.relid)
"""


def database_stat_function(function: str) -> str:
    """Single value from one of the ``pg_stat_get_db_*(oid)`` functions."""
    return f"""
    SELECT {function}(oid) AS value
    FROM pg_database
    WHERE datname = :database
"""


TUPLES_RETURNED = table_stat_function("pg_stat_get_tuples_returned")
TUPLES_FETCHED = table_stat_function("pg_stat_get_tuples_fetched")
TUPLES_INSERTED = table_stat_function("pg_stat_get_tuples_inserted")
TUPLES_UPDATED = table_stat_function("pg_stat_get_tuples_updated")
TUPLES_HOT_UPDATED = table_stat_function("pg_stat_get_tuples_hot_updated")
TUPLES_DELETED = table_stat_function("pg_stat_get_tuples_deleted")
DEAD_TUPLES = table_stat_function("pg_stat_get_dead_tuples")

SEQ_SCAN = user_table_stat_column("stat.seq_scan")
SEQ_TUP_READ = user_table_stat_column("stat.seq_tup_read")
IDX_SCAN = user_table_stat_column("stat.idx_scan")
IDX_TUP_FETCH = user_table_stat_column("stat.idx_tup_fetch")
HEAP_BLKS_READ = user_table_stat_column("statio.heap_blks_read")
HEAP_BLKS_HIT = user_table_stat_column("statio.heap_blks_hit")
IDX_BLKS_READ = user_table_stat_column("statio.idx_blks_read")
IDX_BLKS_HIT = user_table_stat_column("statio.idx_blks_hit")

DB_BLOCKS_FETCHED = database_stat_function("pg_stat_get_db_blocks_fetched")
DB_BLOCKS_HIT = database_stat_function("pg_stat_get_db_blocks_hit")
DB_XACT_COMMIT = database_stat_function("pg_stat_get_db_xact_commit")
DB_XACT_ROLLBACK = database_stat_function("pg_stat_get_db_xact_rollback")
DB_TUPLES_INSERTED = database_stat_function("pg_stat_get_db_tuples_inserted")
DB_TUPLES_UPDATED = database_stat_function("pg_stat_get_db_tuples_updated")
DB_TUPLES_DELETED = database_stat_function("pg_stat_get_db_tuples_deleted")

CONNECTIONS_PER_DATABASE = """
    SELECT datname, count(*) AS count
    FROM pg_stat_activity
    GROUP BY datname
"""

LOCKS = """
    SELECT l.pid, l.virtualxid, d.datname, c.relname, l.locktype, l.mode
    FROM pg_locks l
    LEFT JOIN pg_database d ON d.oid = l.database
    LEFT JOIN pg_class c ON c.oid = l.relation
    WHERE d.datname = :database AND NOT c.relname ~ 'pg_'
"""
