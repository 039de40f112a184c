import logging
import threading

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from claimflow.config import get_config


logger = logging.getLogger('claimflow.database')

_connection_pool = None
_pool_lock = threading.Lock()


def _get_pool():
    """Get or create the connection pool (lazy initialization, thread-safe)."""
    global _connection_pool
    if _connection_pool is None:
        with _pool_lock:
            if _connection_pool is None:
                config = get_config()
                if not config.DATABASE_URL:
                    raise ValueError(
                        "DATABASE_URL environment variable is required. "
                        "Set it to your PostgreSQL connection string."
                    )
                _connection_pool = pool.ThreadedConnectionPool(
                    minconn=config.DB_POOL_MIN_CONN,
                    maxconn=config.DB_POOL_MAX_CONN,
                    dsn=config.DATABASE_URL,
                    keepalives=1,
                    keepalives_idle=30,
                    keepalives_interval=10,
                    keepalives_count=5,
                    connect_timeout=5,
                )
                logger.info(
                    f'Connection pool created: min={config.DB_POOL_MIN_CONN}, '
                    f'max={config.DB_POOL_MAX_CONN}'
                )
    return _connection_pool


def _getconn():
    """Take a connection from the pool.

    ThreadedConnectionPool.getconn() raises PoolError instead of waiting when
    every connection is checked out; surface that as an OperationalError.
    """
    try:
        return _get_pool().getconn()
    except pool.PoolError as e:
        logger.error(f'Connection pool exhausted (max={get_config().DB_POOL_MAX_CONN}): {e}')
        raise psycopg2.OperationalError(f'Connection pool exhausted: {e}') from e


def get_db():
    """Get PostgreSQL database connection from pool.

    Validates connection health before returning. Stale connections are
    discarded; retries up to 3 times.
    """
    max_retries = 3
    last_error = None

    for attempt in range(max_retries):
        conn = _getconn()

        try:
            with conn.cursor() as cur:
                cur.execute('SELECT 1')
            conn.rollback()
            return conn
        except (psycopg2.OperationalError, psycopg2.InterfaceError, psycopg2.DatabaseError) as e:
            last_error = e
            logger.warning(f'Stale connection discarded (attempt {attempt + 1}/{max_retries}): {e}')
            _get_pool().putconn(conn, close=True)

    raise psycopg2.OperationalError(f"Failed to get valid connection after {max_retries} attempts: {last_error}")


def release_db(conn):
    """Return connection to pool. Closed connections are discarded."""
    if conn and _connection_pool:
        if conn.closed:
            _connection_pool.putconn(conn, close=True)
            return
        _connection_pool.putconn(conn)


def get_cursor(conn):
    """Get cursor with dict row factory."""
    return conn.cursor(cursor_factory=RealDictCursor)


def dict_from_row(row):
    """Convert a database row to a dictionary with ISO-formatted dates."""
    if row is None:
        return None
    result = dict(row)
    for key, value in result.items():
        if hasattr(value, 'isoformat'):
            result[key] = value.isoformat()
    return result
