import time
from contextlib import contextmanager
from typing import Generator

import psycopg2
from dotenv import load_dotenv
from psycopg2 import OperationalError
from psycopg2.extras import RealDictCursor

from schoolcrm.config import settings
from schoolcrm.utils.logger import get_logger

load_dotenv(encoding="utf-8")

logger = get_logger(__name__)


def _get_retry_settings() -> tuple[int, float]:
    """Allow deployments to tune how aggressively we wait for Postgres."""
    return (max(1, settings.db_conn_retries), max(0.0, settings.db_conn_retry_delay))


def get_connection() -> psycopg2.extensions.connection:
    max_retries, retry_delay = _get_retry_settings()
    last_error: OperationalError | None = None
    conn: psycopg2.extensions.connection | None = None
    for attempt in range(1, max_retries + 1):
        try:
            conn = psycopg2.connect(
                host=settings.db_host,
                port=settings.db_port,
                dbname=settings.db_name,
                user=settings.db_user,
                password=settings.db_password,
                options="-c client_encoding=UTF8",
            )
            break
        except OperationalError as exc:
            last_error = exc
            if attempt == max_retries:
                raise
            logger.warning(
                "Postgres not reachable (attempt %d/%d): %s", attempt, max_retries, exc
            )
            time.sleep(retry_delay)
    if conn is None:
        raise last_error or RuntimeError("Failed to connect to the database.")
    return conn


@contextmanager
def get_cursor(cursor_factory=RealDictCursor) -> Generator[tuple[psycopg2.extensions.connection, psycopg2.extensions.cursor], None, None]:
    conn = get_connection()
    cur = conn.cursor(cursor_factory=cursor_factory)
    try:
        yield conn, cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def ping() -> bool:
    try:
        with get_cursor() as (_, cur):
            cur.execute("SELECT 1 AS ok")
            return cur.fetchone()["ok"] == 1
    except psycopg2.Error:
        logger.exception("Database health check failed")
        return False


def db_error_message(exc: Exception) -> str:
    """Message of a driver error as reported by the server."""
    pgerror = getattr(exc, "pgerror", None)
    if pgerror:
        return pgerror.strip()
    return str(exc).strip() or exc.__class__.__name__
