import logging
import os
import sqlite3
from contextlib import contextmanager

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_PATH = os.environ.get(
    "TABLETENT_DB_PATH", os.path.join(BASE_DIR, "generated_codes.db")
)

# seconds a writer waits on another writer's lock before giving up
BUSY_TIMEOUT = 30.0

# all codes between 000000 and 999999, both inclusive
NUM_POSSIBLE_CODES = 1000000


def get_connection():
    try:
        conn = sqlite3.connect(DB_PATH, timeout=BUSY_TIMEOUT)
    except sqlite3.Error as e:
        logger.error(f"Could not open database at {DB_PATH}: {e}")
        raise StoreUnavailable(str(e)) from e
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def db_cursor():
    conn = get_connection()
    try:
        cur = conn.cursor()
        yield cur
        conn.commit()
    except sqlite3.OperationalError as e:
        conn.rollback()
        logger.error(f"Database operation failed: {e}")
        raise StoreUnavailable(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def immediate_transaction():
    """
    Yield a cursor inside a ``BEGIN IMMEDIATE`` transaction.

    SQLite takes the database write lock at BEGIN, so every read done
    through the cursor is already protected against other writers until
    the transaction commits. Used for read-and-claim operations.
    """
    conn = get_connection()
    conn.isolation_level = None
    try:
        cur = conn.cursor()
        cur.execute("BEGIN IMMEDIATE")
        try:
            yield cur
        except BaseException:
            cur.execute("ROLLBACK")
            raise
        cur.execute("COMMIT")
    except sqlite3.OperationalError as e:
        logger.error(f"Database transaction failed: {e}")
        raise StoreUnavailable(str(e)) from e
    finally:
        conn.close()


def init_db():
    with db_cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS unique_codes (
                code TEXT PRIMARY KEY,
                generated_date TEXT NOT NULL DEFAULT ''
            )
            """
        )


def delete_db():
    if os.path.exists(DB_PATH):
        os.remove(DB_PATH)
        logger.info(f"Deleted database {DB_PATH}")


def is_db_initialized() -> bool:
    """
    True when the database file exists, has the unique_codes table and
    holds every possible code.
    """
    if not os.path.exists(DB_PATH):
        return False

    with db_cursor() as cur:
        cur.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            ("unique_codes",),
        )
        if cur.fetchone() is None:
            return False

        cur.execute("SELECT COUNT(code) AS num_codes FROM unique_codes")
        row = cur.fetchone()
    return row["num_codes"] == NUM_POSSIBLE_CODES
