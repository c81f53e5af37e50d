# =======================================================================================
# adms_gateway/database.py - Database Management
# =======================================================================================
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Optional, Sequence

from sqlalchemy import Table, create_engine, make_url, text
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import QueuePool

from .config import config
from .models.tables import metadata
from .utils.exceptions import ConfigurationError

# Backends with a conflict-aware insert construct
SUPPORTED_DIALECTS = ("mysql", "postgresql", "sqlite")


def build_engine(url: Optional[str] = None) -> Engine:
    """Create the pooled engine for the configured store."""
    url = url or config.DB_URL
    backend = make_url(url).get_backend_name()
    if backend not in SUPPORTED_DIALECTS:
        raise ConfigurationError(f"Unsupported database backend: {backend}")

    options: Dict[str, Any] = {"pool_pre_ping": True, "future": True}
    if url.startswith("mysql"):
        options.update(
            poolclass=QueuePool,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            isolation_level="READ COMMITTED",
        )
    return create_engine(url, **options)


class DatabaseManager:
    """Manages database connections and transactions.

    One instance is built per application and handed to whoever needs the
    store; nothing in the package reaches for a module-level engine.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine: Engine = engine if engine is not None else build_engine()

    @contextmanager
    def get_connection(self):
        """Get a database connection with automatic commit/rollback."""
        with self.engine.begin() as conn:
            yield conn

    def create_tables(self) -> None:
        metadata.create_all(self.engine)

    def fetch_one(self, query: str, params: dict = None):
        """Fetch a single result."""
        with self.get_connection() as conn:
            result = conn.execute(text(query), params or {})
            return result.mappings().first()

    def dispose(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------------------
# Conditional writes
#
# The store is the only synchronization point between terminals, so every write
# that may race with another request goes through one of these two primitives.
# ---------------------------------------------------------------------------------------
def _dialect_insert(conn: Connection, table: Table):
    name = conn.dialect.name
    if name == "mysql":
        return mysql.insert(table)
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise ConfigurationError(f"Unsupported dialect for conditional writes: {name}")


def insert_if_absent(conn: Connection, table: Table, values: Dict[str, Any]) -> bool:
    """Insert a row unless a unique key already holds it. Returns True if inserted."""
    stmt = _dialect_insert(conn, table).values(**values)
    if conn.dialect.name == "mysql":
        stmt = stmt.prefix_with("IGNORE")
    else:
        stmt = stmt.on_conflict_do_nothing()
    return conn.execute(stmt).rowcount > 0


def insert_or_update(
    conn: Connection,
    table: Table,
    values: Dict[str, Any],
    keys: Sequence[str],
    update_columns: Iterable[str],
) -> None:
    """Atomic upsert: insert `values`, or overwrite `update_columns` on a key clash."""
    stmt = _dialect_insert(conn, table).values(**values)
    columns = list(update_columns)
    if conn.dialect.name == "mysql":
        stmt = stmt.on_duplicate_key_update(
            {col: stmt.inserted[col] for col in columns}
        )
    else:
        stmt = stmt.on_conflict_do_update(
            index_elements=list(keys),
            set_={col: stmt.excluded[col] for col in columns},
        )
    conn.execute(stmt)
