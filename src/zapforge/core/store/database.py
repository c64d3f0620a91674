# src/zapforge/core/store/database.py
"""Connection management for the metadata store.

The store is a single SQLite file. MetadataStore wraps the SQLAlchemy engine;
it does not create tables itself - the schema script loaded by
load_schema() owns the DDL.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Self

from sqlalchemy import Connection, create_engine, event, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from zapforge.contracts.errors import SchemaLoadError, StoreOpenError
from zapforge.core.store.schema import SCHEMA_VERSION_KEY, metadata, schema_info_table


class MetadataStore:
    """Metadata store connection manager."""

    def __init__(self, path: Path) -> None:
        """Open or create the store file.

        Args:
            path: SQLite file location. Parent directories are created.

        Raises:
            StoreOpenError: If the directory cannot be created or the file
                cannot be opened as a SQLite database.
        """
        self.path = path
        self._engine: Engine | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreOpenError(str(path), str(e)) from e
        self._setup_engine(f"sqlite:///{path}")

    def _setup_engine(self, url: str) -> None:
        # Cross-thread use lets the HTTP server read the store from worker threads
        engine = create_engine(url, echo=False, connect_args={"check_same_thread": False})
        MetadataStore._configure_sqlite(engine)
        # create_engine is lazy; connect now so a bad path fails at open time
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA schema_version")
        except SQLAlchemyError as e:
            engine.dispose()
            raise StoreOpenError(str(self.path), str(getattr(e, "orig", None) or e)) from e
        self._engine = engine

    @staticmethod
    def _configure_sqlite(engine: Engine) -> None:
        """Register a connect hook enabling foreign keys and a busy timeout."""

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection: object, connection_record: object) -> None:
            cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]  # DBAPI connection typed as object
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        if self._engine is None:
            raise RuntimeError("Metadata store is closed")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def close(self) -> None:
        """Dispose of the engine. Safe to call more than once."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"MetadataStore({str(self.path)!r}, {state})"

    @classmethod
    def in_memory(cls) -> Self:
        """Create an in-memory store for testing. No tables are created."""
        from sqlalchemy.pool import StaticPool

        instance = cls.__new__(cls)
        instance.path = Path(":memory:")
        # StaticPool keeps the single in-memory connection alive across checkouts
        engine = create_engine(
            "sqlite://",
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        cls._configure_sqlite(engine)
        instance._engine = engine
        return instance

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Get a connection inside a transaction.

        Commits on successful block exit and rolls back on exception.
        """
        with self.engine.begin() as conn:
            yield conn

    def execute_script(self, script: str) -> None:
        """Run a multi-statement SQL script in one go.

        Raises:
            sqlite3.Error: If any statement fails.
        """
        raw = self.engine.raw_connection()
        try:
            raw.driver_connection.executescript(script)  # type: ignore[union-attr]  # pysqlite connection
            raw.commit()
        finally:
            raw.close()

    def recorded_schema_version(self) -> str | None:
        """Schema version recorded in the store, or None for a fresh store."""
        if not inspect(self.engine).has_table(schema_info_table.name):
            return None
        with self.connection() as conn:
            row = conn.execute(select(schema_info_table.c.value).where(schema_info_table.c.key == SCHEMA_VERSION_KEY)).first()
        return None if row is None else str(row.value)

    def record_schema_version(self, version: str) -> None:
        with self.connection() as conn:
            conn.execute(schema_info_table.delete().where(schema_info_table.c.key == SCHEMA_VERSION_KEY))
            conn.execute(schema_info_table.insert().values(key=SCHEMA_VERSION_KEY, value=version))

    def validate_tables(self) -> None:
        """Check every table and column the code queries exists in the store.

        Raises:
            SchemaLoadError: Listing missing tables and columns.
        """
        inspector = inspect(self.engine)
        existing_tables = set(inspector.get_table_names())

        missing_tables = sorted(set(metadata.tables) - existing_tables)
        missing_columns: list[str] = []
        for table_name, table in sorted(metadata.tables.items()):
            if table_name not in existing_tables:
                continue
            present = {c["name"] for c in inspector.get_columns(table_name)}
            missing_columns.extend(f"{table_name}.{column.name}" for column in table.columns if column.name not in present)

        if missing_tables or missing_columns:
            error_parts = []
            if missing_tables:
                error_parts.append(f"Missing tables: {', '.join(missing_tables)}")
            if missing_columns:
                error_parts.append(f"Missing columns: {', '.join(missing_columns)}")
            raise SchemaLoadError("Schema file does not define the metadata store layout.\n\n" + "\n".join(error_parts) + f"\n\nStore: {self.path}")
