"""
Tabular store backed by a SQL database through SQLAlchemy.

Used for local development and self-hosted deployments that do not want a
spreadsheet service. Any spreadsheet id opens; tables are created on demand.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import create_engine, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from moments.errors import StoreAccessError

logger = logging.getLogger(__name__)

# Base class for SQLAlchemy models
Base = declarative_base()


def build_engine(database_url: str):
    """
    Create a SQLAlchemy engine for the given URL.

    SQLite needs check_same_thread=False because FastAPI runs sync routes in a
    threadpool; an in-memory SQLite URL also needs a single shared connection.
    """
    kwargs = {"echo": False}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


class SqlTable:
    """Rows of one sheet_tables entry."""

    def __init__(self, store: "SqlTabularStore", table_id: int, name: str):
        self._store = store
        self.table_id = table_id
        self.name = name

    def append_row(self, values: list[Any]) -> None:
        from moments.models import SheetRow

        logger.debug(f"Appending row to table {self.name}: {values}")
        try:
            with self._store.SessionLocal() as db:
                db.add(SheetRow(table_id=self.table_id, cells=json.dumps(list(values))))
                db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to append row to {self.name}: {e}")
            raise StoreAccessError(f"Failed to append row to {self.name}: {e}") from e

    def get_values(self) -> list[list[Any]]:
        from moments.models import SheetRow

        try:
            with self._store.SessionLocal() as db:
                rows = db.scalars(
                    select(SheetRow)
                    .where(SheetRow.table_id == self.table_id)
                    .order_by(SheetRow.id.asc())
                ).all()
                return [json.loads(row.cells) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Failed to read table {self.name}: {e}")
            raise StoreAccessError(f"Failed to read table {self.name}: {e}") from e


class SqlSpreadsheet:
    """Namespace of tables sharing a spreadsheet id."""

    def __init__(self, store: "SqlTabularStore", spreadsheet_id: str):
        self._store = store
        self.spreadsheet_id = spreadsheet_id

    def get_table(self, name: str) -> Optional[SqlTable]:
        from moments.models import SheetTable

        try:
            with self._store.SessionLocal() as db:
                table = db.scalars(
                    select(SheetTable).where(
                        SheetTable.spreadsheet_id == self.spreadsheet_id,
                        SheetTable.name == name,
                    )
                ).first()
        except SQLAlchemyError as e:
            raise StoreAccessError(f"Failed to look up table {name}: {e}") from e

        if table is None:
            return None
        return SqlTable(self._store, table.id, name)

    def create_table(self, name: str, header: list[str]) -> SqlTable:
        from moments.models import SheetRow, SheetTable

        created_at = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        try:
            with self._store.SessionLocal() as db:
                table = SheetTable(
                    spreadsheet_id=self.spreadsheet_id,
                    name=name,
                    created_at=created_at,
                )
                db.add(table)
                db.flush()
                table_id = table.id
                db.add(SheetRow(table_id=table_id, cells=json.dumps(list(header))))
                db.commit()
        except IntegrityError as e:
            raise StoreAccessError(f"A table named {name} already exists") from e
        except SQLAlchemyError as e:
            raise StoreAccessError(f"Failed to create table {name}: {e}") from e

        logger.info(f"Created table {name} in spreadsheet {self.spreadsheet_id}")
        return SqlTable(self._store, table_id, name)


class SqlTabularStore:
    """Tabular store over SQLAlchemy. Call init_db() once before use."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = build_engine(database_url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self) -> None:
        """Create the sheet_tables and sheet_rows tables."""
        logger.debug(f"Initializing database with URL: {self.database_url}")
        try:
            # Import models to register them with Base.metadata
            from moments import models  # noqa: F401

            Base.metadata.create_all(bind=self.engine)
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def open(self, store_id: str) -> SqlSpreadsheet:
        try:
            with self.SessionLocal() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Database not reachable: {e}")
            raise StoreAccessError(f"Database not reachable: {e}") from e
        return SqlSpreadsheet(self, store_id)
