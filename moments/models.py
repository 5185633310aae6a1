"""
SQLAlchemy ORM models backing the sql tabular store.

A spreadsheet is a namespace of named tables; each table keeps its rows in
append order. For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint

from moments.sql_store import Base


class SheetTable(Base):
    """
    A named table inside a spreadsheet.

    Table: sheet_tables
    Unique: (spreadsheet_id, name)
    """
    __tablename__ = "sheet_tables"
    __table_args__ = (UniqueConstraint("spreadsheet_id", "name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    spreadsheet_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(String, nullable=False)  # Server time ISO-8601


class SheetRow(Base):
    """
    One row of a table. Row order is the autoincrement id order.

    Table: sheet_rows
    """
    __tablename__ = "sheet_rows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    table_id = Column(Integer, ForeignKey("sheet_tables.id"), nullable=False, index=True)
    cells = Column(Text, nullable=False)  # JSON array of scalar cell values
