"""
Instrucciones de reparación que acompañan a cada StoreErrorKind.

Las instrucciones se generan a partir de los metadatos de SQLAlchemy para
que siempre coincidan con models.py.
"""

from typing import Optional

from sqlalchemy.schema import CreateTable

from .database import Base, engine
from .errors import StoreErrorKind


def _dialect():
    return engine.dialect


def create_table_sql(table_name: Optional[str] = None) -> str:
    from . import models  # noqa: F401

    tables = Base.metadata.sorted_tables
    if table_name and table_name in Base.metadata.tables:
        tables = [Base.metadata.tables[table_name]]
    statements = [str(CreateTable(t, if_not_exists=True).compile(dialect=_dialect())).strip() + ";" for t in tables]
    return "\n\n".join(statements)


def add_column_sql(column_name: Optional[str] = None, table_name: Optional[str] = None) -> str:
    from . import models  # noqa: F401

    statements = []
    for table in Base.metadata.sorted_tables:
        if table_name and table.name != table_name:
            continue
        for column in table.columns:
            if column_name and column.name != column_name:
                continue
            if column.primary_key:
                continue
            if column_name is None and not column.nullable:
                continue
            col_type = column.type.compile(dialect=_dialect())
            statements.append(f"ALTER TABLE {table.name} ADD COLUMN {column.name} {col_type};")
    return "\n".join(statements)


PERMISSIONS_SQL = """\
GRANT SELECT, INSERT, UPDATE, DELETE ON ALL TABLES IN SCHEMA public TO CURRENT_USER;
-- si las tablas tienen row-level security activada:
-- CREATE POLICY "Public Access" ON <table> FOR ALL USING (true) WITH CHECK (true);"""


def remediation_for(kind: StoreErrorKind, table: Optional[str] = None, column: Optional[str] = None) -> Optional[str]:
    if kind == StoreErrorKind.MISSING_TABLE:
        return "Database tables not found. Run the setup SQL:\n\n" + create_table_sql(table)
    if kind == StoreErrorKind.MISSING_COLUMN:
        return "The database schema is out of date. Run the upgrade SQL:\n\n" + add_column_sql(column, table)
    if kind == StoreErrorKind.PERMISSION_DENIED:
        return "The database refused the operation. Grant table access:\n\n" + PERMISSIONS_SQL
    return None
