"""
Relational schema provisioning.

Creates the student tracking tables and indexes in the configured Postgres
database. Safe to run any number of times: tables and indexes that already
exist are left alone.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from src.models.database import Base, open_engine
from src.services.errors import StoreError, driver_message

logger = logging.getLogger(__name__)

TABLE_NAMES = ["students", "payments", "tests", "conversations", "app_config"]


@dataclass
class SchemaResult:
    """Names of the tables and indexes guaranteed to exist after provisioning."""
    tables: list[str] = field(default_factory=list)
    indexes: list[str] = field(default_factory=list)


def schema_index_names() -> list[str]:
    """All index names declared on the schema, in table order."""
    names = []
    for table_name in TABLE_NAMES:
        table = Base.metadata.tables[table_name]
        names.extend(sorted(index.name for index in table.indexes))
    return names


def provision_schema(connection_string: str) -> SchemaResult:
    """
    Create tables and indexes if they do not exist.

    Args:
        connection_string: Postgres connection string (or any SQLAlchemy URL)

    Returns:
        SchemaResult listing the tables and indexes

    Raises:
        StoreError: if the database is unreachable or a statement fails
    """
    tables = [Base.metadata.tables[name] for name in TABLE_NAMES]

    try:
        with open_engine(connection_string) as engine:
            with engine.begin() as conn:
                Base.metadata.create_all(conn, tables=tables, checkfirst=True)
    except SQLAlchemyError as e:
        logger.error(f"Schema setup failed: {e}")
        raise StoreError("Failed to setup database schema", driver_message(e)) from e

    result = SchemaResult(tables=list(TABLE_NAMES), indexes=schema_index_names())
    logger.info(f"Schema ready: {len(result.tables)} tables, {len(result.indexes)} indexes")
    return result
