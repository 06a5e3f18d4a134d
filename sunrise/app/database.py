"""Database configuration and session management for sun time storage."""

import collections.abc
import pathlib
from typing import Any

import sqlalchemy
import sqlalchemy.dialects.postgresql
import sqlalchemy.dialects.sqlite
import sqlmodel

import common.settings

from . import models  # noqa: F401

DATABASE_URL = common.settings.DATABASE_URL


def make_engine(url: str = DATABASE_URL) -> sqlalchemy.Engine:
    """Create an engine; SQLite connections may be shared across threadpool workers."""
    connect_args: dict[str, object] = {}
    if url.startswith('sqlite'):
        connect_args['check_same_thread'] = False
    return sqlmodel.create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine()


def create_db_and_tables() -> None:
    """Create database tables if they don't exist."""
    url = engine.url
    if url.get_backend_name() == 'sqlite' and url.database:
        pathlib.Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    sqlmodel.SQLModel.metadata.create_all(engine)


def get_session() -> collections.abc.Generator[sqlmodel.Session, None, None]:
    """Get a database session."""
    with sqlmodel.Session(engine) as session:
        yield session


def insert_if_absent(
    session: sqlmodel.Session,
    model: type[sqlmodel.SQLModel],
    values: dict[str, Any],
    conflict_columns: list[str] | None = None,
) -> bool:
    """Insert a row unless it would violate a unique constraint.

    Issues a single INSERT ... ON CONFLICT DO NOTHING so concurrent or
    retried writers never race between a read and a write. Commits the
    session.

    Returns:
        True if a row was written, False if a conflicting row already existed.
    """
    table = model.__table__  # type: ignore[attr-defined]
    dialect = session.get_bind().dialect.name
    if dialect == 'sqlite':
        statement = sqlalchemy.dialects.sqlite.insert(table)
    elif dialect == 'postgresql':
        statement = sqlalchemy.dialects.postgresql.insert(table)
    else:
        raise NotImplementedError(f'insert_if_absent does not support {dialect}')

    statement = statement.values(**values).on_conflict_do_nothing(
        index_elements=conflict_columns
    )
    result = session.exec(statement)  # type: ignore[call-overload]
    session.commit()
    return bool(result.rowcount)
