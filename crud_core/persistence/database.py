"""
Database bindings using sqlalchemy

The CRUD handlers talk to the database exclusively through the ``Database``
wrapper defined here, which executes the textual, parameterized queries of
the query builder and returns plain dictionaries in one of the result shapes
used by the handlers (zero-or-one row, exactly one row, many rows or the
number of affected rows). Every call runs in its own transaction.
"""

import logging
import contextlib
from typing import Any, Dict, Iterator, List, Mapping, Optional

import sqlalchemy
import sqlalchemy.exc
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine as _Engine


DEFAULT_DATABASE_URL: str = "sqlite://"
PRINT_SQLITE_WARNING: bool = True

Row = Dict[str, Any]
Params = Optional[Mapping[str, Any]]

_logger: logging.Logger = logging.getLogger(__name__)


def make_engine(database_url: str, echo: bool = False) -> _Engine:
    """
    Create a new sqlalchemy engine for the given database URL

    :param database_url: the full URL to connect to the database
    :param echo: whether all SQLAlchemy magic should print to screen
    :return: new engine instance
    """

    if database_url.startswith("sqlite:"):
        if ":memory:" in database_url or database_url == "sqlite://":
            _logger.warning(
                "Using the in-memory sqlite3 may lead to later problems. "
                "It's therefore recommended to create a persistent file."
            )
        if PRINT_SQLITE_WARNING:
            _logger.warning(
                "Using a sqlite database is supported for development and testing environments "
                "only. You should use a production-grade database server for deployment."
            )
        return create_engine(database_url, echo=echo, connect_args={"check_same_thread": False})

    return create_engine(database_url, echo=echo)


class Database:
    """
    Thin wrapper around an engine executing parameterized textual queries
    """

    def __init__(self, engine: _Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> "Database":
        return cls(make_engine(database_url, echo))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextlib.contextmanager
    def _execute(self, query: str, params: Params = None) -> Iterator[sqlalchemy.CursorResult]:
        try:
            with self.engine.begin() as connection:
                yield connection.execute(sqlalchemy.text(query), dict(params or {}))
        except sqlalchemy.exc.DBAPIError as exc:
            details = (exc.statement or "").replace("\n", "")
            _logger.error(f"{type(exc).__name__}: {exc.orig!s} @ {details!r}")
            raise
        except sqlalchemy.exc.SQLAlchemyError as exc:
            _logger.error(f"{type(exc).__name__}: {exc!s} @ {query!r}")
            raise

    def none(self, query: str, params: Params = None) -> None:
        with self._execute(query, params):
            pass

    def one_or_none(self, query: str, params: Params = None) -> Optional[Row]:
        with self._execute(query, params) as result:
            row = result.mappings().one_or_none()
        return dict(row) if row is not None else None

    def one(self, query: str, params: Params = None) -> Row:
        """
        Return exactly one row or raise ``NoResultFound`` or ``MultipleResultsFound``
        """

        with self._execute(query, params) as result:
            return dict(result.mappings().one())

    def many(self, query: str, params: Params = None) -> List[Row]:
        with self._execute(query, params) as result:
            return [dict(row) for row in result.mappings().all()]

    def result(self, query: str, params: Params = None) -> int:
        """
        Execute a modifying query and return the number of affected rows
        """

        with self._execute(query, params) as result:
            return result.rowcount

    def dispose(self):
        self.engine.dispose()
