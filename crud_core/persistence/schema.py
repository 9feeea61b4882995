"""
Schema helper adding the identity and audit columns to resource schemas
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Union

from . import queries
from .database import Database
from ..misc.logger import enforce_logger


IDENTITY_FIELD: str = "id"
CREATED_FIELD: str = "created_dt"
UPDATED_FIELD: str = "updated_dt"

META_FIELDS: List[str] = [CREATED_FIELD, UPDATED_FIELD]
"""list of audit fields that appear on every table"""

SCHEMA_OMITTED_FIELDS: List[str] = META_FIELDS + [IDENTITY_FIELD]
"""list of fields that are never written by create or update requests"""

DEFAULT_DIALECT: str = "postgresql"

DIALECT_TYPES: Dict[str, Dict[str, str]] = {
    "postgresql": {
        IDENTITY_FIELD: "SERIAL",
        CREATED_FIELD: "TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP",
        UPDATED_FIELD: "TIMESTAMP"
    },
    "sqlite": {
        IDENTITY_FIELD: "INTEGER",
        CREATED_FIELD: "TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        UPDATED_FIELD: "TIMESTAMP"
    }
}
"""column types of the identity and audit fields per SQL dialect"""


def build_schema(columns: Mapping[str, str], dialect: str = DEFAULT_DIALECT) -> Dict[str, str]:
    """
    Merge the domain columns of a resource with the identity and audit columns

    Unknown dialects get the column types of PostgreSQL.

    :param columns: mapping of domain column names to their SQL type descriptors
    :param dialect: name of the SQL dialect used for the identity and audit column types
    :return: full schema with ``id`` first and both audit columns last
    """

    types = DIALECT_TYPES.get(dialect, DIALECT_TYPES[DEFAULT_DIALECT])
    return {
        IDENTITY_FIELD: types[IDENTITY_FIELD],
        **columns,
        CREATED_FIELD: types[CREATED_FIELD],
        UPDATED_FIELD: types[UPDATED_FIELD]
    }


def get_filtered_fields(schema: Mapping[str, str], schema_fields: Optional[Sequence[str]] = None) -> List[str]:
    """
    Return the list of fields that may be written by create and update requests

    :param schema: the full schema of the resource
    :param schema_fields: optional explicit list of writable fields
    :return: the explicit list of fields, if given and not empty, otherwise
        all fields of the schema except the identity and audit fields
    """

    if schema_fields:
        return list(schema_fields)
    return [field for field in schema if field not in SCHEMA_OMITTED_FIELDS]


def create_table(
        database: Database,
        name: str,
        schema: Mapping[str, str],
        constraints: Optional[Union[str, Sequence[str]]] = None,
        logger: Optional[logging.Logger] = None
) -> str:
    """
    Create the table for a resource if it doesn't exist yet

    Existing tables are never dropped or altered, so a changed schema
    of an existing table requires a manual migration of the database.

    :param database: database wrapper to execute the statement with
    :param name: name of the table
    :param schema: full schema of the table, see ``build_schema``
    :param constraints: optional additional table constraints
    :param logger: optional logger for the executed statement
    :return: the executed statement
    """

    query = queries.build_create_table(name, schema, constraints)
    enforce_logger(logger).debug(f"Ensuring table {name!r} exists: {query}")
    database.none(query)
    return query
