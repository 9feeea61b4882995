"""
SQL query builder working on column names and column maps

All functions in this module are pure and only assemble strings. Table and
column names are trusted input and will be interpolated into the statements
as they are, while every value is referenced by a named placeholder in the
``:name`` syntax understood by ``sqlalchemy.text``. Values originating from
a request must therefore never be passed as table or column names.
"""

from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union


Fields = Union[str, Sequence[str]]
Bindings = Union[Mapping[str, object], Sequence[str]]

PAGINATION_FIELDS: Tuple[str, str] = ("limit", "offset")
"""names of the placeholders appended by ``build_page``, unusable as column bindings"""


def build_select(fields: Optional[Fields] = None) -> str:
    """
    Build the ``select`` part of a query for a field list or a field string

    :param fields: optional list of column names or a raw string (default: ``*``)
    :return: the select statement fragment, e.g. ``select id, name``
    """

    if fields is None:
        fields = "*"
    if not isinstance(fields, str):
        fields = ", ".join(fields)
    return f"select {fields}"


def build_bindings(fields: Bindings, joiner: Optional[str] = None) -> str:
    """
    Build a list of ``column = :column`` fragments

    The joiner is put between the fragments (followed by a space). Without
    an explicit joiner, sequences of column names are joined without any
    keyword while the keys of a mapping are joined with ``and``, which makes
    mappings usable as conjunctive predicates for ``where`` clauses.

    :param fields: sequence of column names or mapping with column names as keys
    :param joiner: optional custom joiner, e.g. ``" or"`` or ``","``
    :return: the joined binding fragments
    """

    is_mapping = isinstance(fields, Mapping)
    if joiner is None:
        joiner = " and" if is_mapping else ""
    names = list(fields.keys() if is_mapping else fields)
    return f"{joiner} ".join(f"{name} = :{name}" for name in names)


def build_where_clause(bindings: Optional[Bindings] = None) -> str:
    if not bindings:
        return ""
    return f" where {build_bindings(bindings)}"


def build_find_by(bindings: Optional[Bindings], table: str, fields: Optional[Fields] = None) -> str:
    return f"{build_select(fields)} from {table}{build_where_clause(bindings)}"


def build_find_by_id(table: str, fields: Optional[Fields] = None) -> str:
    return build_find_by({"id": None}, table, fields)


def build_count(table: str, bindings: Optional[Bindings] = None) -> str:
    return f"select count(*) as count from {table}{build_where_clause(bindings)}"


def build_page(query: str) -> str:
    """
    Append the ``limit`` and ``offset`` placeholders to a select query
    """

    return f"{query} limit :limit offset :offset"


def build_insert(table: str, values: Iterable[str]) -> str:
    """
    Build an insert query for the given columns which returns the new identity

    :param table: name of the target table
    :param values: column names (or mapping with column names as keys) to be inserted
    :return: insert statement with ``returning id`` appended
    """

    names = list(values)
    placeholders = ", ".join(f":{name}" for name in names)
    return f"insert into {table}({', '.join(names)}) values ({placeholders}) returning id"


def build_update_by(values: Iterable[str], table: str, bindings: Optional[Bindings]) -> str:
    return f"update {table} set {build_bindings(list(values), ',')}{build_where_clause(bindings)}"


def build_update_by_id(values: Iterable[str], table: str) -> str:
    return build_update_by(values, table, {"id": None})


def build_delete_by(table: str, bindings: Optional[Bindings] = None) -> str:
    return f"delete from {table}{build_where_clause(bindings)}"


def build_delete_by_id(table: str) -> str:
    return build_delete_by(table, {"id": None})


def build_fields(schema: Mapping[str, str]) -> str:
    """
    Build the column definitions of a table from its schema, e.g. ``id SERIAL, name TEXT``
    """

    return ", ".join(f"{name} {kind}" for name, kind in schema.items())


def build_create_table(
        name: str,
        schema: Mapping[str, str],
        constraints: Optional[Union[str, Sequence[str]]] = None
) -> str:
    """
    Build a non-destructive ``create table`` statement from a schema

    The primary key constraint on the ``id`` column will always be added.
    Additional table constraints are put behind it in the given order.

    :param name: name of the new table
    :param schema: mapping of column names to their SQL type descriptors
    :param constraints: optional constraint or list of constraints
    :return: the full ``create table if not exists`` statement
    """

    parts = [f"constraint pk_{name}_id primary key(id)"]
    if isinstance(constraints, str):
        parts.append(constraints)
    elif constraints:
        parts.extend(constraints)
    return f"create table if not exists {name} ({build_fields(schema)}, {', '.join(parts)})"
