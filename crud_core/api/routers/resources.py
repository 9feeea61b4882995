"""
Router module assembling the CRUD endpoints of a resource
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import pydantic
from fastapi import APIRouter

from .. import handlers
from ... import schemas
from ...persistence import queries
from ...schemas import Method


logger = logging.getLogger(__name__)

COLLECTION_PATH: str = ""
INSTANCE_PATH: str = "/{resource_id}"

_ERRORS = {"model": schemas.APIError}


class CRUDOptions(pydantic.BaseModel):
    """
    Options of the CRUD endpoints of a resource

    Without any methods, all five operations will be enabled. Without schema
    fields, all fields of the schema except for the identity and audit fields
    may be written by create and update requests. The validation functions
    get the decoded request body and must return a true value to let the
    request pass.
    """

    methods: Union[Method, List[Method]] = schemas.ALL_METHODS
    schema_fields: Optional[List[str]] = None
    create_validation: Optional[Callable[[Dict[str, Any]], bool]] = None
    update_validation: Optional[Callable[[Dict[str, Any]], bool]] = None
    limiters: Optional[Dict[str, Any]] = None
    fields: Optional[List[str]] = None

    @pydantic.field_validator("methods", mode="after")
    @classmethod
    def enforce_method_list(cls, value: Union[Method, List[Method]]) -> List[Method]:
        if isinstance(value, Method):
            return [value]
        return value or schemas.ALL_METHODS

    @pydantic.field_validator("limiters")
    @classmethod
    def enforce_plain_limiters(cls, value: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        for name in value or {}:
            if name in queries.PAGINATION_FIELDS:
                raise ValueError(f"Limiter {name!r} collides with the pagination parameters")
        return value


def create_crud_router(
        name: str,
        schema: Mapping[str, str],
        options: Optional[CRUDOptions] = None,
        prefix: Optional[str] = None
) -> APIRouter:
    """
    Create a router with the enabled CRUD endpoints of a resource

    Example:

    .. code-block::

        schema = build_schema({"name": "TEXT", "weight": "INTEGER"})
        app.include_router(create_crud_router(
            "items",
            schema,
            CRUDOptions(methods=[Method.GET, Method.GET_ALL], schema_fields=["name"])
        ))

    :param name: name of the table of the resource
    :param schema: full schema of the table, see ``build_schema``
    :param options: optional set of enabled methods, writable fields and validations
    :param prefix: optional path prefix of the resource (default: ``/<name>``)
    :return: new router with the collection at ``""`` and instances at ``/{resource_id}``
    """

    options = options or CRUDOptions()
    router = APIRouter(prefix=prefix if prefix is not None else f"/{name}", tags=[name])
    methods = set(options.methods)

    if Method.GET_ALL in methods:
        router.add_api_route(
            COLLECTION_PATH,
            handlers.retrieve_all(name, options.limiters, options.fields),
            methods=["GET"],
            response_model=schemas.ListEnvelope,
            name=f"list_{name}"
        )

    if Method.GET in methods:
        router.add_api_route(
            INSTANCE_PATH,
            handlers.retrieve(name, options.fields),
            methods=["GET"],
            responses={304: {"description": "Not Modified"}, 404: _ERRORS},
            name=f"get_{name}"
        )

    if Method.POST in methods:
        router.add_api_route(
            COLLECTION_PATH,
            handlers.create(name, schema, options.schema_fields, options.create_validation),
            methods=["POST"],
            status_code=201,
            name=f"create_{name}"
        )

    if Method.PUT in methods:
        router.add_api_route(
            INSTANCE_PATH,
            handlers.update(name, schema, options.schema_fields, options.update_validation),
            methods=["PUT"],
            status_code=204,
            responses={412: _ERRORS},
            name=f"update_{name}"
        )

    if Method.DELETE in methods:
        router.add_api_route(
            INSTANCE_PATH,
            handlers.remove(name),
            methods=["DELETE"],
            responses={404: _ERRORS, 412: _ERRORS},
            name=f"delete_{name}"
        )

    logger.debug(f"Created router for {name!r} with methods {sorted(m.value for m in methods)}")
    return router
