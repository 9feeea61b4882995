"""
Generic request handlers implementing the CRUD operations of a resource

Every function without a ``check_`` prefix in this module is a factory
which creates a path operation for a table. The path operations process a
request as a linear chain of guards (the ``check_`` functions), where every
guard either passes or raises an ``APIException`` which will be converted
into the final response by the exception handlers. The guards run before
any database access. Modifications of a resource are protected by entity
tags, which must be sent in the ``If-Match`` header (see RFC 9110).
"""

import re
import datetime
import email.utils
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

try:
    import ujson as json
except ImportError:
    import json

import pydantic
from fastapi import Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from . import etag
from .base import CONTENT_TYPE, BadRequest, InternalServerException, NotFound, NotModified, PreconditionFailed
from .dependency import RequestData
from .. import schemas
from ..persistence import queries
from ..persistence.schema import CREATED_FIELD, IDENTITY_FIELD, UPDATED_FIELD, get_filtered_fields


logger = logging.getLogger(__name__)

Validation = Callable[[Dict[str, Any]], bool]

_ID_PATTERN = re.compile(r"[0-9]+")


def check_params(resource_id: Optional[str]) -> int:
    """
    Check the identifier of the addressed resource and return it as integer

    :raises BadRequest: when the identifier is missing or no positive integer
    """

    if resource_id is None or not _ID_PATTERN.fullmatch(str(resource_id)) or int(resource_id) < 1:
        raise BadRequest("Invalid resource identifier.", f"id={resource_id!r}")
    return int(resource_id)


def check_content_type(headers: Mapping[str, str]):
    """
    Check that the request has no content type at all or the only allowed content type

    :raises BadRequest: when any other content type has been set
    """

    content_type = headers.get("content-type")
    if content_type is not None and content_type != CONTENT_TYPE:
        raise BadRequest(f"Only {CONTENT_TYPE!r} is supported as content type.", f"content-type={content_type!r}")


def check_body(raw: bytes) -> Dict[str, Any]:
    """
    Decode the raw request body, which must be a non-empty JSON object

    :raises BadRequest: when the body is empty, invalid JSON or no (or an empty) object
    """

    if not raw:
        raise BadRequest("The request body must not be empty.")
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise BadRequest("The request body is no valid JSON.", str(exc)) from exc
    if not isinstance(body, dict) or not body:
        raise BadRequest("The request body must be a non-empty JSON object.", f"type={type(body).__name__}")
    return body


def check_validation(body: Dict[str, Any], validation: Optional[Validation] = None):
    """
    Run the optional custom validation function on the request body

    :raises BadRequest: when the validation function returned a false value
    """

    if validation is not None and not validation(body):
        raise BadRequest("The request body didn't pass the validation.")


def check_not_modified(headers: Mapping[str, str], tag: Optional[str], route: str):
    """
    Check whether the user agent already has the current version of the resource

    :raises NotModified: when the ``If-None-Match`` header matches the cached tag
    """

    if etag.matches(headers.get("if-none-match"), tag, weak=True):
        raise NotModified(route, tag)


def check_precondition(headers: Mapping[str, str], tag: Optional[str], route: str):
    """
    Check that the user agent modifies the current version of the resource

    Without a cached tag, no precondition can ever match.

    :raises PreconditionFailed: when the ``If-Match`` header doesn't match the cached tag
    """

    if not etag.matches(headers.get("if-match"), tag):
        raise PreconditionFailed(route, f"If-Match: {headers.get('if-match')!r}")


def check_body_id(body: Dict[str, Any], resource_id: int):
    """
    Check that an identifier in the request body equals the identifier of the path

    :raises BadRequest: when both identifiers differ
    """

    body_id = body.get(IDENTITY_FIELD)
    if body_id is None:
        return
    if isinstance(body_id, (int, float)) and not isinstance(body_id, bool):
        same = body_id == resource_id
    else:
        same = str(body_id) == str(resource_id)
    if not same:
        raise BadRequest("The identifier of the body doesn't match the path.", f"id={body_id!r}")


def pick(body: Mapping[str, Any], fields: Sequence[str]) -> Dict[str, Any]:
    return {field: body[field] for field in fields if field in body}


def format_http_date(value: Any) -> Optional[str]:
    """
    Format a timestamp of the database as HTTP date, naive timestamps are treated as UTC
    """

    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return email.utils.format_datetime(value.astimezone(datetime.timezone.utc), usegmt=True)
    return str(value)


def _utc_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None).isoformat(sep=" ")


def _instance_route(local: RequestData, resource_id: int) -> str:
    return f"{local.route.rsplit('/', 1)[0]}/{resource_id}"


def retrieve_all(
        name: str,
        limiters: Optional[Mapping[str, Any]] = None,
        fields: Optional[List[str]] = None
):
    """
    Create a handler retrieving a page of all rows of a table

    The total number of rows is taken from the tag cache, if known.
    Lists restricted by limiters always count their rows.

    :param name: name of the table
    :param limiters: optional mapping of column names to values that the
        rows must be equal to (joined as conjunction in the where clause)
    :param fields: optional list of columns to select (default: all)
    :return: path operation for ``GET`` requests on the collection
    :raises ValueError: when a limiter is named like a pagination parameter
    """

    reserved = set(limiters or {}).intersection(queries.PAGINATION_FIELDS)
    if reserved:
        raise ValueError(f"Limiters must not use the pagination parameters {sorted(reserved)}")

    find_all_query = queries.build_page(queries.build_find_by(limiters, name, fields))
    count_query = queries.build_count(name, limiters)

    async def get_all(
            limit: Optional[pydantic.NonNegativeInt] = None,
            offset: Optional[pydantic.NonNegativeInt] = None,
            local: RequestData = Depends(RequestData)
    ):
        """
        Return a page of entities together with the pagination metadata.

        A 400 error will be returned if the limit exceeds the configured maximum.
        """

        limit = limit or local.config.general.default_limit
        offset = offset or 0
        if limit > local.config.general.max_limit:
            raise BadRequest(f"The max limit is {local.config.general.max_limit}.", f"limit={limit}")

        params = dict(limiters or {})
        results = await local.query(local.database.many, find_all_query, {**params, "limit": limit, "offset": offset})

        total = 0 if limiters else local.tags.get_count(name)
        if not total:
            total = int((await local.query(local.database.one, count_query, params))["count"])
            if not limiters:
                local.tags.set_count(name, total)

        def make_link(o: int) -> str:
            return f"{local.base_url}{local.route}?offset={o}&limit={limit}"

        return schemas.ListEnvelope(
            data=results,
            meta=schemas.ListMeta(
                total=total,
                offset=offset,
                limit=limit,
                next=make_link(offset + limit) if offset + limit < total else None,
                previous=make_link(max(0, offset - limit)) if offset > 0 else None
            )
        )

    return get_all


def retrieve(name: str, fields: Optional[List[str]] = None):
    """
    Create a handler retrieving a single row of a table by its identifier

    The handler supports conditional requests: if the request provided an
    ``If-None-Match`` header matching the cached tag, the empty ``304``
    response will be sent without touching the database.

    :param name: name of the table
    :param fields: optional list of columns to select (default: all)
    :return: path operation for ``GET`` requests on a single resource
    """

    find_query = queries.build_find_by_id(name, fields)

    async def get_one(resource_id: str, local: RequestData = Depends(RequestData)):
        """
        Return a single entity with its entity tag.

        A 304 response will be returned if `If-None-Match` matches the current tag.
        A 404 error will be returned if the identifier is unknown.
        """

        entity_id = check_params(resource_id)
        check_content_type(local.headers)
        route = _instance_route(local, entity_id)

        async with local.tags.lock(route):
            tag = local.tags.get_tag(route)
            check_not_modified(local.headers, tag, route)
            entity = await local.query(local.database.one_or_none, find_query, {"id": entity_id})
            if entity is None:
                raise NotFound(route)
            if tag is None:
                tag = local.tags.record_tag(route, entity)

        headers = {"Content-Type": CONTENT_TYPE, "ETag": tag}
        modified = format_http_date(entity.get(UPDATED_FIELD) or entity.get(CREATED_FIELD))
        if modified is not None:
            headers["Last-Modified"] = modified
        return JSONResponse(jsonable_encoder(entity), headers=headers)

    return get_one


def create(
        name: str,
        schema: Mapping[str, str],
        schema_fields: Optional[Sequence[str]] = None,
        validation: Optional[Validation] = None
):
    """
    Create a handler inserting a new row into a table

    Only the writable fields of the schema will be taken from the request
    body, any other field will be silently ignored.

    :param name: name of the table
    :param schema: the full schema of the table
    :param schema_fields: optional list of writable fields (default: all
        fields of the schema except for the identity and audit fields)
    :param validation: optional function that must return a true value for the request body
    :return: path operation for ``POST`` requests on the collection
    """

    fields = get_filtered_fields(schema, schema_fields)

    async def post(local: RequestData = Depends(RequestData)):
        """
        Create a new entity and return its location.

        A 400 error will be returned if the body is empty or invalid.
        """

        check_content_type(local.headers)
        body = check_body(await local.request.body())
        check_validation(body, validation)
        values = pick(body, fields)
        if not values:
            raise BadRequest("The request body contains no writable field.", f"fields={fields}")

        result = await local.query(local.database.one_or_none, queries.build_insert(name, values), values)
        if not result or not result.get(IDENTITY_FIELD):
            raise InternalServerException("The entity couldn't be created.", f"result={result!r}")

        local.tags.invalidate_count(name)
        logger.debug(f"Created new entity {result[IDENTITY_FIELD]} in {name!r}")
        location = f"{local.base_url}{local.route}/{result[IDENTITY_FIELD]}"
        return Response(status_code=201, headers={"Location": location})

    return post


def update(
        name: str,
        schema: Mapping[str, str],
        schema_fields: Optional[Sequence[str]] = None,
        validation: Optional[Validation] = None
):
    """
    Create a handler updating an existing row of a table by its identifier

    Before the update happens, the ``If-Match`` header of the request must
    match the cached tag of the resource, so the user agent must have read
    the most recent version of the resource. After the update, the cached
    tag will be dropped and recomputed on the next read of the resource.

    :param name: name of the table
    :param schema: the full schema of the table
    :param schema_fields: optional list of writable fields (default: all
        fields of the schema except for the identity and audit fields)
    :param validation: optional function that must return a true value for the request body
    :return: path operation for ``PUT`` requests on a single resource
    """

    fields = get_filtered_fields(schema, schema_fields)
    stamp_updates = UPDATED_FIELD in schema

    async def put(resource_id: str, local: RequestData = Depends(RequestData)):
        """
        Update an existing entity.

        A 400 error will be returned if the body is invalid or the body's `id` doesn't match.
        A 412 error will be returned if `If-Match` doesn't match the current tag.
        """

        entity_id = check_params(resource_id)
        check_content_type(local.headers)
        body = check_body(await local.request.body())
        check_validation(body, validation)
        route = _instance_route(local, entity_id)

        async with local.tags.lock(route):
            check_precondition(local.headers, local.tags.get_tag(route), route)
            check_body_id(body, entity_id)
            values = pick(body, fields)
            if not values:
                raise BadRequest("The request body contains no writable field.", f"fields={fields}")
            if stamp_updates:
                values[UPDATED_FIELD] = _utc_timestamp()

            query = queries.build_update_by_id(values, name)
            count = await local.query(local.database.result, query, {**values, IDENTITY_FIELD: entity_id})
            if count != 1:
                raise InternalServerException("The entity couldn't be updated.", f"affected rows: {count}")

            local.tags.clear_tag(route)
            local.tags.invalidate_count(name)

        return Response(status_code=204)

    return put


def remove(name: str):
    """
    Create a handler deleting a row of a table by its identifier

    The ``If-Match`` header of the request must match the cached tag of the
    resource. A resource without cached tag is treated as not existing, so
    it must be read at least once before it can be deleted.

    :param name: name of the table
    :return: path operation for ``DELETE`` requests on a single resource
    """

    find_query = queries.build_find_by_id(name, [IDENTITY_FIELD])
    delete_query = queries.build_delete_by_id(name)

    async def delete(resource_id: str, local: RequestData = Depends(RequestData)):
        """
        Delete an existing entity.

        A 404 error will be returned if the entity is unknown or has never been read.
        A 412 error will be returned if `If-Match` doesn't match the current tag.
        """

        entity_id = check_params(resource_id)
        route = _instance_route(local, entity_id)

        async with local.tags.lock(route):
            tag = local.tags.get_tag(route)
            if tag is None:
                raise NotFound(route, "No entity tag is known for the resource")
            check_precondition(local.headers, tag, route)

            if await local.query(local.database.one_or_none, find_query, {"id": entity_id}) is None:
                local.tags.clear_tag(route)
                raise NotFound(route)
            count = await local.query(local.database.result, delete_query, {"id": entity_id})
            if count != 1:
                raise InternalServerException("The entity couldn't be deleted.", f"affected rows: {count}")

            local.tags.clear_tag(route)
            local.tags.invalidate_count(name)

        logger.debug(f"Deleted entity {entity_id} from {name!r}")
        return Response(status_code=200)

    return delete
