"""
CRUD core REST API

This API provides the generic CRUD endpoints for every configured resource.
A resource is a table with an auto-generated `id` column, the domain columns
of its configuration and the two audit columns `created_dt` and `updated_dt`.
"""

import logging
import contextlib
from typing import Any, Callable, Dict, Optional, Union

import fastapi
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import base
from .cache import TagCache
from .routers import CRUDOptions, create_crud_router, router
from .. import schemas, __version__
from ..misc.logger import configure_logging as _configure_logging
from ..persistence.database import Database
from ..persistence.schema import build_schema, create_table
from ..settings import Settings


DEFAULT_EXCEPTION_HANDLERS = {
    StarletteHTTPException: base.APIException.handle,
    RequestValidationError: base.handle_request_validation_error,
    Exception: base.handle_generic_exception
}


API_DOC = """CRUD core REST API definition

Every resource offers up to five endpoints: `GET` on the collection returns a
page of entities (query parameters `limit` and `offset`), `POST` on the
collection creates a new entity and returns its location, while `GET`, `PUT`
and `DELETE` on `/{id}` read, update and delete a single entity.

Reading a single entity returns its entity tag in the `ETag` header. Sending
this tag in the `If-None-Match` header of later reads yields `304` (Not
Modified) as long as the entity didn't change. Updates and deletions require
the current tag in the `If-Match` header, otherwise `412` (Precondition
Failed) will be returned. Note that a resource must have been read at least
once before it can be deleted, since it has no entity tag otherwise.

Requests must use `application/json` as content type, if any. Errors are
returned as `APIError` JSON objects, except for `500` (Internal Server Error),
where no assumptions of the returned values can be made.
"""


def _make_app(
        title: str,
        version: str,
        description: str,
        exception_handlers: Optional[Dict[Any, Callable]] = None,
        root_redirect: bool = True,
        responses: Optional[Dict[Union[int, str], Dict[str, Any]]] = None,
        **kwargs
) -> fastapi.FastAPI:
    app = fastapi.FastAPI(
        title=title,
        version=version,
        description=description,
        responses=responses or {400: {"model": schemas.APIError}},
        **kwargs
    )

    handlers = exception_handlers or DEFAULT_EXCEPTION_HANDLERS
    for exc in handlers:
        app.add_exception_handler(exc, handlers[exc])

    if root_redirect:
        @app.get("/", include_in_schema=False)
        async def redirect_root():
            return RedirectResponse("./docs")

    return app


def create_app(
        settings: Optional[Settings] = None,
        configure_logging: bool = True,
        database: Optional[Database] = None,
        tags: Optional[TagCache] = None
) -> fastapi.FastAPI:
    """
    Create a new ``FastAPI`` instance using the specified settings and switches

    This function is conveniently used to allow overwriting the settings
    before launching the application as well as to allow multiple ``FastAPI``
    instances in one program, which in turn makes unit testing much easier.
    The routers of all configured resources are included in the application.
    Further resources can be added by including routers created with
    ``create_crud_router`` into the returned application.

    :param settings: optional Settings instance (would be created if not present)
    :param configure_logging: switch whether to configure logging
    :param database: optional database wrapper (would be created from the settings if not present)
    :param tags: optional tag cache (a new, empty cache would be created if not present)
    :return: new ``FastAPI`` instance
    """

    if settings is None:
        settings = Settings()

    if configure_logging:
        _configure_logging(settings.logging, settings.database.debug_sql)
    logger = logging.getLogger(__name__)
    logger.debug("Starting application...")

    if database is None:
        database = Database.from_url(settings.database.connection, settings.database.debug_sql)
    if tags is None:
        tags = TagCache()

    @contextlib.asynccontextmanager
    async def lifespan(_: fastapi.FastAPI):
        logger.info("Starting API...")
        yield
        logger.info("Shutting down...")
        database.dispose()

    app = _make_app(
        title="CRUD core REST API",
        version=__version__,
        description=API_DOC,
        responses={400: {"model": schemas.APIError}, 500: {"model": schemas.APIError}},
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.database = database
    app.state.tags = tags

    app.include_router(router)
    for resource in settings.resources:
        schema = build_schema(resource.columns, database.dialect)
        if settings.database.create_tables:
            create_table(database, resource.name, schema, resource.constraints, logger)
        app.include_router(create_crud_router(
            resource.name,
            schema,
            CRUDOptions(methods=resource.methods, schema_fields=resource.schema_fields),
            resource.prefix
        ))
        logger.debug(f"Added resource {resource.name!r}")

    return app


class APIWrapper:
    """
    Wrapper class around the FastAPI main object, accessible via the ``app`` property

    There should be only one global instance of this object, which should only
    export its functionality to hold the ``app`` property. This wrapper can be
    used to allow easy command-line usage via ``uvicorn`` calls. Example:

    .. code-block::

        uvicorn crud_core.api.api:api.app
    """

    def __init__(self):
        self._app: Optional[fastapi.FastAPI] = None

    @property
    def app(self) -> fastapi.FastAPI:
        """
        Return the ``app`` instance (or create it with default settings if it doesn't exist)
        """

        if self._app is not None:
            return self._app
        self._app = create_app()
        return self._app


api = APIWrapper()
