"""
API dependency library
"""

import logging
from typing import Any, Callable, TypeVar

import sqlalchemy.exc
from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool

from . import base
from .cache import TagCache
from ..persistence.database import Database
from ..settings import Settings


T = TypeVar("T")


class RequestData:
    """
    Collection of core dependencies used by all path operations

    This class stores references to the objects that will be used by the
    request handlers, which are created once at application startup and
    kept in the state of the application: the settings, the database
    wrapper and the tag cache.
    """

    def __init__(self, request: Request, response: Response):
        self.request = request
        self.response = response
        self.headers = request.headers
        self.config: Settings = request.app.state.settings
        self.database: Database = request.app.state.database
        self.tags: TagCache = request.app.state.tags

    @property
    def route(self) -> str:
        """
        Path of the addressed resource, used as key in the tag cache
        """

        path = self.request.url.path
        return path.rstrip("/") or "/"

    @property
    def base_url(self) -> str:
        """
        Base URL to be prepended to paths when building links (without trailing slash)
        """

        if self.config.server.public_base_url:
            return self.config.server.public_base_url.rstrip("/")
        return str(self.request.base_url).rstrip("/")

    async def query(self, func: Callable[..., T], *args: Any) -> T:
        """
        Run a method of the database wrapper in the thread pool

        :param func: one of the query methods of the ``Database`` wrapper
        :param args: positional arguments to the query method
        :return: the result of the query method
        :raises InternalServerException: when the database reported an error
        """

        try:
            return await run_in_threadpool(func, *args)
        except sqlalchemy.exc.SQLAlchemyError as exc:
            logging.getLogger(__name__).exception(f"Query for '{self.request.method} {self.route}' failed")
            raise base.InternalServerException(
                "The database couldn't handle the request.",
                type(exc).__name__
            ) from exc
