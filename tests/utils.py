"""
Helper functions to make writing unit tests for the CRUD core easier
"""

import os
import sys
import random
import string
import secrets
import unittest
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, Union

import pydantic
import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from crud_core import settings as _settings
from crud_core.api.api import create_app
from crud_core.api.cache import TagCache
from crud_core.persistence import database as _database
from crud_core.schemas import config

from . import conf


class BaseTest(unittest.TestCase):
    """
    A base class for unit tests which introduces simple setup and teardown of unit tests

    If a subclass needs special setup or teardown functionality, it **MUST**
    call the superclasses setup and teardown methods: the superclass setup
    method at the beginning of the subclass setup method, the superclass
    teardown method at the end of the subclass teardown method.
    """

    config_file: Optional[str] = None
    database_url: Optional[str] = None
    _database_file: Optional[str] = None

    def setUp(self) -> None:
        self.config_file = f"config_{os.getpid()}_{secrets.token_hex(8)}.json"
        _settings.CONFIG_PATHS = [self.config_file]

        if conf.DATABASE_URL is not None:
            self.database_url = conf.DATABASE_URL
            return

        self._database_file = conf.DATABASE_DEFAULT_FILE_FORMAT.format(
            os.getpid(),
            "".join([random.choice(string.ascii_lowercase) for _ in range(6)])
        )
        try:
            open(self._database_file, "wb").close()
            os.remove(self._database_file)
            self.database_url = conf.DATABASE_URL_FORMAT.format(self._database_file)

        except OSError as exc:
            self.database_url = conf.DATABASE_FALLBACK_URL
            self._database_file = None
            print(
                f"{exc}: Falling back to in-memory database. This is not recommended!",
                file=sys.stderr
            )

    def tearDown(self) -> None:
        if self._database_file and os.path.exists(self._database_file):
            os.remove(self._database_file)

        if self.config_file and os.path.exists(self.config_file):
            os.remove(self.config_file)


class BasePersistenceTests(BaseTest):
    database: _database.Database

    def setUp(self) -> None:
        super().setUp()
        _database.PRINT_SQLITE_WARNING = False
        self.database = _database.Database.from_url(self.database_url, conf.SQLALCHEMY_ECHOING)

    def tearDown(self) -> None:
        self.database.dispose()
        super().tearDown()


class BaseAPITests(BasePersistenceTests):
    """
    Base class for tests running requests against a fresh application

    The application gets the resources of ``get_resources`` and a
    new, empty tag cache for every single test, which is available as
    ``tags`` attribute, while ``client`` holds the test client.
    """

    app: FastAPI
    client: TestClient
    tags: TagCache

    def get_resources(self) -> List[config.ResourceConfig]:
        return [config.ResourceConfig(name="items", columns={"name": "TEXT", "weight": "INTEGER"})]

    def get_settings(self) -> _settings.Settings:
        return _settings.Settings(
            server=config.ServerConfig(public_base_url=conf.PUBLIC_BASE_URL),
            database=config.DatabaseConfig(
                connection=self.database_url,
                debug_sql=conf.SQLALCHEMY_ECHOING,
                create_tables=True
            ),
            resources=self.get_resources()
        )

    def setUp(self) -> None:
        super().setUp()
        self.tags = TagCache()
        self.app = create_app(self.get_settings(), configure_logging=False, database=self.database, tags=self.tags)
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        super().tearDown()

    def assertQuery(
            self,
            endpoint: Tuple[str, str],
            status_code: Union[int, Iterable[int]] = 200,
            json: Optional[Union[dict, list]] = None,
            headers: Optional[dict] = None,
            r_none: bool = False,
            r_is_json: bool = True,
            r_headers: Optional[Union[Mapping, Iterable]] = None,
            r_schema: Optional[Type[pydantic.BaseModel]] = None,
            **kwargs
    ) -> httpx.Response:
        """
        Do a query to the specified endpoint and return the response

        Besides also carrying the optional JSON data, headers and other keyword arguments,
        this function asserts that the response has the specified status code. Furthermore,
        the optional asserted response headers and asserted response schema can be used,
        where the headers are either an iterable to only assert certain keys or a mapping
        to also assert values.

        :param endpoint: tuple of the method and the path of the endpoint
        :param status_code: asserted status code(s) of the final server's response
        :param json: optional dictionary or list holding the request data
        :param headers: optional set of headers to sent in the request
        :param r_none: switch to expect no (=empty) result and skip all other response content checks
        :param r_is_json: switch to check that the response contains JSON data
        :param r_headers: optional set of headers which are asserted in the response
        :param r_schema: optional schema class which must accept the response
        :param kwargs: dict of any further keyword arguments, passed to ``TestClient.request``
        :return: response to the requested resource
        """

        method, path = endpoint
        response = self.client.request(method.upper(), path, json=json, headers=headers, **kwargs)

        if isinstance(status_code, int):
            self.assertEqual(status_code, response.status_code, response.text)
        else:
            self.assertIn(response.status_code, status_code, response.text)

        if r_headers is not None:
            for k in (r_headers if isinstance(r_headers, Iterable) else r_headers.keys()):
                self.assertIsNotNone(response.headers.get(k), response.headers)
                if isinstance(r_headers, Mapping):
                    self.assertEqual(r_headers[k], response.headers.get(k), response.headers)

        if r_none:
            self.assertEqual("", response.text)
        elif r_is_json:
            try:
                self.assertIsNotNone(response.json())
            except ValueError:
                self.fail(("No JSON content detected", response.headers, response.text))
            if r_schema is not None:
                self.assertTrue(r_schema(**response.json()), response.json())

        return response

    def create_item(self, path: str = "/items", **values: Any) -> int:
        response = self.assertQuery(("POST", path), 201, json=values, r_none=True, r_headers=["Location"])
        return int(response.headers["Location"].rsplit("/", 1)[-1])

    def read_item(self, item_id: int, path: str = "/items") -> Tuple[Dict[str, Any], str]:
        response = self.assertQuery(("GET", f"{path}/{item_id}"), 200, r_headers=["ETag", "Last-Modified"])
        return response.json(), response.headers["ETag"]
