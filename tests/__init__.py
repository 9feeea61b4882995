"""
CRUD core unit tests
"""

import unittest
from .api import APITests, ConfiguredResourceTests, CustomResourceTests
from .cache import TagCacheTests
from .etag import ETagTests
from .handlers import GuardTests, HelperTests
from .persistence import DatabaseTests, SchemaTests
from .queries import QueryBuilderTests
from .settings import SettingsTests


TEST_CLASSES = [
    APITests,
    ConfiguredResourceTests,
    CustomResourceTests,
    DatabaseTests,
    ETagTests,
    GuardTests,
    HelperTests,
    QueryBuilderTests,
    SchemaTests,
    SettingsTests,
    TagCacheTests,
]


def get_suite() -> unittest.TestSuite:
    suite = unittest.TestSuite()
    for cls in TEST_CLASSES:
        for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
            suite.addTest(cls(fixture))
    return suite
