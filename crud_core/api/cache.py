"""
In-memory cache of entity tags and table row counts

The cache is a pure consistency aid and never the source of truth for any
entity, which is always the database. One instance should be created at
application startup and passed to every request handler. It's neither
persisted nor shared between processes.
"""

import asyncio
import logging
import threading
import weakref
from typing import Any, Dict, Mapping, Optional

from .etag import make_etag


logger = logging.getLogger(__name__)


class TagCache:
    """
    Thread-safe mapping of resource routes to entity tags and tables to row counts

    All operations are synchronous and never fail. A count of ``0`` means that
    the number of rows in the table is unknown and has to be recomputed.
    """

    def __init__(self):
        self._tags: Dict[str, str] = {}
        self._counts: Dict[str, int] = {}
        self._mutex = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def record_tag(self, route: str, entity: Mapping[str, Any]) -> str:
        """
        Compute the entity tag of the given entity and store it for the route

        :param route: full path of the individual resource, e.g. ``/items/1``
        :param entity: the current row of the resource
        :return: the newly stored tag
        """

        tag = make_etag(entity)
        with self._mutex:
            self._tags[route] = tag
        logger.debug(f"Stored entity tag {tag} for {route!r}")
        return tag

    def update_tag(self, route: str, entity: Mapping[str, Any]) -> str:
        return self.record_tag(route, entity)

    def clear_tag(self, route: str):
        with self._mutex:
            self._tags.pop(route, None)

    def get_tag(self, route: str) -> Optional[str]:
        with self._mutex:
            return self._tags.get(route)

    def set_count(self, table: str, count: int):
        with self._mutex:
            self._counts[table] = count

    def get_count(self, table: str) -> int:
        with self._mutex:
            return self._counts.get(table, 0)

    def invalidate_count(self, table: str):
        self.set_count(table, 0)

    def clear(self):
        with self._mutex:
            self._tags.clear()
            self._counts.clear()

    def lock(self, route: str) -> asyncio.Lock:
        """
        Return the lock serializing the check-write-update sequences of a route

        The same lock object is returned for concurrent requests addressing the
        same route. Locks that are not held or awaited anymore are dropped.
        """

        with self._mutex:
            lock = self._locks.get(route)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[route] = lock
            return lock

    def __len__(self) -> int:
        with self._mutex:
            return len(self._tags)

    def __repr__(self) -> str:
        return f"TagCache(tags={len(self)}, counts={len(self._counts)})"
