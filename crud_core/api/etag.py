"""
ETag helper library for the core REST API

Entity tags are computed from the domain fields of an entity only, i.e. the
audit columns are stripped before hashing. Tags are always quoted strong
tags as sent in the ``ETag`` response header.
"""

import uuid
import hashlib
import logging
from typing import Any, List, Mapping, Optional

try:
    import ujson as json
except ImportError:
    import json

from fastapi.encoders import jsonable_encoder

from ..persistence.schema import META_FIELDS


logger = logging.getLogger(__name__)

WILDCARD: str = "*"
WEAK_PREFIX: str = "W/"


def make_etag(entity: Mapping[str, Any], name: Optional[str] = None) -> str:
    """
    Create a static and unambiguous ETag value based on the domain fields of an entity

    :param entity: mapping of column names to values of a single row
    :param name: optional string describing the entity type (e.g. table name)
    :return: quoted ETag value as a string
    """

    representation = jsonable_encoder({k: v for k, v in entity.items() if k not in META_FIELDS})
    dump = json.dumps(representation, sort_keys=True, ensure_ascii=False)
    content = (name or "") + dump
    return '"' + str(uuid.UUID(hashlib.md5(content.encode("UTF-8")).hexdigest())) + '"'


def parse_etags(value: Optional[str]) -> List[str]:
    """
    Split the value of an ``If-Match`` or ``If-None-Match`` header into its tags

    Unquoted tags will be quoted, so that they can be compared with the cached
    tags directly. Weak tags keep their ``W/`` prefix, the wildcard stays ``*``.
    """

    if not value:
        return []
    tags = []
    for tag in map(str.strip, value.split(",")):
        if tag == "":
            continue
        if tag == WILDCARD:
            tags.append(tag)
            continue
        weak = tag.startswith(WEAK_PREFIX)
        if weak:
            tag = tag[len(WEAK_PREFIX):]
        if not tag.startswith('"'):
            tag = '"' + tag
        if not tag.endswith('"') or len(tag) == 1:
            tag += '"'
        tags.append(WEAK_PREFIX + tag if weak else tag)
    return tags


def matches(value: Optional[str], current: Optional[str], weak: bool = False) -> bool:
    """
    Determine whether a conditional header value matches the current tag

    Without a current tag (i.e. the resource has no known tag), nothing will
    match, not even the wildcard. The strong comparison (used for ``If-Match``)
    never matches weak tags, while the weak comparison (used for
    ``If-None-Match``) ignores the ``W/`` prefix of the client's tags.

    :param value: raw header value of the request (may be ``None``)
    :param current: the current, quoted tag of the resource (may be ``None``)
    :param weak: switch to use the weak comparison function
    :return: whether any tag of the header matches the current tag
    """

    if not current:
        return False
    for tag in parse_etags(value):
        if tag == WILDCARD:
            return True
        if tag.startswith(WEAK_PREFIX):
            if not weak:
                continue
            tag = tag[len(WEAK_PREFIX):]
        if tag == current:
            return True
    return False
