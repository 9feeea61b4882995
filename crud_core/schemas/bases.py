"""
Schemas for the generic resource collections
"""

import enum
from typing import Any, Dict, List, Optional

import pydantic


__all__ = ["Method", "ALL_METHODS", "ListMeta", "ListEnvelope"]


@enum.unique
class Method(str, enum.Enum):
    """
    Operations that can be enabled for a resource
    """

    GET_ALL = "GET_ALL"
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


ALL_METHODS: List[Method] = [Method.GET, Method.GET_ALL, Method.PUT, Method.POST, Method.DELETE]


class ListMeta(pydantic.BaseModel):
    total: pydantic.NonNegativeInt
    offset: pydantic.NonNegativeInt
    limit: pydantic.PositiveInt
    next: Optional[str] = None
    previous: Optional[str] = None


class ListEnvelope(pydantic.BaseModel):
    """
    One page of entities of a resource together with its pagination metadata

    The links `next` and `previous` point to the neighboring pages and
    are only present if such a page exists, otherwise they are `null`.
    """

    data: List[Dict[str, Any]]
    meta: ListMeta
