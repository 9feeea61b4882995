"""
Schema definitions of the CRUD core

The entities of the resources themselves are plain dictionaries, since
their fields are only known at runtime from the configured column schemas.
The schemas of this package describe the fixed shapes surrounding them,
i.e. the list envelope with its pagination metadata and the error model.

This package also contains the ``config`` module, but it's not
exported by default, since it's currently only used internally.
"""

from .bases import *
from .errors import *
