"""
Router modules for handling requests to various endpoints

This module exports the ``router`` object with the generic endpoints as well
as the ``create_crud_router`` factory, which creates the routers of resources.
"""

from .generic import router
from .resources import CRUDOptions, create_crud_router
