"""
Router module for generic functionalities
"""

from fastapi import APIRouter, Depends

from ..dependency import RequestData


router = APIRouter(tags=["Generic"])


@router.get("/health")
async def verify_running_backend(_: RequestData = Depends(RequestData)):
    """
    Return 200 OK with an empty object as body to only verify that the service and the middlewares work
    """

    return {}
