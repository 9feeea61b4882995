"""
CRUD core REST API base library
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import schemas


logger = logging.getLogger(__name__)

CONTENT_TYPE: str = "application/json"
"""the only content type accepted by the API"""

BODYLESS_STATUS_CODES = (204, 304)


async def handle_generic_exception(request: Request, _: Exception):
    logger.exception("Unhandled exception caught in base exception handler!")
    status_code = 500
    msg = "Unexpected server error. The requested action wasn't completed successfully."

    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=False,
        message=msg,
        details=""
    )), status_code=status_code)


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    status_code = 400
    msgs = "\n".join(["\t" + error["msg"] for error in exc.errors()])
    message = f"Failed to process the request:\n{msgs}"

    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=False,
        message=message,
        details=str(exc.errors())
    )), status_code=status_code)


class APIException(HTTPException):
    """
    Base class for any kind of generic API exception

    Raising a subclass of this exception is the way for any request handler
    or guard to stop the processing of a request with a certain status code.
    """

    def __init__(
            self,
            status_code: int,
            detail: Optional[str],
            repeat: bool = False,
            message: Optional[str] = None,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.repeat = repeat
        self.message = message

    @classmethod
    async def handle(cls, request: Request, exc: StarletteHTTPException) -> Response:
        """
        Handle exceptions in a generic way to produce APIError models

        Responses that must not contain a body (e.g. 304 Not Modified)
        only carry the status code and the headers of the exception.
        """

        status_code = getattr(exc, "status_code", 500)
        repeat = getattr(exc, "repeat", False)
        message = getattr(exc, "message", None) or exc.__class__.__name__
        headers = getattr(exc, "headers", None)

        if not isinstance(exc, StarletteHTTPException):
            logger.error("Invalid exception class for base handler")

        logger.debug(
            f"{type(exc).__name__}: {message} @ '{request.method} "
            f"{request.url.path}' (details: {exc.detail})"
        )
        if status_code in BODYLESS_STATUS_CODES:
            return Response(status_code=status_code, headers=headers)
        return JSONResponse(jsonable_encoder(schemas.APIError(
            status=status_code,
            method=request.method,
            request=request.url.path,
            repeat=repeat,
            message=message,
            details=str(exc.detail)
        )), status_code=status_code, headers=headers)


class NotModified(APIException):
    """
    Exception when the user agent already has the most recent version of a resource
    """

    def __init__(self, resource: str, tag: Optional[str] = None):
        super().__init__(
            status_code=304,
            detail=resource,
            repeat=False,
            message="Not Modified",
            headers={"ETag": tag} if tag else None
        )


class BadRequest(APIException):
    """
    Exception when the user probably messed something up

    The `message` field must be user-friendly and not too informative!
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=400,
            detail=detail,
            repeat=True,
            message=message
        )


class NotFound(APIException):
    """
    Exception when a requested resource was not found in the system
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=404,
            detail=detail,
            repeat=False,
            message=f"{str(resource)!r} was not found."
        )


class PreconditionFailed(APIException):
    """
    Exception when the entity tag of a conditional request doesn't match the current one

    The user agent should get the resource again before retrying the request.
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=412,
            detail=detail,
            repeat=False,
            message=f"Conditional request for {str(resource)!r} doesn't match the current entity tag."
        )


class InternalServerException(APIException):
    """
    Exception for problems within the server implementation or its database
    """

    def __init__(self, message: str, detail: Optional[str] = None, repeat: bool = False):
        super().__init__(
            status_code=500,
            detail=detail,
            repeat=repeat,
            message=message
        )
