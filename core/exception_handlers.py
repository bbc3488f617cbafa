import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse

from .exceptions import InvalidCoordinatesError, InvalidInput, OutsideTimeWindowError
from .response import error as resp_error

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content=resp_error(code=str(exc.status_code), message=str(exc.detail)))

    @app.exception_handler(InvalidCoordinatesError)
    async def invalid_coordinates_handler(request: Request, exc: InvalidCoordinatesError):
        return JSONResponse(
            status_code=422,
            content=resp_error(code="invalid_coordinates", message=str(exc), details={"lat": exc.lat, "lng": exc.lng}),
        )

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=422, content=resp_error(code="invalid_input", message=str(exc)))

    @app.exception_handler(OutsideTimeWindowError)
    async def time_window_handler(request: Request, exc: OutsideTimeWindowError):
        return JSONResponse(status_code=403, content=resp_error(code="outside_time_window", message=str(exc)))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=resp_error(code="internal_error", message="Internal server error"))
