from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from kasir.common.exceptions import FetchFailedError, NotFoundError, WriteFailedError
from kasir.common.response import ErrorResponse
from kasir.logger_config import logger


def register_error_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, e: StarletteHTTPException):
        return ErrorResponse.send(message=str(e.detail), status_code=e.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, e: RequestValidationError):
        return ErrorResponse.send(
            message="Validation error",
            status_code=422,
            errors=[{"loc": list(err.get("loc", [])), "msg": err.get("msg")} for err in e.errors()],
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, e: NotFoundError):
        return ErrorResponse.send(message=str(e), status_code=404)

    @app.exception_handler(FetchFailedError)
    async def handle_fetch_failed(request: Request, e: FetchFailedError):
        logger.error(f"Store read failed on {request.url.path}: {e}")
        return ErrorResponse.send(message=str(e), status_code=503)

    @app.exception_handler(WriteFailedError)
    async def handle_write_failed(request: Request, e: WriteFailedError):
        logger.error(f"Write rolled back on {request.url.path}: {e}")
        return ErrorResponse.send(message=str(e), status_code=500)

    @app.exception_handler(Exception)
    async def handle_exception(request: Request, e: Exception):
        # Log the exception with traceback
        logger.exception("Unhandled exception occurred")

        # Handle all other exceptions (coding, DB errors, etc.)
        return ErrorResponse.send(
            message="Internal Server Error",
            status_code=500,
            errors=[str(e)],
        )
