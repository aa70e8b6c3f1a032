"""
Exception -> HTTP response mapping.

Kernel errors answer with their category status and
``{"error": message, "code": code}``.  Anything else is a 500 whose body
never leaks internals.
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from trade_kernel.exceptions import TradeKernelError
from trade_kernel.logging_config import get_logger

logger = get_logger("api.errors")


async def kernel_error_handler(request: Request, exc: TradeKernelError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(
            "request_failed",
            extra={"path": request.url.path, "code": exc.code},
            exc_info=exc,
        )
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": str(exc), "code": exc.code},
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request body",
            "code": "VALIDATION_ERROR",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_failed_unexpectedly",
        extra={"path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TradeKernelError, kernel_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
