from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from shared.core import get_logger
from stocksense.domain.errors import (
    ConcurrencyConflictError,
    DuplicateCodeError,
    ForbiddenError,
    IdempotencyConflictError,
    ImmutableRecordError,
    ItemNotFoundError,
    StockSenseError,
)

logger = get_logger(__name__)

STATUS_CODES = {
    ItemNotFoundError: 404,
    DuplicateCodeError: 409,
    ForbiddenError: 403,
    IdempotencyConflictError: 409,
    ConcurrencyConflictError: 409,
    ImmutableRecordError: 409,
}

def status_for(exc: StockSenseError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    # Validation and stock-rule rejections
    return 400

def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(StockSenseError)
    async def stocksense_error_handler(request: Request, exc: StockSenseError):
        status_code = status_for(exc)
        logger.info(
            f"Request rejected: {exc.code}",
            extra={'extra_fields': {
                'path': request.url.path,
                'status_code': status_code,
                'error_code': exc.code,
                'details': exc.details,
            }}
        )
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "error_code": "INTERNAL_ERROR"},
        )
