# marketplace/api/errors.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketplace.domain.errors import MarketplaceError, TransientError
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    logger.info("Business rule rejected request", path=request.url.path, kind=exc.kind, message=exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def transient_error_handler(request: Request, exc: TransientError):
    # retry juz wyczerpany w TransactionCoordinator
    return JSONResponse(
        status_code=503,
        content={
            "ok": False,
            "error": "unavailable",
            "message": "Service temporarily unavailable. Please try again.",
        },
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "ok": False,
            "error": "validation",
            "message": "Invalid request.",
            "fields": [".".join(str(p) for p in err["loc"]) for err in exc.errors()],
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(TransientError, transient_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
