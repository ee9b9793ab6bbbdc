"""
Exception handlers mapping engine errors to HTTP responses.
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from admission.core.exceptions import AdmissionError
from admission.core.logging import get_logger

logger = get_logger(__name__)


async def admission_error_handler(request: Request, exc: AdmissionError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "admission_error",
        code=exc.code,
        status_code=exc.status_code,
        message=exc.message,
        **{f"detail_{k}": v for k, v in exc.details.items()},
    )
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AdmissionError, admission_error_handler)
