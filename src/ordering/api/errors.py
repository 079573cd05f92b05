"""Exception handlers for the ordering API.

Protean's handlers cover domain exceptions that escape a route
(``ValidationError`` as 400, ``ObjectNotFoundError`` as 404). Malformed
request bodies are client errors too, so they return 400 rather than
FastAPI's 422.
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
