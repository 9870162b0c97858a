from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gymdesk.exceptions import AppError, RepositoryUnavailableError, ValidationError


def _error_response(status_code: int, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message},
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error_response(500, exc)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(422, exc)


async def repository_unavailable_handler(
    request: Request, exc: RepositoryUnavailableError
) -> JSONResponse:
    return _error_response(503, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RepositoryUnavailableError, repository_unavailable_handler)
    app.add_exception_handler(AppError, app_error_handler)
