"""
Gestionnaires d'exceptions utilisés par la factory.
Toutes les erreurs sortent au même format JSON: {ok: false, error, details?}.
- StorefrontError: code et message portés par l'exception
- HTTPException (404 de routage, 405, 429 du rate limiter): detail -> error
- RequestValidationError: corps JSON illisible ou de mauvais type -> 400
- toute autre exception: 500 générique, trace dans les logs uniquement
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.errors import StorefrontError

logger = logging.getLogger(__name__)

def _error_response(status_code: int, error: str, details=None, headers=None) -> JSONResponse:
    content = {"ok": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.error)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg")}
            for err in exc.errors()
        ]
        return _error_response(400, "Invalid request", details)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Server error")
