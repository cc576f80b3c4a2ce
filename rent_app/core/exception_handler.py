from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from policy.errors import RentEngineError


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):

        errors = []

        for err in exc.errors():
            errors.append({
                "loc": err.get("loc"),
                "msg": str(err.get("msg")),
                "type": err.get("type"),
            })

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "error": "Validation failed",
                "details": errors,
            },
        )


class RentEngineErrorHandler:
    async def __call__(self, request: Request, exc: RentEngineError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": str(exc),
                "details": exc.to_detail(),
            },
        )


class ConcurrentUpdateHandler:
    async def __call__(self, request: Request, exc: StaleDataError):
        return JSONResponse(
            status_code=409,
            content={
                "success": False,
                "error": "Record was changed by another request. Please retry.",
                "details": None,
            },
        )
