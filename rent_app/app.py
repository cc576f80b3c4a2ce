import logging

import uvicorn
from core.catch_error_middleware import ErrorHandlerMiddleware
from core.exception_handler import (
    ConcurrentUpdateHandler,
    RentEngineErrorHandler,
    ValidationErrorHandler,
)
from core.lifespan import lifespan
from core.settings import settings
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from policy.errors import RentEngineError
from routes.admin_routes import router as admin_router
from routes.lease_routes import router as lease_router
from routes.payment_routes import router as payment_router
from routes.property_routes import router as property_router
from routes.rent_period_routes import router as rent_period_router
from routes.report_routes import router as report_router
from routes.tenant_routes import router as tenant_router
from sqlalchemy.orm.exc import StaleDataError

logging.basicConfig(level=logging.INFO)
app = FastAPI(
    lifespan=lifespan,
    title=settings.PROJECT_NAME,
    version="1.0.0",
)

app.include_router(property_router, prefix="/v1/properties")
app.include_router(tenant_router, prefix="/v1/tenants")
app.include_router(lease_router, prefix="/v1/leases")
app.include_router(rent_period_router, prefix="/v1/rent-periods")
app.include_router(payment_router, prefix="/v1/payments")
app.include_router(report_router, prefix="/v1/reports")
app.include_router(admin_router, prefix="/v1/admin")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["System"])
async def health_check():
    return {"status": "ok"}


app.add_exception_handler(
    RequestValidationError,
    ValidationErrorHandler(),
)
app.add_exception_handler(RentEngineError, RentEngineErrorHandler())
app.add_exception_handler(StaleDataError, ConcurrentUpdateHandler())

app.add_middleware(ErrorHandlerMiddleware)


if __name__ == "__main__":
    uvicorn.run("app:app", host="127.0.0.1", port=8001, reload=True)
