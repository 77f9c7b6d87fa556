import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from pos.api.credits import router as credits_router
from pos.api.customers import router as customers_router
from pos.api.dashboard import router as dashboard_router
from pos.api.payments import router as payments_router
from pos.api.products import router as products_router
from pos.api.sales import router as sales_router
from pos.exceptions import ConflictError, NotFoundError, PosError, ValidationError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Weekly Credit POS API",
    version="0.1.0",
)


def _status_for(exc: PosError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ConflictError):
        return 409
    return 500


@app.exception_handler(PosError)
def handle_pos_error(request: Request, exc: PosError) -> JSONResponse:
    return JSONResponse(
        status_code=_status_for(exc),
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(SQLAlchemyError)
def handle_db_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "The operation could not be completed", "code": "database_error"},
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(customers_router)
app.include_router(products_router)
app.include_router(sales_router)
app.include_router(credits_router)
app.include_router(payments_router)
app.include_router(dashboard_router)
