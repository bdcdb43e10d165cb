import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cardledger.api.companies import router as companies_router
from cardledger.api.exports import router as exports_router
from cardledger.api.files import router as files_router
from cardledger.api.orders import router as orders_router
from cardledger.api.reports import router as reports_router
from cardledger.api.settings import router as settings_router
from cardledger.api.transactions import router as transactions_router
from cardledger.config import config
from cardledger.errors import LedgerError

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

try:
    config.validate()
except ValueError as exc:
    logger.warning("%s; order emails will fail until it is set", exc)

app = FastAPI(
    title="Card Ledger API",
    version="0.1.0",
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}

app.include_router(companies_router)
app.include_router(orders_router)
app.include_router(transactions_router)
app.include_router(files_router)
app.include_router(reports_router)
app.include_router(exports_router)
app.include_router(settings_router)
