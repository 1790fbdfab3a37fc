import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Ensure all SQLAlchemy models are imported so relationships resolve
import voucherbook.models  # noqa: F401

from voucherbook import __version__, settings
from voucherbook.api import categories, transactions, vouchers
from voucherbook.api.system import router as system_router
from voucherbook.errors import LedgerError, PersistenceError
from voucherbook.logging_config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="voucherbook", version=__version__)

# --- CORS for local frontend dev ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error boundary: every ledger failure becomes a user-facing message ---
@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    if isinstance(exc, PersistenceError):
        # cause already logged by the unit of work; the client only gets the generic text
        message = PersistenceError.default_message
    else:
        message = exc.message
    logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(status_code=exc.status_code, content={"detail": message, "code": exc.code})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Something went wrong. Please try again.", "code": "internal_error"},
    )


# Routers
app.include_router(system_router)  # /health, /version
app.include_router(vouchers.router)      # /vouchers (+ purchases, refunds, sale, transactions)
app.include_router(transactions.router)  # /transactions/{id}
app.include_router(categories.router)    # /categories
