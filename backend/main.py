from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from dotenv import load_dotenv

load_dotenv()
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from database import Base, engine
from datetime import datetime
import time
import os
import auth
import routers.suppliers as suppliers
import routers.transactions as transactions
import routers.users as users
import routers.reports as reports
import routers.backups as backups
import logging
from fastapi.openapi.utils import get_openapi

from config import CORS_ALLOWED_ORIGINS, LOG_DIR, LOG_LEVEL, RECONCILE_SCHEDULE_ENABLED
from exceptions import LedgerError, PersistenceError

os.makedirs(LOG_DIR, exist_ok=True) # Create the log directory if it doesn't exist

# Create a unique log file name based on current date/time
current_time_str = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
LOG_FILE = os.path.join(LOG_DIR, f"app_{current_time_str}.log")

# Configure the root logger
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    filename=LOG_FILE,
    filemode='a'
)

# Also log to the console
console_handler = logging.StreamHandler()
console_handler.setLevel(LOG_LEVEL)
console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
logging.getLogger().addHandler(console_handler)

logger = logging.getLogger(__name__)
logger.info("Application starting up...")
# --- End Logging Configuration ---


# Create database tables
Base.metadata.create_all(bind=engine)

START_TIME = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if RECONCILE_SCHEDULE_ENABLED:
        from scheduler import scheduler
        scheduler.start()
        logger.info("Balance reconciliation scheduler started")
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(lifespan=lifespan)

# Split the string into a list, stripping any whitespace
allowed_origins = [origin.strip() for origin in CORS_ALLOWED_ORIGINS.split(',')]

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    # Details are already logged where the failure happened
    return JSONResponse(status_code=exc.status_code, content={"detail": "A database error occurred; no changes were saved"})


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Supplier Ledger API",
        version="1.0.0",
        description="API for supplier accounts, transactions and balances",
        routes=app.routes,
    )
    openapi_schema["components"]["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    # Apply security globally to all endpoints
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(suppliers.router)
app.include_router(transactions.router)
app.include_router(reports.router)
app.include_router(backups.router)


@app.get("/health")
@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now().astimezone().isoformat(),
        "uptime": round(time.monotonic() - START_TIME, 3),
    }


@app.get("/")
async def test_route():
    return {"message": "Supplier Ledger API"}
