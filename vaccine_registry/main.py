# Main application file



import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from vaccine_registry.database import SessionLocal, init_db
from vaccine_registry.core.rate_limiter import limiter
from vaccine_registry.core.config import settings
from vaccine_registry.routers import (
    auth,
    users,
    patients,
    vaccines,
    stock,
    administrations,
    dashboard,
    reports,
)
from vaccine_registry.seed import seed_data
from vaccine_registry.services.locks import inventory_locks
from vaccine_registry.services.maintenance import periodic_sweep


# LOGGING CONFIGURATION

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
)

logger = logging.getLogger("vaccine_registry")


# STARTUP / SHUTDOWN

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()

    db = SessionLocal()
    try:
        seed_data(db)
    finally:
        db.close()

    sweeper = None
    if settings.SWEEP_INTERVAL_MINUTES > 0:
        sweeper = asyncio.create_task(
            periodic_sweep(inventory_locks, settings.SWEEP_INTERVAL_MINUTES)
        )
        logger.info("Stock sweep scheduled every %d minutes", settings.SWEEP_INTERVAL_MINUTES)

    yield

    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


# APP INIT

app = FastAPI(
    title="Vaccine Registry API",
    description="Clinic vaccine registry: patients, vial stock and dose administration",
    version="1.0.0",
    lifespan=lifespan,
)



# CORS (Token-based auth)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# RATE LIMITING

app.state.limiter = limiter
app.add_exception_handler(
    RateLimitExceeded,
    _rate_limit_exceeded_handler
)


# REQUEST LOGGING MIDDLEWARE

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    response = await call_next(request)

    duration = round((time.time() - start_time) * 1000, 2)

    logger.info(
        f"{request.method} {request.url.path} "
        f"Status: {response.status_code} "
        f"Time: {duration}ms"
    )

    return response


# ROUTERS

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(patients.router)
app.include_router(vaccines.router)
app.include_router(stock.router)
app.include_router(administrations.router)
app.include_router(dashboard.router)
app.include_router(reports.router)



# ROOT

@app.get("/")
def root():
    logger.info("Health check endpoint called")
    return {"message": "Vaccine Registry API is running"}
