from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import inspect

from powcap.config import settings
from powcap.database import engine
from powcap.logging_config import setup_logging
from powcap.middleware.logging import CORRELATION_HEADER, LoggingMiddleware
from powcap.middleware.rate_limit import limiter
from powcap.middleware.secure_headers import SecureHeadersMiddleware
from powcap.routers import cap
from powcap.scheduler import shutdown_scheduler, start_scheduler

# Database tables are managed by Alembic migrations
# Run: alembic upgrade head

REQUIRED_TABLES = {"challenges", "tokens"}


def check_database_tables() -> None:
    """Fail fast if migrations have not been applied."""
    existing = set(inspect(engine).get_table_names())
    missing = REQUIRED_TABLES - existing
    if missing:
        raise RuntimeError(
            f"Database tables missing: {', '.join(sorted(missing))}. "
            "Run `alembic upgrade head` before starting the server."
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, verify the schema and run the cleanup scheduler."""
    setup_logging()
    check_database_tables()
    start_scheduler()
    yield
    shutdown_scheduler()


app = FastAPI(
    title="powcap",
    description="Proof-of-work CAPTCHA: puzzle challenges and single-use verification tokens",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(SecureHeadersMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_HEADER],
)

# Routers
app.include_router(cap.router, prefix="/cap", tags=["cap"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
