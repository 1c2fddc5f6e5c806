"""FastAPI application wiring for the wallet identity service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .allocator import (
    AccountNumberAllocator,
    InMemoryAccountNumberAllocator,
    PostgresAccountNumberAllocator,
)
from .api.routes import install_error_handlers, router as v1_router
from .config import Settings, get_settings
from .domain.auth import Authenticator
from .domain.bootstrap import MasterAccountBootstrapper
from .domain.service import CustomerService
from .repository import CustomerRepository
from .security.passwords import PasswordHasher
from .security.tokens import TokenIssuer

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def build_allocator(settings: Settings, pool: ConnectionPool) -> AccountNumberAllocator:
    """Instantiate the configured account number allocator backend."""
    if settings.account_number_backend == "redis":
        if not settings.redis_url:
            raise RuntimeError("ACCOUNT_NUMBER_BACKEND=redis requires REDIS_URL")
        import redis

        from .redis_allocator import RedisAccountNumberAllocator

        logger.info("account numbers allocated from redis at %s", settings.redis_url)
        return RedisAccountNumberAllocator(
            redis.from_url(settings.redis_url),
            floor=settings.account_number_floor,
            step=settings.account_number_step,
        )
    if settings.account_number_backend == "memory":
        logger.warning("account numbers allocated in-process; not safe across processes")
        return InMemoryAccountNumberAllocator(
            floor=settings.account_number_floor,
            step=settings.account_number_step,
        )
    logger.info("account numbers allocated from postgres counter table")
    return PostgresAccountNumberAllocator(
        pool,
        floor=settings.account_number_floor,
        step=settings.account_number_step,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, services) and the master account."""
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    app.state.pool = pool

    repository = CustomerRepository(pool)
    hasher = PasswordHasher(rounds=settings.password_hash_rounds)
    issuer = TokenIssuer(
        settings.jwt_secret,
        ttl_minutes=settings.jwt_ttl_minutes,
        issuer=settings.jwt_issuer,
    )
    service = CustomerService(repository, build_allocator(settings, pool), hasher)

    app.state.customer_service = service
    app.state.token_issuer = issuer
    app.state.authenticator = Authenticator(repository, hasher, issuer)

    try:
        MasterAccountBootstrapper(
            service,
            account_number=settings.master_account_number,
            email=settings.master_email,
            password=settings.master_password,
        ).ensure_master_account()
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
install_error_handlers(app)


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", tags=["health"])
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(v1_router)


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.http_host, port=settings.http_port)
