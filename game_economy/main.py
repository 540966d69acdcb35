"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from game_economy.cache import UserViewCache
from game_economy.config import settings
from game_economy.database import engine
from game_economy.dependencies import build_services
from game_economy.logging_config import setup_logging
from game_economy.models import Base
from game_economy.routers.backpack import router as backpack_router
from game_economy.routers.level import router as level_router
from game_economy.routers.rewards import router as rewards_router
from game_economy.routers.store import router as store_router
from game_economy.routers.users import router as users_router
from game_economy.routers.wallet import router as wallet_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and build the shared service set; close the cache on shutdown."""
    setup_logging(settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)
    cache = UserViewCache.from_settings(settings)
    app.state.services = build_services(cache)
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started")
    yield
    cache.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Game Economy Service

Transaction engine for an in-game economy: wallets, levels, backpacks, the store and reward packages.

### Features
- **Two currencies**: every user owns a `coin` and a `diamond` wallet; every balance change writes one ledger flow.
- **Pessimistic locking**: `SELECT ... FOR UPDATE` on wallets, stock and backpack rows.
- **Atomic purchases**: debit, stock, backpack and experience commit together or not at all.
- **Level discounts**: store prices shrink as the buyer levels up; level-ups pay out currency rewards.
- **Reward packages**: bundles of goods and currency granted all-or-nothing.
- **Cached views**: backpack and wallet reads are served from Redis and invalidated on every write.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(users_router)
app.include_router(wallet_router)
app.include_router(store_router)
app.include_router(backpack_router)
app.include_router(level_router)
app.include_router(rewards_router)


# ── Global exception handler ──────────────────────────────────────────────────
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"status": "error", "code": "INTERNAL_ERROR", "message": str(exc)},
    )


# ── Health check ──────────────────────────────────────────────────────────────
@app.get("/health", tags=["System"], summary="Health check")
def health():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.APP_VERSION}


@app.get("/", tags=["System"], summary="Root")
def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("game_economy.main:app", host="0.0.0.0", port=8000, reload=True)
