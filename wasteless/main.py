"""
Main FastAPI application
"""
import asyncio
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from wasteless.config import get_settings
from wasteless.database import engine, Base, AsyncSessionLocal, get_db
from wasteless.exceptions import WastelessError
from wasteless.models.product import Product
from wasteless.api import products, pricing, categories, signage
from wasteless.api.deps import build_pricing_engine
from wasteless.services.category_service import seed_default_categories
from wasteless.services.price_scheduler import PriceUpdateScheduler
from wasteless.services.signage_service import SignageService
from wasteless.utils.clock import SystemClock
from wasteless.utils.logger import get_logger

settings = get_settings()
logger = get_logger("wasteless")


def build_scheduler(app: FastAPI) -> PriceUpdateScheduler:
    """Scheduler whose every tick opens its own session and shares the app's recompute lock"""

    async def recompute():
        async with AsyncSessionLocal() as session:
            pricing_engine = build_pricing_engine(
                session, app.state.clock, app.state.recompute_lock
            )
            return await pricing_engine.recompute_all()

    async def display_sync():
        async with AsyncSessionLocal() as session:
            return await SignageService(session, clock=app.state.clock).send_bulk_update()

    return PriceUpdateScheduler(recompute, display_sync, settings.PRICE_UPDATE_INTERVAL_MIN)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")

    # Seed default categories and their pricing rules
    async with AsyncSessionLocal() as session:
        await seed_default_categories(session)

    app.state.clock = SystemClock()
    app.state.recompute_lock = asyncio.Lock()

    scheduler = None
    if settings.AUTO_PRICING_ENABLED:
        scheduler = build_scheduler(app)
        scheduler.start()
    else:
        logger.info("Automatic price updates disabled")
    app.state.scheduler = scheduler

    logger.info(f"Signage: {'configured' if settings.signage_configured else 'not configured'}")

    yield

    if scheduler:
        await scheduler.stop()
    await engine.dispose()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WastelessError)
async def wasteless_error_handler(request: Request, exc: WastelessError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


# Include routers
app.include_router(products.router, prefix="/api/products", tags=["Products"])
app.include_router(pricing.router, prefix="/api/pricing", tags=["Pricing"])
app.include_router(categories.router, prefix="/api/categories", tags=["Categories"])
app.include_router(signage.router, prefix="/api/signage", tags=["Signage"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(func.count(Product.id)))
    return {"status": "healthy", "database": "connected", "product_count": result.scalar() or 0}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "wasteless.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
