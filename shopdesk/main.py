"""
ShopDesk
Main FastAPI application
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.middleware.gzip import GZipMiddleware

from shopdesk.config import get_settings
from shopdesk.errors import ShopDeskError
from shopdesk.utils.logger import log, shop_logger
from shopdesk import __version__

# Import routers
from shopdesk.api import ai, auth, health, notifications, products, roles, sales, shops, staff, suppliers
from shopdesk.middleware.auth_middleware import AuthMiddleware
from shopdesk.services.insights_service import InsightsService
from shopdesk.services.llm_service import LLMService

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database
    try:
        from shopdesk.models.base import init_db, session_scope
        added = init_db()
        log.info(f"Database initialized ({len(added)} columns auto-migrated)")

        # Seed initial admin user if configured
        from shopdesk.services import auth_service
        with session_scope() as db:
            auth_service.seed_initial_user(db)
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    yield

    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Multi-tenant shop management API

    - Shops, staff, roles and permissions
    - Products, suppliers and inventory
    - Sales with automatic stock updates and low-stock notifications
    - AI sales predictions, business summaries and restocking suggestions
    """,
    lifespan=lifespan
)

# One insights service (and cache) per process
app.state.insights_service = InsightsService(LLMService())

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session-based authentication middleware
app.add_middleware(AuthMiddleware)

app.add_middleware(GZipMiddleware, minimum_size=500)


@app.exception_handler(ShopDeskError)
async def shopdesk_error_handler(request: Request, exc: ShopDeskError):
    req_log = shop_logger(request.headers.get("x-shop-id") or "-")
    if exc.status_code >= 500:
        req_log.error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc.message}")
    else:
        req_log.warning(f"{request.method} {request.url.path} rejected: {type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(auth.router)
app.include_router(health.router, tags=["health"])
app.include_router(shops.router)
app.include_router(staff.router)
app.include_router(roles.router)
app.include_router(products.router)
app.include_router(sales.router)
app.include_router(suppliers.router)
app.include_router(notifications.router)
app.include_router(ai.router)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "app": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "status": "/status",
        "endpoints": {
            "signup": "POST /auth/signup",
            "login": "POST /auth/login",
            "my_shops": "GET /shops/my-shops",
            "products": "GET /products",
            "sales": "GET /sales",
            "record_sale": "POST /sales",
            "suppliers": "GET /suppliers",
            "notifications": "GET /notifications",
            "roles": "GET /roles",
            "staff": "GET /staff",
            "ai_insights": "GET /ai/insights",
            "ai_predictions": "GET /ai/predictions",
            "ai_summary": "GET /ai/summary?period=daily|monthly",
            "ai_restocking": "GET /ai/restocking",
            "ai_status": "GET /ai/status",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "shopdesk.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=settings.api_workers if not settings.debug else 1
    )
