"""
ChocoShop - Application Entry Point
=====================================
FastAPI app initialization, middleware, exception handlers and router registration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from config.database import Base, engine
from common.exceptions import ShopError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("chocoshop.app")

APP_VERSION = "1.0.0"


# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.user.models import User  # noqa: F401, E402
from modules.catalog.models import Product  # noqa: F401, E402
from modules.cart.models import Cart, CartItem  # noqa: F401, E402
from modules.order.models import Order, OrderItem, OrderStatusHistory  # noqa: F401, E402
from modules.payment.models import Transaction  # noqa: F401, E402

# ==========================================
# Import routers
# ==========================================
from modules.catalog.routes import router as catalog_router  # noqa: E402
from modules.cart.routes import router as cart_router  # noqa: E402
from modules.order.admin_routes import router as order_admin_router  # noqa: E402
from modules.order.routes import router as order_router  # noqa: E402
from modules.payment.routes import router as payment_router  # noqa: E402


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info(f"ChocoShop {APP_VERSION} started")
    yield
    logger.info("ChocoShop stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="ChocoShop",
    description="Chocolate shop backend: catalog, cart, orders and payments",
    version=APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==========================================
# Exception handlers: everything leaves as {"success": false, "message": ...}
# ==========================================
@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse({"success": False, "message": exc.message}, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"success": False, "message": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else (first.get("msg") or "Invalid request")
    return JSONResponse(
        {"success": False, "message": message, "errors": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors
        ]},
        status_code=400,
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity conflict on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse({"success": False, "message": "Conflicting update, please retry"}, status_code=409)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    body = {"success": False, "message": "Something went wrong!"}
    if settings.DEBUG:
        body["error"] = str(exc)
    return JSONResponse(body, status_code=500)


# ==========================================
# Register Routers
# ==========================================
app.include_router(catalog_router)
app.include_router(cart_router)
app.include_router(order_admin_router)
app.include_router(payment_router)
app.include_router(order_router)


# ==========================================
# Health check
# ==========================================
@app.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}
