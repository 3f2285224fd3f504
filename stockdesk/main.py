from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from stockdesk.core.errors import DomainError
from stockdesk.core.observability import (
    domain_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from stockdesk.core.config import settings
from stockdesk.db.session import engine
from stockdesk.routers import categories, products, purchase_orders, stock, suppliers, users

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description=(
        "Inventory management API for StockDesk.\n\n"
        "Every response is wrapped as `{statusCode, success, message, data}`. "
        "Send the identity provider's token as `Authorization: Bearer <token>` "
        "or in the `auth_token` cookie."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "categories", "description": "Product categories."},
        {"name": "products", "description": "Product catalog, SKUs and barcodes."},
        {"name": "suppliers", "description": "Supplier directory."},
        {"name": "stock", "description": "Stock levels, reservations and the movement ledger."},
        {"name": "purchase-orders", "description": "Purchase orders, their items and receipt into stock."},
        {"name": "users", "description": "Users and role assignment (admin only)."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(DomainError, domain_exception_handler)
app.add_exception_handler(IntegrityError, integrity_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:3000"]
allow_all_origins = "*" in cors_origins
allow_origin_regex = settings.cors_origin_regex

if not allow_origin_regex and settings.is_local:
    # Local dashboards run on dynamic localhost ports.
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (categories, products, suppliers, stock, purchase_orders, users):
    app.include_router(module.router, prefix=settings.api_prefix)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "api": settings.api_prefix or "/",
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        return {"ok": False}
    return {"ok": True}
