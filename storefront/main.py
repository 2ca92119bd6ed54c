import os
import logging
import traceback
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from storefront.admin_auth import ensure_admin_exists
from storefront.cache import init_cache, close_cache
from storefront.database import init_database, close_database, SessionLocal
from storefront.routes import (
    addresses,
    admin,
    auth,
    cart,
    categories,
    health,
    location,
    orders,
    payments,
    products,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

APP_ENV = os.getenv("APP_ENV", "production")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]


app = FastAPI(title="Storefront API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Health ─────────────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(health.router, prefix="/api")

# ── API ────────────────────────────────────────────────────────────
app.include_router(auth.router,        prefix="/api")
app.include_router(location.router,    prefix="/api")
app.include_router(categories.router,  prefix="/api")
app.include_router(products.router,    prefix="/api")
app.include_router(cart.router,        prefix="/api")
app.include_router(addresses.router,   prefix="/api")
app.include_router(orders.router,      prefix="/api")
app.include_router(payments.router,    prefix="/api")
app.include_router(admin.router,       prefix="/api")


# ======================================================
# ERROR HANDLERS
# ======================================================

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)

    content = {"detail": "Internal server error"}
    if APP_ENV == "development":
        content["error"] = str(exc)
        content["trace"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
    )


# ======================================================
# LIFECYCLE
# ======================================================

@app.on_event("startup")
def startup():
    init_database()
    db = SessionLocal()
    try:
        ensure_admin_exists(db)
    finally:
        db.close()
    init_cache()


@app.on_event("shutdown")
def shutdown():
    close_cache()
    close_database()
