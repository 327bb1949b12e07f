# backend/catalog_api/main.py

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog_api.api.auth_routes import router as auth_router
from catalog_api.api.categories import router as categories_router
from catalog_api.api.orders import router as orders_router
from catalog_api.api.products import router as products_router
from catalog_api.api.suppliers import router as suppliers_router
from catalog_api.core.config import settings
from catalog_api.core.database import Base, SessionLocal, engine
from catalog_api.core.errors import CatalogError, ValidationError
from catalog_api.core.logging_config import configure_logging
from catalog_api.core.seed import seed_users_if_empty
from catalog_api.models import registry  # noqa: F401  (registers every table on Base)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_json)

    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)

    if settings.seed_users:
        db = SessionLocal()
        try:
            seed_users_if_empty(db)
        finally:
            db.close()

    logger.info("startup", extra={"env": settings.app_env})
    yield


app = FastAPI(title="Catalog API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)


# ---------- ERROR RESPONSES ----------


def error_body(
    status_code: int,
    code: str,
    message: str,
    path: str,
    errors: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "status": status_code,
        "error": HTTPStatus(status_code).phrase,
        "code": code,
        "message": message,
        "path": path,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if errors:
        body["errors"] = errors
    return body


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    errors = None
    if isinstance(exc, ValidationError) and exc.field:
        errors = [{"field": exc.field, "message": exc.message}]

    logger.info(
        "request_rejected",
        extra={"path": request.url.path, "code": exc.code, "status": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.code, exc.message, request.url.path, errors),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        # drop the "body"/"query" prefix from the location
        loc = [str(part) for part in err.get("loc", ())[1:]]
        errors.append({"field": ".".join(loc) or None, "message": err.get("msg", "")})

    return JSONResponse(
        status_code=400,
        content=error_body(400, ValidationError.code, "Request validation failed", request.url.path, errors),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("unexpected_error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content=error_body(500, "INTERNAL_ERROR", "An unexpected error occurred", request.url.path),
    )


# ---------- ROUTES ----------

app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(products_router, prefix="/api/products", tags=["products"])
app.include_router(categories_router, prefix="/api/categories", tags=["categories"])
app.include_router(suppliers_router, prefix="/api/suppliers", tags=["suppliers"])
app.include_router(orders_router, prefix="/api/orders", tags=["orders"])


@app.get("/health")
def health():
    return {"status": "ok"}
