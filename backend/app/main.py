"""
ShopFloor MRP - FastAPI application

Wires middleware, maps the ShopFloorException hierarchy onto HTTP error
bodies and mounts the v1 API.
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.v1 import router as api_v1_router
from app.core.config import settings
from app.db.session import get_db
from app.exceptions import ShopFloorException
from app.logging_config import setup_logging, get_logger
from app.schemas.common import StatusResponse

setup_logging()
logger = get_logger(__name__)

_SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp security headers on every response; HSTS only in production."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(_SECURITY_HEADERS)
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def init_database():
    """Create any missing tables. Alembic migrations own schema changes."""
    from app.db.session import engine
    from app.db.base import Base
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready", extra={"tables": sorted(Base.metadata.tables)})


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting {settings.PROJECT_NAME}",
        extra={"version": settings.VERSION, "environment": settings.ENVIRONMENT},
    )
    try:
        init_database()
    except SQLAlchemyError:
        logger.error("Database initialization failed", exc_info=True)
    yield
    logger.info(f"{settings.PROJECT_NAME} stopped")


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Manufacturing orders, work orders, bills of materials and stock ledger",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


# ===================
# Exception Handlers
# ===================

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    body["timestamp"] = datetime.utcnow().isoformat() + "Z"
    return JSONResponse(status_code=status_code, content=body, headers=headers)


@app.exception_handler(ShopFloorException)
async def shopfloor_exception_handler(request: Request, exc: ShopFloorException):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"error_code": exc.error_code, "details": exc.details},
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _error_response(exc.status_code, exc.error_code, exc.message, exc.details, headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"Request validation failed on {request.url.path}", extra={"errors": errors})
    return _error_response(400, "VALIDATION_ERROR", "Request validation failed", {"errors": errors})


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.url.path}", exc_info=True)
    return _error_response(500, "DATABASE_ERROR", "A database error occurred. Please retry.")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}", exc_info=True)
    return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred.")


app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"service": settings.PROJECT_NAME, "version": settings.VERSION, "docs": "/docs"}


@app.get("/health", response_model=StatusResponse)
def health_check(db: Session = Depends(get_db)):
    """Liveness plus a round trip to the database."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check could not reach the database", exc_info=True)
        return StatusResponse(status="degraded", version=settings.VERSION)
    return StatusResponse(status="healthy", version=settings.VERSION)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.is_development)
