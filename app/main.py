"""
Foundry API - Main Application
Build custom binaries over HTTP.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import settings
from app.routers import builder

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)

_log = logging.getLogger(__name__)


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title=settings.API_TITLE,
    description="Build custom binaries of a base program with extensions",
    version=settings.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return 422 with structured error details."""
    _log.warning(
        "422 on %s %s  errors=%s",
        request.method, request.url.path, exc.errors()[:3],
    )
    return JSONResponse(status_code=422, content={"detail": exc.errors()})


# =============================================================================
# Health Check
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "foundry-api",
        "version": settings.API_VERSION,
    }


# =============================================================================
# Register Routers
# =============================================================================

app.include_router(builder.router, prefix="/builder", tags=["builder"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
    )
