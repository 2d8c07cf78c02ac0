from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from core.config import settings
from core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from core.exceptions import BaseCustomException
from core.response import error_response
from database.connection import create_tables
from routers import auth, admin, categories

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Marketplace Admin API",
    description="Administrative back-office API for the marketplace",
    version="1.0.0"
)

# Global exception handler for custom exceptions
@app.exception_handler(BaseCustomException)
async def custom_exception_handler(request: Request, exc: BaseCustomException):
    """Handle custom exceptions with standardized response format."""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"{exc.__class__.__name__} [{request_id}] on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            message=exc.message,
            error_code=exc.__class__.__name__,
            details=exc.details
        )
    )

# Global exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed error messages."""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"Validation error [{request_id}] on {request.method} {request.url.path}: {exc.errors()}")

    error_details = []
    for error in exc.errors():
        field = '.'.join(str(x) for x in error['loc'])
        error_details.append({
            "field": field,
            "message": error['msg'],
            "type": error['type']
        })

    return JSONResponse(
        status_code=422,
        content=error_response(
            message="Request validation failed",
            error_code="VALIDATION_ERROR",
            details={"errors": error_details}
        )
    )

# Global exception handler for general HTTP exceptions
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with logging."""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"HTTP exception [{request_id}] on {request.method} {request.url.path}: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            message=str(exc.detail) if isinstance(exc.detail, str) else "HTTP error occurred",
            error_code="HTTP_ERROR",
            details={"status_code": exc.status_code}
        ),
        headers=getattr(exc, "headers", None)
    )

# Global exception handler for unexpected errors
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log the full error server-side; the caller only gets an opaque failure."""
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(f"Unexpected error [{request_id}] on {request.method} {request.url.path}: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content=error_response(
            message="An unexpected error occurred. Please try again.",
            error_code="INTERNAL_SERVER_ERROR",
            details={"request_id": request_id}
        )
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Order matters - first added is executed last
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(categories.router, prefix="/api/admin/categories", tags=["Admin Categories"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])

@app.on_event("startup")
async def startup_event():
    """Initialize the application on startup."""
    logger.info("Starting up Marketplace Admin API...")
    create_tables()
    logger.info(f"Database tables ready ({settings.ENVIRONMENT})")

@app.get("/api/health")
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "message": "Backend is running"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
