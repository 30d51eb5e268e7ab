# leasegen/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leasegen.core.config import get_settings
from leasegen.documents.exceptions import DocumentBaseException, convert_to_error_response
from leasegen.utils.logger import setup_app_logging, get_logger
# Routes
from leasegen.documents.router import router as document_routes

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Log the runtime configuration once the app starts
    """
    logger.info(
        "Lease document generator started",
        templates_dir=settings.templates_dir,
        converter=settings.soffice_path,
        bucket=settings.s3_bucket_name,
    )
    yield


# Create the FastAPI app
lease_app = FastAPI(
    title=f"Lease Document Generator - {settings.environment}",
    description="Fills lease templates and publishes merged PDF packages",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure logging
setup_app_logging(
    lease_app,
    log_level=settings.log_level,
    use_json=settings.log_json or settings.is_production,
    log_file=settings.log_file,
    app_name="Lease Document Generator",
    environment=settings.environment,
)
logger = get_logger(__name__)

# Add CORS middleware
lease_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
lease_app.include_router(document_routes)


@lease_app.exception_handler(DocumentBaseException)
async def document_exception_handler(request: Request, exc: DocumentBaseException):
    """Answer pipeline errors with the ``{success: false, error}`` body"""
    logger.error(
        "Document request failed",
        path=request.url.path,
        error=exc.message,
        error_type=type(exc).__name__,
    )
    return convert_to_error_response(exc, include_details=not settings.is_production)


@lease_app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed request fields are answered with 400"""
    problems = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    logger.warning("Invalid request", path=request.url.path, errors=problems)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": f"Invalid request: {'; '.join(problems)}"},
    )


# Health check
@lease_app.get("/", tags=["Base"])
async def health_check():
    """
    Report that the service is up
    """
    logger.debug("Health check")
    return {"status": "ok", "message": "Lease generation API is running"}
