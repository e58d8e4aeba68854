"""
SecureBank API Application Factory
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .auth import router as auth_router
from .accounts import router as accounts_router
from .deps import BankingSystem, get_banking_system
from .. import __version__
from ..config import get_config
from ..errors import BankingError, ValidationError
from ..logging_config import get_logger, log_action


logger = get_logger(__name__)

STATUS_BY_CODE = {
    "VALIDATION": 400,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "INTERNAL": 500,
}


async def banking_error_handler(request: Request, exc: BankingError) -> JSONResponse:
    """Map categorized service errors onto HTTP responses"""
    body = {"error": exc.code, "message": exc.message}
    if isinstance(exc, ValidationError):
        body["issues"] = [issue.to_dict() for issue in exc.issues]

    if exc.code == "INTERNAL":
        log_action(
            logger, "error", f"Internal error: {exc.message}",
            action="request_failed", resource=request.url.path
        )

    return JSONResponse(status_code=STATUS_BY_CODE.get(exc.code, 500), content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies use the same shape as field validation errors"""
    issues = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "VALIDATION", "message": "Invalid request", "issues": issues}
    )


def create_app(system: Optional[BankingSystem] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        system: Services to serve; the configured global system when None
    """
    app = FastAPI(
        title="SecureBank API",
        description="Account signup, authentication and funding",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if system is not None:
        app.dependency_overrides[get_banking_system] = lambda: system

    app.add_exception_handler(BankingError, banking_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Include routers
    app.include_router(auth_router, prefix="/auth", tags=["Auth"])
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "securebank_api",
            "version": __version__
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    settings = get_config()
    uvicorn.run(
        "securebank.api:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=debug,
        log_level=settings.log_level.lower()
    )


# Module-level app for uvicorn
app = create_app()
