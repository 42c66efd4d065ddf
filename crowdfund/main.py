from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import structlog
import time
import uvicorn

from crowdfund.core.config import Settings, get_settings
from crowdfund.core.circuit_breaker import db_circuit_breaker
from crowdfund.core.errors import CrowdfundError, AuthenticationError
from crowdfund.core.security import PasswordHasher, TokenIssuer
from crowdfund.database import Database
from crowdfund.api.auth import router as auth_router
from crowdfund.api.campaign import router as campaigns_router
from crowdfund.api.donation import router as donations_router
from crowdfund.middleware.tracing import init_tracing
from crowdfund.middleware.metrics import MetricsMiddleware, metrics_endpoint
from crowdfund.middleware.logging import logging_middleware

logger = structlog.get_logger(__name__)


def configure_logging(settings: Settings):
    """Route structlog through stdlib logging at the configured level"""
    logging.basicConfig(format="%(message)s", level=settings.log_level.upper())
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def error_response(status_code: int, message: str, errors=None, headers=None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(CrowdfundError)
    async def crowdfund_error_handler(request: Request, exc: CrowdfundError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        if exc.status_code >= 500:
            logger.error("Request failed", error=exc.message, method=request.method, url=str(request.url))
        return error_response(exc.status_code, exc.message, exc.errors, headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path")),
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        return error_response(400, "Validation failed", errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            method=request.method,
            url=str(request.url)
        )
        return error_response(500, "Internal server error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API with its own database, token issuer and password hasher"""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Crowdfunding API: accounts, campaigns and donations",
        version="1.0.0",
        debug=settings.debug
    )

    database = Database(settings.database_url, echo=False)
    app.state.settings = settings
    app.state.database = database
    app.state.token_issuer = TokenIssuer.from_settings(settings)
    app.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    init_tracing(app, settings, database.engine)

    app.add_middleware(MetricsMiddleware)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Logging middleware with trace correlation"""
        return await logging_middleware(request, call_next)

    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        logger.info("Starting Crowdfund API", service_name=settings.service_name)
        try:
            database.init_db()
            logger.info("Application startup completed successfully")
        except Exception as e:
            logger.error("Failed to initialize application", error=str(e))
            raise

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down Crowdfund API")
        try:
            database.close()
            logger.info("Application shutdown completed successfully")
        except Exception as e:
            logger.error("Error during application shutdown", error=str(e))

    @app.get("/health")
    async def health_check():
        """Basic health check"""
        return {
            "status": "healthy",
            "service": settings.service_name,
            "timestamp": time.time()
        }

    @app.get("/metrics")
    async def metrics(request: Request):
        """Prometheus metrics endpoint"""
        return await metrics_endpoint(request)

    @app.get("/health/ready")
    async def readiness_check():
        """Readiness check with database and circuit breaker status"""
        health_status = {
            "status": "ready",
            "service": settings.service_name,
            "timestamp": time.time(),
            "database": "disconnected",
            "circuit_breaker": db_circuit_breaker.get_state()
        }

        try:
            database.ping()
            health_status["database"] = "connected"
        except Exception as db_e:
            logger.warning("Database health check failed", error=str(db_e))
            health_status["database"] = f"error: {str(db_e)}"
            health_status["status"] = "not ready"
            return JSONResponse(status_code=503, content=health_status)

        return health_status

    app.include_router(auth_router, prefix=settings.api_prefix)
    app.include_router(campaigns_router, prefix=settings.api_prefix)
    app.include_router(donations_router, prefix=settings.api_prefix)

    return app


app = create_app()


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "crowdfund.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info" if not settings.debug else "debug"
    )
