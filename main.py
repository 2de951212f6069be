import logging
import subprocess
import sys
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import click
import uvicorn
from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from learnhub.clients import ServiceClients, build_service_clients
from learnhub.core.cache import CatalogCache, create_redis_client
from learnhub.core.config import Settings, settings
from learnhub.core.database import Base, create_db_engine, create_session_factory
from learnhub.core.exceptions import AppException
from learnhub.core.limiter import custom_rate_limit_exceeded_handler, limiter
from learnhub.core.security import JWTManager
from learnhub.models import *  # noqa: F401,F403  registers tables on Base
from learnhub.models.course import Course
from learnhub.routers import routes

BASE_DIR = Path(__file__).parent


# ============================================================================
# Logging Configuration
# ============================================================================
def setup_logging(app_settings: Settings = settings):
    """Configure logging for the application."""
    if app_settings.debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, app_settings.log_level.upper(), logging.INFO)
    log_format = "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] %(message)s"

    log_path = Path(app_settings.log_file)
    if not log_path.is_absolute():
        log_path = BASE_DIR / log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_path, mode="a", encoding="utf-8"),
    ]

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    # Suppress verbose third-party logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("stripe").setLevel(logging.WARNING)

    return logging.getLogger(__name__)


logger = setup_logging()


# ============================================================================
# Application Lifespan
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    logger.info("=" * 80)
    logger.info(f"Starting {app.state.settings.app_name}...")
    logger.info("=" * 80)

    try:
        logger.info("Initializing database...")
        Base.metadata.create_all(bind=app.state.engine)
        logger.info("Database tables ready")
    except SQLAlchemyError as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)
        raise

    yield  # Application is running

    logger.info("Shutting down application...")
    app.state.engine.dispose()
    logger.info("Application shutdown completed")


# ============================================================================
# FastAPI Application
# ============================================================================
def create_app(
    app_settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    clients: Optional[ServiceClients] = None,
    catalog_cache: Optional[CatalogCache] = None,
) -> FastAPI:
    """
    Build the application. Every external dependency can be passed in;
    anything omitted is constructed from settings.
    """
    app_settings = app_settings or settings
    engine = engine or create_db_engine(app_settings)

    app = FastAPI(
        title=app_settings.app_name,
        description=app_settings.app_description,
        version=app_settings.app_version,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
        openapi_url="/openapi.json" if app_settings.debug else None,
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    # Process-wide objects, read by the dependencies in learnhub.core.dependencies
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.jwt_manager = JWTManager(app_settings)
    app.state.clients = clients or build_service_clients(app_settings)
    app.state.catalog_cache = catalog_cache or CatalogCache(
        create_redis_client(app_settings), ttl=app_settings.catalog_cache_ttl
    )
    app.state.limiter = limiter

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response

    # Request ID middleware for tracing
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # ------------------------------------------------------------------
    # Exception handlers
    # ------------------------------------------------------------------
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        if exc.status_code >= 500:
            logger.error(
                f"{exc.error_type} on {request.url.path}: {exc.message} "
                f"(reference: {exc.reference_id})"
            )
        else:
            logger.warning(f"{exc.error_type} on {request.url.path}: {exc.message}")

        content = {"error": exc.message, "type": exc.error_type}
        if exc.reference_id:
            content["reference_id"] = exc.reference_id
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.warning(f"Validation error: {exc.errors()}")
        details = []
        for error in exc.errors():
            details.append(
                {
                    "loc": list(error.get("loc", [])),
                    "msg": error.get("msg"),
                    "type": error.get("type"),
                }
            )
        return JSONResponse(
            status_code=422,
            content={"error": "Validation error", "details": details},
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"SQLAlchemy error: {type(exc).__name__}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Database error occurred",
                "type": "persistence_error",
            },
        )

    app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)

    # ------------------------------------------------------------------
    # Health check endpoints
    # ------------------------------------------------------------------
    @app.get("/")
    async def root():
        """Root endpoint with basic application info."""
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "status": "healthy",
            "environment": "production" if app_settings.production else "development",
        }

    @app.get("/health")
    @limiter.limit("10/minute")
    def health_check(request: Request):
        """Detailed health check endpoint."""
        db = request.app.state.session_factory()
        try:
            db.execute(text("SELECT 1"))
            db_status = "healthy"
        except SQLAlchemyError as e:
            logger.error(f"Health check failed: {e}")
            db_status = "unhealthy"
        finally:
            db.close()

        return {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "timestamp": time.time(),
            "environment": "production" if app_settings.production else "development",
            "database": db_status,
            "cache": "enabled" if app_settings.cache_enabled else "disabled",
        }

    for router in routes:
        app.include_router(router)

    logger.info(f"Registered {len(routes)} routers")
    return app


app = create_app()


# ============================================================================
# CLI Commands
# ============================================================================
DEMO_COURSES = [
    {
        "id": "python-fundamentals",
        "title": "Python Fundamentals",
        "description": "Variables, control flow, functions and modules from scratch.",
        "price": 1999,
        "video_playback_id": "a4nOgmxGWg6gULfcBbAa00gXyfcwPnAFldF8RdsNyk8M",
        "video_duration": 5400,
    },
    {
        "id": "web-apis-with-fastapi",
        "title": "Web APIs with FastAPI",
        "description": "Routing, validation, dependencies and testing for HTTP APIs.",
        "price": 4999,
        "video_playback_id": "DS00Spx1CV902MCtPj5WknGlR102V5HFkDe",
        "video_duration": 7200,
    },
    {
        "id": "intro-to-git",
        "title": "Intro to Git",
        "description": "Commits, branches and merges in one short session.",
        "price": 0,
        "video_playback_id": "EcHgOK9coz5K4rjSwOkoE7Y7O01201YMIC200RI6lNxnhs",
        "video_duration": 1800,
    },
]


@click.group()
def cli():
    """LearnHub application management CLI."""
    pass


def run_migrations():
    alembic_cfg = Config(str(BASE_DIR / "alembic.ini"))
    command.upgrade(alembic_cfg, "head")
    logger.info("Migrations completed successfully")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--reload", is_flag=True, help="Enable auto-reload (development only)")
def dev(host: str, port: int, reload: bool):
    """Run development server with Uvicorn."""
    logger.info("Starting development server...")
    logger.info(f"  - Host: {host}")
    logger.info(f"  - Port: {port}")
    logger.info(f"  - Reload: {reload}")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="debug",
        access_log=True,
    )


@cli.command()
@click.option("--host", default="0.0.0.0", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to run the server on")
@click.option("--workers", default=4, help="Number of worker processes")
def prod(host: str, port: int, workers: int):
    """Run production server with Gunicorn."""
    logger.info("Running database migrations...")
    try:
        run_migrations()
    except SQLAlchemyError as e:
        logger.error(f"Migration failed: {e}")
        raise click.ClickException(f"Migration failed: {e}")

    logger.info("Starting production server with Gunicorn...")
    logger.info(f"  - Host: {host}")
    logger.info(f"  - Port: {port}")
    logger.info(f"  - Workers: {workers}")

    cmd = [
        "gunicorn",
        "main:app",
        "--worker-class",
        "uvicorn.workers.UvicornWorker",
        "--workers",
        str(workers),
        "--bind",
        f"{host}:{port}",
        "--access-logfile",
        "-",
        "--error-logfile",
        "-",
        "--log-level",
        "info",
        "--timeout",
        "120",
        "--graceful-timeout",
        "30",
        "--keep-alive",
        "5",
    ]

    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as e:
        logger.error(f"Gunicorn failed to start: {e}")
        raise click.ClickException(str(e))
    except FileNotFoundError:
        logger.error("Gunicorn not found. Install it with: pip install gunicorn")
        raise click.ClickException("Gunicorn not installed")


@cli.command()
def info():
    """Display application information."""
    click.echo(f"Application: {settings.app_name}")
    click.echo(f"Version: {settings.app_version}")
    click.echo(f"Debug Mode: {settings.debug}")
    click.echo(f"Frontend URL: {settings.frontend_url}")
    click.echo(f"Payment currency: {settings.payment_currency}")
    click.echo(f"Verify checkout sessions: {settings.verify_checkout_sessions}")
    click.echo(f"Access read failure policy: {settings.access_read_failure_policy}")
    click.echo(f"Catalog cache: {'enabled' if settings.cache_enabled else 'disabled'}")


@cli.command()
def seed():
    """Insert the demo catalog. Existing courses are left untouched."""
    Base.metadata.create_all(bind=app.state.engine)
    db = app.state.session_factory()
    created = 0
    try:
        for data in DEMO_COURSES:
            if db.query(Course).filter(Course.id == data["id"]).first():
                continue
            db.add(Course(**data))
            created += 1
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise click.ClickException(f"Seeding failed: {e}")
    finally:
        db.close()

    app.state.catalog_cache.invalidate()
    click.echo(f"Seeded {created} course(s)")


if __name__ == "__main__":
    cli()
