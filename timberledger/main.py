"""FastAPI application initialization."""

from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timberledger import __version__
from timberledger.api.errors import register_exception_handlers
from timberledger.api.middleware import AccessLogMiddleware, CorrelationIdMiddleware
from timberledger.api.routes import router
from timberledger.api.transactions import router as transactions_router
from timberledger.api.users import router as users_router
from timberledger.api.wood_lots import router as wood_lots_router
from timberledger.api.wood_species import router as wood_species_router
from timberledger.config import get_settings
from timberledger.services.auth_service import AuthService
from timberledger.services.logging_service import configure_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger = get_logger("main")

    # Missing token configuration is fatal: ConfigurationError aborts startup
    AuthService(settings)

    # Initialize database connection pool and run migrations
    try:
        from timberledger.database import init_database, run_migrations

        await init_database()
        await run_migrations()
        logger.info("database_initialized")
    except Exception as e:
        logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - /health reports it as unhealthy",
        )

    logger.info(
        "application_started",
        app_env=settings.app_env,
        log_level=settings.log_level,
    )

    yield

    # Shutdown
    try:
        from timberledger.database import close_database

        await close_database()
        logger.info("database_closed")
    except Exception as e:
        logger.warning("database_close_failed", error=str(e))

    logger.info("application_shutdown")


app = FastAPI(
    title="Timber Ledger",
    description="Timber supply-chain records: species, wood lots and transactions",
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Middleware executes in reverse order of registration
app.add_middleware(AccessLogMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().cors_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(users_router)
app.include_router(wood_species_router)
app.include_router(wood_lots_router)
app.include_router(transactions_router)
