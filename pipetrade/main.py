from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from pipetrade.config import settings
from pipetrade.api.v1.router import api_router
from pipetrade.database import init_db, async_session_factory
from pipetrade.jobs.scheduler import start_scheduler, shutdown_scheduler
from pipetrade.services.auth_service import AuthService
from pipetrade.services.document_sequence_service import DocumentSequenceService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def seed_reference_data():
    """Create missing document sequences and, on an empty database, the first admin."""
    async with async_session_factory() as session:
        created = await DocumentSequenceService(session).initialize_sequences()
        await session.commit()
        if created:
            logger.info("Initialized %d document sequence(s)", created)

        await AuthService(session).ensure_default_admin()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create tables
    - Seed document sequences and the default admin
    - Start background scheduler
    """
    await init_db()
    await seed_reference_data()

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    # Shutdown
    shutdown_scheduler()


OPENAPI_TAGS = [
    {"name": "Authentication", "description": "JWT bearer authentication"},
    {"name": "Users", "description": "User and role management (admin only)"},
    {"name": "Customers", "description": "Customer master"},
    {"name": "Vendors", "description": "Vendor master and approval"},
    {"name": "Enquiries", "description": "Customer enquiries"},
    {"name": "Quotations", "description": "Quotations, approval and revisions"},
    {"name": "Sales Orders", "description": "Sales orders, stock reservation and auto-PR"},
    {"name": "Purchase/Procurement", "description": "Purchase requisitions and purchase orders"},
    {"name": "Goods Receipt Notes", "description": "GRN against purchase orders, heat-wise stock intake"},
    {"name": "Inventory", "description": "Heat-wise stock and stock issues"},
    {"name": "Quality Control", "description": "Inspections, QC releases and NCRs"},
    {"name": "Dispatch", "description": "Packing lists and dispatch notes"},
    {"name": "Invoices", "description": "GST invoices"},
    {"name": "Payments", "description": "Payment receipts"},
    {"name": "Traceability", "description": "Heat number traceability"},
    {"name": "Document Sequences", "description": "Financial-year document numbering"},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Pipe trading ERP: enquiry to payment, heat-wise inventory and QC.",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors and return a JSON 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)

    error_detail = {
        "error": str(exc) if settings.DEBUG else "Internal server error",
        "type": type(exc).__name__ if settings.DEBUG else None,
        "path": str(request.url.path),
        "method": request.method,
    }
    return JSONResponse(status_code=500, content=error_detail)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        logger.warning("Health check database error: %s", e)
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
