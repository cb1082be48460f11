from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from .config import settings
from .database import init_db
from .errors import FinanceError
from .routers import accounts, transactions, exchange_rates, holdings, goals, analytics, setup, reference
import logging

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup"""
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized successfully")
    yield


# Create FastAPI app
app = FastAPI(
    title="Kakeibo API",
    description="API for tracking multi-currency accounts, transactions, investments and goals",
    version="1.0.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(accounts.router, prefix="/api/v1")
app.include_router(transactions.router, prefix="/api/v1")
app.include_router(exchange_rates.router, prefix="/api/v1")
app.include_router(holdings.router, prefix="/api/v1")
app.include_router(goals.router, prefix="/api/v1")
app.include_router(analytics.router, prefix="/api/v1")
app.include_router(setup.router, prefix="/api/v1")
app.include_router(reference.router, prefix="/api/v1")


@app.exception_handler(FinanceError)
async def finance_error_handler(request: Request, exc: FinanceError):
    """Translate domain errors raised by services into HTTP responses"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Kakeibo API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/api/v1/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "database": "connected"
    }
