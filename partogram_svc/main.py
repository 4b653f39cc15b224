"""
FastAPI application entry point for the Partogram Service API.

This module configures and creates the FastAPI application with:
- Structured JSON Logging: Request/response logging with request ids
- Dependency Injection: Services and repositories injected via Depends()
- Exception Handling: Consistent error responses via setup_exception_handlers()
- CORS Middleware: Allows the ward views to call the API from a browser
- Lifespan Management: Database initialization and cleanup
- Metrics Collection: In-memory metrics for Prometheus scraping

Architecture Overview:
    ┌─────────────────────────────────────────────────────────────┐
    │                     FastAPI Application                      │
    ├─────────────────────────────────────────────────────────────┤
    │  Middleware Stack (order matters!)                          │
    │    ├── LoggingMiddleware  - Request logging & metrics       │
    │    └── CORSMiddleware     - Cross-origin support            │
    ├─────────────────────────────────────────────────────────────┤
    │  Routers (api/routers/)                                     │
    │    ├── health.py       - /health, /ready, /metrics          │
    │    ├── patients.py     - Patient admission & lookup         │
    │    ├── measurements.py - Partogram entries, complete labor  │
    │    ├── timers.py       - Timer state, server time           │
    │    └── meta.py         - Field definitions                  │
    ├─────────────────────────────────────────────────────────────┤
    │  Services (services/)     ← Injected via Depends()          │
    │    ├── PatientService     - Admission                       │
    │    ├── LaborService       - Labor state machine             │
    │    └── TimerService       - Derived countdowns              │
    ├─────────────────────────────────────────────────────────────┤
    │  Repositories (repositories/)   ← Injected into Services    │
    │    ├── PatientRepository        - Patient data access       │
    │    └── MeasurementRepository    - Measurement data access   │
    ├─────────────────────────────────────────────────────────────┤
    │  Database (SQLite, WAL)         ← Injected into Repositories│
    └─────────────────────────────────────────────────────────────┘
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from core.config import API_HOST, API_PORT, API_RELOAD, MEASUREMENT_ORDER_POLICY
from core.dependencies import get_database
from core.exceptions import setup_exception_handlers
from core.field_registry import list_fields
from core.logging_config import setup_logging
from core.middleware import LoggingMiddleware
from api.routers import (
    health_router,
    patients_router,
    measurements_router,
    timers_router,
    meta_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application.

    Startup:
        - Configures structured JSON logging
        - Initializes the database (triggers schema creation)
        - Loads the field registry so a broken YAML fails at startup
    """
    setup_logging(level="INFO", json_format=True)

    logger = logging.getLogger(__name__)
    logger.info("Starting Partogram Service API...")

    db = get_database()
    logger.info(
        "Database initialized",
        extra={"db_path": db.db_path, "measurement_order_policy": MEASUREMENT_ORDER_POLICY}
    )
    logger.info("Field registry ready", extra={"field_count": len(list_fields())})

    yield

    logger.info("Partogram Service API shutting down...")


app = FastAPI(
    title="Partogram Service API",
    description="REST API for maternity ward labor tracking: patients, partogram measurements "
                "and the measurement-due countdown derived from them.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================
setup_exception_handlers(app)

# =============================================================================
# MIDDLEWARE
# =============================================================================
# Executed in REVERSE order of registration.

# 1. CORS Middleware (innermost - closest to routes)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. Logging Middleware (outermost - captures all requests)
app.add_middleware(LoggingMiddleware)

# =============================================================================
# ROUTERS
# =============================================================================
app.include_router(health_router)
app.include_router(patients_router)
app.include_router(measurements_router)
app.include_router(timers_router)
app.include_router(meta_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_RELOAD
    )
