"""
Core module for application configuration, logging, and shared constants.

This module provides:
- Settings: Application configuration via pydantic-settings
- Dependency injection: FastAPI Depends() functions for services and repositories
- Exceptions: Domain-specific exception classes with HTTP status codes
- Datetime utilities: UTC-first datetime handling
- Clock: injectable time sources
- Field registry: partogram measurement field definitions and validation
"""
from core.config import settings, Settings

# Dependency injection - import functions for FastAPI Depends()
from core.dependencies import (
    get_database,
    get_clock,
    get_patient_repository,
    get_measurement_repository,
    get_patient_service,
    get_labor_service,
    get_timer_service,
    reset_database,
)

# Exception classes for consistent error handling
from core.exceptions import (
    PartogramServiceError,
    NotFoundError,
    PatientNotFoundError,
    MeasurementNotFoundError,
    MeasurementValidationError,
    InvalidTransitionError,
    DatabaseError,
    setup_exception_handlers,
)

# UTC datetime utilities
from core.datetime_utils import (
    utc_now,
    to_utc,
    parse_datetime,
    format_iso,
    to_db_string,
    from_db_string,
)
from core.clock import SystemClock, FrozenClock
from core.config import (
    DATABASE_DIR,
    DATABASE_FILE,
    DATABASE_PATH,
    API_HOST,
    API_PORT,
    API_RELOAD,
    MEASUREMENT_ORDER_POLICY,
)

# Field registry exports
from core.field_registry import (
    FieldDefinition,
    get_field,
    list_fields,
    validate_measurement_fields,
)

__all__ = [
    # Settings
    "settings",
    "Settings",
    # Dependency injection
    "get_database",
    "get_clock",
    "get_patient_repository",
    "get_measurement_repository",
    "get_patient_service",
    "get_labor_service",
    "get_timer_service",
    "reset_database",
    # Exceptions
    "PartogramServiceError",
    "NotFoundError",
    "PatientNotFoundError",
    "MeasurementNotFoundError",
    "MeasurementValidationError",
    "InvalidTransitionError",
    "DatabaseError",
    "setup_exception_handlers",
    # Datetime utilities
    "utc_now",
    "to_utc",
    "parse_datetime",
    "format_iso",
    "to_db_string",
    "from_db_string",
    # Clock
    "SystemClock",
    "FrozenClock",
    # Module-level config exports
    "DATABASE_DIR",
    "DATABASE_FILE",
    "DATABASE_PATH",
    "API_HOST",
    "API_PORT",
    "API_RELOAD",
    "MEASUREMENT_ORDER_POLICY",
    # Field registry
    "FieldDefinition",
    "get_field",
    "list_fields",
    "validate_measurement_fields",
]
