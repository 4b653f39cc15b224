"""
FastAPI Dependency Injection configuration for the Partogram Service API.

Architecture Flow:
    API Layer (Routers)
         ↓ Depends()
    Service Layer (labor state machine, timer computation)
         ↓ Injected
    Repository Layer (Data Access)
         ↓ Injected
    Database (SQLite Connection)

The clock is a dependency like any other, so tests can freeze and advance
"now" without touching the wall clock.

Usage in Routers:
    from core.dependencies import get_labor_service

    @router.post("/{patient_id}/measurements")
    async def record_measurement(
        patient_id: int,
        measurement: MeasurementCreate,
        labor_service: LaborService = Depends(get_labor_service)
    ):
        return labor_service.record_measurement(patient_id, ...)

Testing:
    app.dependency_overrides[get_labor_service] = lambda: test_labor_service
"""
import logging
from typing import Optional

from core.clock import SystemClock
from core.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# DATABASE & CLOCK DEPENDENCIES
# =============================================================================

# Lazy import to avoid circular dependencies
_database_instance: Optional["Database"] = None
_clock_instance: Optional[SystemClock] = None


def get_database() -> "Database":
    """
    Get the database instance (created once, then reused).

    Note:
        Import here to avoid circular imports with repositories.
    """
    global _database_instance

    if _database_instance is None:
        from repositories.base import Database

        logger.info(f"Initializing database: {settings.database_path}")
        _database_instance = Database(
            db_path=settings.database_path,
            busy_timeout=settings.partogram_svc_db_busy_timeout
        )
        logger.info("Database initialized successfully")

    return _database_instance


def reset_database() -> None:
    """Reset the database instance (for testing only)."""
    global _database_instance
    _database_instance = None


def get_clock() -> SystemClock:
    """Get the process-wide clock."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


# =============================================================================
# REPOSITORY DEPENDENCIES
# =============================================================================

def get_patient_repository() -> "PatientRepository":
    """Get a PatientRepository with the database injected."""
    from repositories import PatientRepository

    return PatientRepository(db=get_database())


def get_measurement_repository() -> "MeasurementRepository":
    """Get a MeasurementRepository with the database injected."""
    from repositories import MeasurementRepository

    return MeasurementRepository(db=get_database())


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================

def get_patient_service() -> "PatientService":
    """
    Get a PatientService instance with repository and clock injected.

    Returns:
        PatientService: Service for patient admission and lookup.
    """
    from services import PatientService

    return PatientService(
        patient_repository=get_patient_repository(),
        clock=get_clock()
    )


def get_labor_service() -> "LaborService":
    """
    Get a LaborService instance.

    The labor service owns every mutation that touches labor status or
    measurements, so it receives the database itself to open write
    transactions spanning both repositories.

    Returns:
        LaborService: Service for recording measurements and completing labor.
    """
    from services import LaborService

    return LaborService(
        db=get_database(),
        patient_repository=get_patient_repository(),
        measurement_repository=get_measurement_repository(),
        clock=get_clock(),
        reject_out_of_order=settings.reject_out_of_order_measurements
    )


def get_timer_service() -> "TimerService":
    """
    Get a TimerService instance for read-only timer queries.

    Returns:
        TimerService: Service computing timer state from a read snapshot.
    """
    from services import TimerService

    return TimerService(
        db=get_database(),
        patient_repository=get_patient_repository(),
        measurement_repository=get_measurement_repository(),
        clock=get_clock()
    )
