"""
Shared pytest fixtures for service and API tests.

Key patterns:

1. Database Isolation: Each test gets a fresh SQLite file under tmp_path
2. Frozen Clock: "now" only moves when a test advances it
3. DI Override: app.dependency_overrides injects the test services

Fixture Hierarchy:
    temp_db → repositories → services → test_app → client
    clock ──────────────────↗
"""
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from repositories import Database, MeasurementRepository, PatientRepository
from services import LaborService, PatientService, TimerService
from schemas import PatientCreate
from core.clock import FrozenClock
from core.exceptions import setup_exception_handlers
from core import dependencies as deps

T0 = datetime(2025, 3, 1, 8, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_db(tmp_path):
    """Fresh SQLite database per test."""
    return Database(db_path=str(tmp_path / "partogram-test.db"))


@pytest.fixture
def clock():
    """Clock frozen at 2025-03-01 08:00:00 UTC."""
    return FrozenClock(T0)


@pytest.fixture
def patient_repo(temp_db):
    return PatientRepository(db=temp_db)


@pytest.fixture
def measurement_repo(temp_db):
    return MeasurementRepository(db=temp_db)


@pytest.fixture
def patient_service(patient_repo, clock):
    return PatientService(patient_repository=patient_repo, clock=clock)


@pytest.fixture
def labor_service(temp_db, patient_repo, measurement_repo, clock):
    return LaborService(
        db=temp_db,
        patient_repository=patient_repo,
        measurement_repository=measurement_repo,
        clock=clock,
    )


@pytest.fixture
def strict_labor_service(temp_db, patient_repo, measurement_repo, clock):
    """LaborService that rejects measurements older than the latest one."""
    return LaborService(
        db=temp_db,
        patient_repository=patient_repo,
        measurement_repository=measurement_repo,
        clock=clock,
        reject_out_of_order=True,
    )


@pytest.fixture
def timer_service(temp_db, patient_repo, measurement_repo, clock):
    return TimerService(
        db=temp_db,
        patient_repository=patient_repo,
        measurement_repository=measurement_repo,
        clock=clock,
    )


@pytest.fixture
def admit(patient_service):
    """Admit a patient and return their id."""
    def _admit(full_name: str = "Maria Ivanova", **kwargs) -> int:
        return patient_service.add_patient(PatientCreate(full_name=full_name, **kwargs)).id
    return _admit


@pytest.fixture
def test_app(
    monkeypatch,
    temp_db,
    clock,
    patient_repo,
    measurement_repo,
    patient_service,
    labor_service,
    timer_service,
):
    """
    FastAPI test app with the real routers and test dependencies injected.
    """
    from api.routers import (
        health_router,
        patients_router,
        measurements_router,
        timers_router,
        meta_router,
    )

    app = FastAPI(title="Partogram Service API Test")
    setup_exception_handlers(app)

    app.dependency_overrides[deps.get_database] = lambda: temp_db
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_patient_repository] = lambda: patient_repo
    app.dependency_overrides[deps.get_measurement_repository] = lambda: measurement_repo
    app.dependency_overrides[deps.get_patient_service] = lambda: patient_service
    app.dependency_overrides[deps.get_labor_service] = lambda: labor_service
    app.dependency_overrides[deps.get_timer_service] = lambda: timer_service

    # /ready calls get_database() directly
    monkeypatch.setattr(deps, "_database_instance", temp_db)

    app.include_router(health_router)
    app.include_router(patients_router)
    app.include_router(measurements_router)
    app.include_router(timers_router)
    app.include_router(meta_router)

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """Create a test client for the API."""
    return TestClient(test_app)
