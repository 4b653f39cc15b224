"""
Service layer for business logic.

This module contains all business logic and orchestration services.
The pure timer functions live in services.labor_period and
services.timer_calculator.
"""
from services.patient_service import PatientService
from services.labor_service import LaborService
from services.timer_service import TimerService

__all__ = [
    "PatientService",
    "LaborService",
    "TimerService",
]
