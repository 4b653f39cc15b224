"""
Domain models for the partogram service.

This module contains internal domain models shared by repositories and services.
"""
from models.labor import LaborPeriod, LaborStatus
from models.measurement import Measurement
from models.patient import Patient
from models.timer import TimerState

__all__ = ["LaborPeriod", "LaborStatus", "Measurement", "Patient", "TimerState"]
