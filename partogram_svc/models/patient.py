"""
Domain model for patients.
"""
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from core.datetime_utils import from_db_string, format_iso_or_none
from models.labor import LaborStatus


@dataclass
class Patient:
    """Model representing an admitted patient."""

    id: int
    full_name: str
    admission_date: date
    status: LaborStatus
    labor_start: Optional[datetime]
    created_at: datetime
    history_number: Optional[str] = None
    age: Optional[int] = None
    parity: Optional[int] = None
    gestational_age: Optional[int] = None
    risk_factors: Optional[str] = None
    notes: Optional[str] = None
    membrane_rupture: Optional[datetime] = None
    active_phase_start: Optional[datetime] = None

    @property
    def status_color(self) -> str:
        return self.status.status_color

    def to_dict(self) -> Dict[str, Any]:
        """Convert patient to dictionary for API responses."""
        return {
            "id": self.id,
            "full_name": self.full_name,
            "admission_date": self.admission_date.isoformat(),
            "history_number": self.history_number,
            "age": self.age,
            "parity": self.parity,
            "gestational_age": self.gestational_age,
            "risk_factors": self.risk_factors,
            "notes": self.notes,
            "membrane_rupture": format_iso_or_none(self.membrane_rupture),
            "active_phase_start": format_iso_or_none(self.active_phase_start),
            "status": self.status.value,
            "status_color": self.status_color,
            "labor_start": format_iso_or_none(self.labor_start),
            "created_at": format_iso_or_none(self.created_at),
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Patient':
        """
        Create a Patient from a database row.

        Args:
            row: sqlite3.Row from a SELECT on the patients table.

        Returns:
            Patient instance.
        """
        return cls(
            id=row["id"],
            full_name=row["full_name"],
            admission_date=date.fromisoformat(row["admission_date"]),
            status=LaborStatus(row["status"]),
            labor_start=from_db_string(row["labor_start"]),
            created_at=from_db_string(row["created_at"]),
            history_number=row["history_number"],
            age=row["age"],
            parity=row["parity"],
            gestational_age=row["gestational_age"],
            risk_factors=row["risk_factors"],
            notes=row["notes"],
            membrane_rupture=from_db_string(row["membrane_rupture"]),
            active_phase_start=from_db_string(row["active_phase_start"]),
        )
