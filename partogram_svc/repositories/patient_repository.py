"""
Repository for patient database operations.

Architecture:
    PatientRepository is the data access layer for patients.
    It should be injected via core.dependencies.get_patient_repository().

All SQL is encapsulated in this repository - no SQL in service or API layers.
Labor status transitions are conditional UPDATEs so that a transition
happens at most once even when two requests race for it.
"""
import sqlite3
import logging
from datetime import date, datetime
from typing import Optional, List

from repositories.base import Database
from models import LaborStatus, Patient
from core.datetime_utils import to_db_string

logger = logging.getLogger(__name__)

_PATIENT_COLUMNS = """
    id, full_name, admission_date, history_number, age, parity,
    gestational_age, risk_factors, notes, membrane_rupture, active_phase_start,
    status, labor_start, created_at
"""


class PatientRepository:
    """
    Repository for patient CRUD operations and labor status transitions.

    It should be instantiated via core.dependencies.get_patient_repository().
    """

    def __init__(self, db: Database):
        """
        Initialize the patient repository.

        Args:
            db: Database instance for data access.
        """
        self._db = db

    def add(
        self,
        full_name: str,
        admission_date: date,
        created_at: datetime,
        history_number: Optional[str] = None,
        age: Optional[int] = None,
        parity: Optional[int] = None,
        gestational_age: Optional[int] = None,
        risk_factors: Optional[str] = None,
        notes: Optional[str] = None,
        membrane_rupture: Optional[datetime] = None,
        active_phase_start: Optional[datetime] = None,
        conn: Optional[sqlite3.Connection] = None
    ) -> Patient:
        """
        Insert a new patient (always not_started) and return the stored row.

        Insert and read-back run in one transaction.
        """
        with self._db.connect(conn, write=True) as c:
            cursor = c.execute(
                """
                INSERT INTO patients
                (full_name, admission_date, history_number, age, parity,
                 gestational_age, risk_factors, notes, membrane_rupture,
                 active_phase_start, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    full_name,
                    admission_date.isoformat(),
                    history_number,
                    age,
                    parity,
                    gestational_age,
                    risk_factors,
                    notes,
                    to_db_string(membrane_rupture) if membrane_rupture else None,
                    to_db_string(active_phase_start) if active_phase_start else None,
                    LaborStatus.NOT_STARTED.value,
                    to_db_string(created_at),
                )
            )
            row = c.execute(
                f"SELECT {_PATIENT_COLUMNS} FROM patients WHERE id = ?",
                (cursor.lastrowid,)
            ).fetchone()
        return Patient.from_row(row)

    def get(self, patient_id: int, conn: Optional[sqlite3.Connection] = None) -> Optional[Patient]:
        """Get a patient by id, or None."""
        with self._db.connect(conn) as c:
            row = c.execute(
                f"SELECT {_PATIENT_COLUMNS} FROM patients WHERE id = ?",
                (patient_id,)
            ).fetchone()
        return Patient.from_row(row) if row else None

    def get_all(
        self,
        limit: Optional[int] = None,
        conn: Optional[sqlite3.Connection] = None
    ) -> List[Patient]:
        """
        Get all patients, newest admission first.

        Args:
            limit: Maximum number of patients to return (optional).
        """
        query = f"SELECT {_PATIENT_COLUMNS} FROM patients ORDER BY created_at DESC, id DESC"
        params = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._db.connect(conn) as c:
            rows = c.execute(query, params).fetchall()
        return [Patient.from_row(row) for row in rows]

    def delete(self, patient_id: int, conn: Optional[sqlite3.Connection] = None) -> bool:
        """
        Delete a patient; their measurements go with them (ON DELETE CASCADE).

        Returns:
            True if a patient was deleted.
        """
        with self._db.connect(conn, write=True) as c:
            cursor = c.execute("DELETE FROM patients WHERE id = ?", (patient_id,))
        return cursor.rowcount > 0

    def start_labor(
        self,
        patient_id: int,
        started_at: datetime,
        conn: Optional[sqlite3.Connection] = None
    ) -> bool:
        """
        Move not_started -> in_progress and stamp labor_start.

        Returns:
            True if this call performed the transition, False if the patient
            was no longer not_started (another request got there first).
        """
        with self._db.connect(conn, write=True) as c:
            cursor = c.execute(
                """
                UPDATE patients
                SET status = ?, labor_start = ?
                WHERE id = ? AND status = ?
                """,
                (
                    LaborStatus.IN_PROGRESS.value,
                    to_db_string(started_at),
                    patient_id,
                    LaborStatus.NOT_STARTED.value,
                )
            )
        started = cursor.rowcount == 1
        if not started:
            logger.debug(f"Labor already started for patient {patient_id}")
        return started

    def complete_labor(self, patient_id: int, conn: Optional[sqlite3.Connection] = None) -> bool:
        """
        Move in_progress -> completed.

        Returns:
            True if this call performed the transition.
        """
        with self._db.connect(conn, write=True) as c:
            cursor = c.execute(
                "UPDATE patients SET status = ? WHERE id = ? AND status = ?",
                (LaborStatus.COMPLETED.value, patient_id, LaborStatus.IN_PROGRESS.value)
            )
        return cursor.rowcount == 1
