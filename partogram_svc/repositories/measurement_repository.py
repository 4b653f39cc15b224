"""
Repository for partogram measurement database operations.

Architecture:
    MeasurementRepository is the data access layer for measurements.
    It should be injected via core.dependencies.get_measurement_repository().

Ordering:
    "Latest" always means time DESC, then id DESC. Timestamps are stored as
    fixed-width UTC strings, so ORDER BY on the TEXT column is chronological.
"""
import json
import sqlite3
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from repositories.base import Database
from models import Measurement
from core.datetime_utils import to_db_string, from_db_string

logger = logging.getLogger(__name__)

_MEASUREMENT_COLUMNS = "id, patient_id, time, cervical_dilation, payload, created_at"


class MeasurementRepository:
    """
    Repository for measurement inserts, history reads and deletes.

    Measurements are never updated once written.
    """

    def __init__(self, db: Database):
        self._db = db

    def add(
        self,
        patient_id: int,
        time: datetime,
        created_at: datetime,
        cervical_dilation: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
        conn: Optional[sqlite3.Connection] = None
    ) -> Measurement:
        """
        Insert a measurement and return the stored row.

        Args:
            patient_id: Owning patient.
            time: Clinical time of the measurement (UTC).
            created_at: When the entry was recorded.
            cervical_dilation: Dilation in cm, if measured.
            payload: Remaining clinical fields, stored as JSON.
        """
        with self._db.connect(conn, write=True) as c:
            cursor = c.execute(
                """
                INSERT INTO measurements
                (patient_id, time, cervical_dilation, payload, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    patient_id,
                    to_db_string(time),
                    cervical_dilation,
                    json.dumps(payload or {}, ensure_ascii=False, sort_keys=True),
                    to_db_string(created_at),
                )
            )
            row = c.execute(
                f"SELECT {_MEASUREMENT_COLUMNS} FROM measurements WHERE id = ?",
                (cursor.lastrowid,)
            ).fetchone()
        return Measurement.from_row(row)

    def get(
        self,
        measurement_id: int,
        patient_id: int,
        conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Measurement]:
        """Get a measurement owned by the given patient, or None."""
        with self._db.connect(conn) as c:
            row = c.execute(
                f"SELECT {_MEASUREMENT_COLUMNS} FROM measurements WHERE id = ? AND patient_id = ?",
                (measurement_id, patient_id)
            ).fetchone()
        return Measurement.from_row(row) if row else None

    def list_for_patient(
        self,
        patient_id: int,
        limit: Optional[int] = None,
        conn: Optional[sqlite3.Connection] = None
    ) -> List[Measurement]:
        """Measurement history for one patient, latest first."""
        query = f"""
            SELECT {_MEASUREMENT_COLUMNS} FROM measurements
            WHERE patient_id = ?
            ORDER BY time DESC, id DESC
        """
        params: List[Any] = [patient_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self._db.connect(conn) as c:
            rows = c.execute(query, params).fetchall()
        return [Measurement.from_row(row) for row in rows]

    def delete(
        self,
        measurement_id: int,
        patient_id: int,
        conn: Optional[sqlite3.Connection] = None
    ) -> bool:
        """
        Delete one measurement owned by the patient.

        Returns:
            True if a row was deleted.
        """
        with self._db.connect(conn, write=True) as c:
            cursor = c.execute(
                "DELETE FROM measurements WHERE id = ? AND patient_id = ?",
                (measurement_id, patient_id)
            )
        return cursor.rowcount > 0

    def latest_time(
        self,
        patient_id: int,
        conn: Optional[sqlite3.Connection] = None
    ) -> Optional[datetime]:
        """Clinical time of the patient's latest measurement, or None."""
        with self._db.connect(conn) as c:
            row = c.execute(
                "SELECT MAX(time) AS latest FROM measurements WHERE patient_id = ?",
                (patient_id,)
            ).fetchone()
        return from_db_string(row["latest"]) if row else None

    def latest_timer_inputs(
        self,
        patient_id: Optional[int] = None,
        conn: Optional[sqlite3.Connection] = None
    ) -> Dict[int, List[Measurement]]:
        """
        The measurements timer computation needs, for one or all patients.

        Per patient this is the latest measurement (the countdown anchor) and
        the latest measurement carrying a cervical dilation (the period).
        Often the same row. One windowed query regardless of patient count.

        Args:
            patient_id: Restrict to one patient; None means every patient.

        Returns:
            Mapping of patient_id to at most two measurements. Patients with
            no measurements are absent.
        """
        where = "WHERE patient_id = ?" if patient_id is not None else ""
        params = (patient_id,) if patient_id is not None else ()
        query = f"""
            SELECT {_MEASUREMENT_COLUMNS} FROM (
                SELECT
                    {_MEASUREMENT_COLUMNS},
                    ROW_NUMBER() OVER (
                        PARTITION BY patient_id
                        ORDER BY time DESC, id DESC
                    ) AS latest_rank,
                    ROW_NUMBER() OVER (
                        PARTITION BY patient_id, cervical_dilation IS NULL
                        ORDER BY time DESC, id DESC
                    ) AS dilation_rank
                FROM measurements
                {where}
            )
            WHERE latest_rank = 1
               OR (dilation_rank = 1 AND cervical_dilation IS NOT NULL)
        """

        with self._db.connect(conn) as c:
            rows = c.execute(query, params).fetchall()

        inputs: Dict[int, List[Measurement]] = defaultdict(list)
        for row in rows:
            inputs[row["patient_id"]].append(Measurement.from_row(row))
        return dict(inputs)
