"""
Domain model for partogram measurements.
"""
import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from core.datetime_utils import from_db_string, format_iso


@dataclass
class Measurement:
    """
    One partogram entry.

    Only cervical_dilation is read by timer logic; the remaining clinical
    values live in payload untouched.
    """

    id: int
    patient_id: int
    time: datetime
    cervical_dilation: Optional[int]
    created_at: datetime
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def sort_key(self):
        """Chronological order; later insert wins on equal times."""
        return (self.time, self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "time": format_iso(self.time),
            "cervical_dilation": self.cervical_dilation,
            "fields": dict(self.payload),
            "created_at": format_iso(self.created_at),
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Measurement':
        """Create a Measurement from a row of the measurements table."""
        return cls(
            id=row["id"],
            patient_id=row["patient_id"],
            time=from_db_string(row["time"]),
            cervical_dilation=row["cervical_dilation"],
            created_at=from_db_string(row["created_at"]),
            payload=json.loads(row["payload"]) if row["payload"] else {},
        )
